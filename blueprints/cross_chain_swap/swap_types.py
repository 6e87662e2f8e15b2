import hashlib
from typing import NamedTuple

from hathor import Address, ContractId

#
# === ESCROW STATUS CONSTANTS ===
#

STATUS_ACTIVE = 0       # funded, waiting for withdraw or cancel
STATUS_WITHDRAWN = 1    # terminal: secret revealed, taker paid
STATUS_CANCELLED = 2    # terminal: maker refunded


class Timelocks(NamedTuple):
    """Deployment timestamp plus one offset (seconds) per stage."""
    deployed_at: int
    dst_withdrawal: int
    dst_public_withdrawal: int
    dst_cancellation: int
    src_withdrawal: int
    src_public_withdrawal: int
    src_cancellation: int
    src_public_cancellation: int


class Immutables(NamedTuple):
    """Everything that identifies one escrow. Written once at construction."""
    order_hash: bytes
    hashlock: bytes
    maker: Address
    taker: Address
    token: ContractId
    amount: int
    timelocks: Timelocks
    src_factory: ContractId
    dst_factory: ContractId


class Order(NamedTuple):
    salt: int
    maker: Address
    receiver: Address
    maker_asset: ContractId
    taker_asset: bytes      # asset id on the other chain
    making_amount: int
    taking_amount: int
    parts_amount: int       # tranches allowed by the maker; < 2 means fill-or-kill


class ExtraData(NamedTuple):
    """Swap parameters attached to an order on the source chain."""
    hashlock: bytes
    dst_factory: ContractId
    timelocks: Timelocks    # deployed_at is ignored, the factory stamps it


class MerkleLeaf(NamedTuple):
    leaf_hash: bytes
    amount: int


ZERO_LEAF = MerkleLeaf(leaf_hash=b"", amount=0)


#
# === VIEW RETURN TYPES ===
#

class EscrowStateView(NamedTuple):
    is_withdrawn: bool
    is_cancelled: bool
    status: int


class FactoryCountersView(NamedTuple):
    total_escrows: int
    count_src: int
    count_dst: int
    count_partial_fills: int


class OrderFillView(NamedTuple):
    filled_amount: int
    fills: int


class EscrowIdsPage(NamedTuple):
    cursor_in: int
    limit: int
    next_cursor: int
    ids: list[ContractId]


#
# === HASHING HELPERS ===
#

def _u256(value: int) -> bytes:
    return value.to_bytes(32, "big")


def _chunk(data: bytes) -> bytes:
    # length-prefixed so that adjacent variable-size fields cannot be shifted
    return len(data).to_bytes(2, "big") + data


def hash_order(order: Order) -> bytes:
    """Canonical 32-byte hash of an order."""
    h = hashlib.sha256()
    h.update(_u256(order.salt))
    h.update(_chunk(bytes(order.maker)))
    h.update(_chunk(bytes(order.receiver)))
    h.update(_chunk(bytes(order.maker_asset)))
    h.update(_chunk(bytes(order.taker_asset)))
    h.update(_u256(order.making_amount))
    h.update(_u256(order.taking_amount))
    h.update(_u256(order.parts_amount))
    return h.digest()


def tranche_key(order_hash: bytes, hashlock: bytes) -> bytes:
    """Fill-watermark key of an order (one per order and hashlock root)."""
    return hashlib.sha256(order_hash + hashlock).digest()


def partial_fill_salt(key: bytes, amount: int) -> bytes:
    """Deployment salt of a partial-fill source escrow; `amount` is the order's filled total after the fill."""
    return hashlib.sha256(key + _u256(amount)).digest()


def dst_escrow_salt(hashlock: bytes, taker: Address) -> bytes:
    return hashlib.sha256(hashlock + bytes(taker)).digest()
