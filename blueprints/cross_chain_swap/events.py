"""
Notification payloads for relayers and indexers.

Each event is a compact JSON object: {"event": <name>, <field>: <value>, ...}.
Byte strings (addresses, contract ids, hashes, secrets) are rendered as hex.
"""

import json

SRC_ESCROW_CREATED = "SrcEscrowCreated"
DST_ESCROW_CREATED = "DstEscrowCreated"
DEPOSITED = "Deposited"
ESCROW_WITHDRAWAL = "EscrowWithdrawal"
ESCROW_PUBLIC_WITHDRAWAL = "EscrowPublicWithdrawal"
ESCROW_CANCELLED = "EscrowCancelled"
ESCROW_PUBLIC_CANCELLED = "EscrowPublicCancelled"
ESCROW_PRIVATE_CANCELLED = "EscrowPrivateCancelled"
FUNDS_RESCUED = "FundsRescued"
MERKLE_LEAF_INVALIDATED = "MerkleLeafInvalidated"
TRANSFER = "Transfer"
APPROVAL = "Approval"
MINT = "Mint"


def _render(value: object) -> object:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if isinstance(value, (bool, int, str)) or value is None:
        return value
    if isinstance(value, tuple):
        return [_render(v) for v in value]
    return str(value)


def encode_event(name: str, **fields: object) -> bytes:
    payload = {"event": name}
    for key, value in fields.items():
        payload[key] = _render(value)
    return json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")


def decode_event(data: bytes) -> dict:
    return json.loads(data.decode("utf-8"))
