from hathor import (
    Address,
    Blueprint,
    CallerId,
    Context,
    ContractId,
    public,
)
from hathor_tests.nanocontracts.blueprints.unittest import BlueprintTestCase

from blueprints.cross_chain_swap import events
from blueprints.cross_chain_swap.escrow_dst import EscrowDst
from blueprints.cross_chain_swap.escrow_factory import EscrowFactory
from blueprints.cross_chain_swap.escrow_src import EscrowSrc
from blueprints.cross_chain_swap.hashlock import commit
from blueprints.cross_chain_swap.merkle_storage_invalidator import MerkleStorageInvalidator
from blueprints.cross_chain_swap.swap_token import SwapToken
from blueprints.cross_chain_swap.swap_types import (
    ExtraData,
    Immutables,
    Order,
    Timelocks,
    hash_order,
)

# Offsets used by most tests (seconds after each escrow's deployment)
DST_WITHDRAWAL = 300
DST_PUBLIC_WITHDRAWAL = 1200
DST_CANCELLATION = 43200
SRC_WITHDRAWAL = 1800
SRC_PUBLIC_WITHDRAWAL = 3600
SRC_CANCELLATION = 86400
SRC_PUBLIC_CANCELLATION = 90000


def make_timelocks(**overrides: int) -> Timelocks:
    values = dict(
        deployed_at=0,
        dst_withdrawal=DST_WITHDRAWAL,
        dst_public_withdrawal=DST_PUBLIC_WITHDRAWAL,
        dst_cancellation=DST_CANCELLATION,
        src_withdrawal=SRC_WITHDRAWAL,
        src_public_withdrawal=SRC_PUBLIC_WITHDRAWAL,
        src_cancellation=SRC_CANCELLATION,
        src_public_cancellation=SRC_PUBLIC_CANCELLATION,
    )
    values.update(overrides)
    return Timelocks(**values)


class ReentrantToken(Blueprint):
    """
    Token that calls back into an escrow while the escrow is paying out.

    transfer_from() always succeeds without moving anything, so escrows can be
    funded with it; transfer() re-enters `target` with the stored immutables
    when armed.
    """

    target: ContractId
    reenter_method: str
    immutables: Immutables
    secret: bytes

    @public
    def initialize(self, ctx: Context) -> None:
        self.reenter_method = ""
        self.secret = b""

    @public
    def arm(self, ctx: Context, target: ContractId, reenter_method: str, immutables: Immutables, secret: bytes) -> None:
        self.target = target
        self.reenter_method = reenter_method
        self.immutables = immutables
        self.secret = secret

    @public
    def transfer_from(self, ctx: Context, owner: CallerId, to: CallerId, amount: int) -> bool:
        return True

    @public
    def transfer(self, ctx: Context, to: CallerId, amount: int) -> bool:
        if self.reenter_method == "withdraw_public":
            self.syscall.call_public_method(self.target, "withdraw_public", [], self.immutables, self.secret)
        elif self.reenter_method == "cancel_public":
            self.syscall.call_public_method(self.target, "cancel_public", [], self.immutables)
        return True


class SwapTestCase(BlueprintTestCase):
    """
    Two factories on one runner: `src_factory_id` plays the order's chain and
    `dst_factory_id` the settlement chain. One SwapToken stands in for the
    asset on both sides.

    Actors:
      - maker: order maker on the source chain
      - taker: resolver filling the order; depositor on the destination chain
      - user: receives the destination-side funds
      - relayer: third party using the public paths
    """

    def setUp(self) -> None:
        super().setUp()

        # --- Register blueprints ---
        self.src_blueprint_id = self.gen_random_blueprint_id()
        self.dst_blueprint_id = self.gen_random_blueprint_id()
        self.invalidator_blueprint_id = self.gen_random_blueprint_id()
        self.factory_blueprint_id = self.gen_random_blueprint_id()
        self.token_blueprint_id = self.gen_random_blueprint_id()
        self.reentrant_token_blueprint_id = self.gen_random_blueprint_id()

        self.nc_catalog.blueprints[self.src_blueprint_id] = EscrowSrc
        self.nc_catalog.blueprints[self.dst_blueprint_id] = EscrowDst
        self.nc_catalog.blueprints[self.invalidator_blueprint_id] = MerkleStorageInvalidator
        self.nc_catalog.blueprints[self.factory_blueprint_id] = EscrowFactory
        self.nc_catalog.blueprints[self.token_blueprint_id] = SwapToken
        self.nc_catalog.blueprints[self.reentrant_token_blueprint_id] = ReentrantToken

        # --- Actors ---
        self.owner = self.gen_random_address()
        self.maker = self.gen_random_address()
        self.taker = self.gen_random_address()
        self.user = self.gen_random_address()
        self.relayer = self.gen_random_address()

        # --- Token ---
        self.token_id = self.gen_random_contract_id()
        ctx = self.create_context(caller_id=self.owner, timestamp=1)
        self.runner.create_contract(self.token_id, self.token_blueprint_id, ctx, "Swap Token", "SWP", 8)

        # --- Factories ---
        self.src_factory_id = self.gen_random_contract_id()
        self.dst_factory_id = self.gen_random_contract_id()
        for factory_id in (self.src_factory_id, self.dst_factory_id):
            ctx = self.create_context(caller_id=self.owner, timestamp=1)
            self.runner.create_contract(
                factory_id,
                self.factory_blueprint_id,
                ctx,
                self.src_blueprint_id,
                self.dst_blueprint_id,
                self.invalidator_blueprint_id,
            )

        self.secret = b"\x42" * 32
        self.hashlock = commit(self.secret)

    # -----------------------
    # Token helpers
    # -----------------------

    def _mint(self, to, amount: int) -> None:
        ctx = self.create_context(caller_id=self.owner, timestamp=1)
        self.runner.call_public_method(self.token_id, "mint", ctx, to, amount)

    def _approve(self, owner: Address, spender, amount: int) -> None:
        ctx = self.create_context(caller_id=owner, timestamp=1)
        self.runner.call_public_method(self.token_id, "approve", ctx, spender, amount)

    def _balance(self, account) -> int:
        return self.runner.call_view_method(self.token_id, "balance_of", account)

    def _fund_maker(self, amount: int) -> None:
        self._mint(self.maker, amount)
        self._approve(self.maker, self.src_factory_id, amount)

    # -----------------------
    # Source side helpers
    # -----------------------

    def _order(
        self,
        making_amount: int = 1000,
        salt: int = 1,
        parts_amount: int = 1,
        maker_asset: ContractId = None,
    ) -> tuple[Order, bytes]:
        order = Order(
            salt=salt,
            maker=self.maker,
            receiver=self.maker,
            maker_asset=maker_asset or self.token_id,
            taker_asset=b"\x01" * 32,
            making_amount=making_amount,
            taking_amount=making_amount * 2,
            parts_amount=parts_amount,
        )
        return order, hash_order(order)

    def _extra_data(self, hashlock: bytes = b"", **timelock_overrides: int) -> ExtraData:
        return ExtraData(
            hashlock=hashlock or self.hashlock,
            dst_factory=self.dst_factory_id,
            timelocks=make_timelocks(**timelock_overrides),
        )

    def _create_src(
        self,
        ts: int,
        order: Order,
        order_hash: bytes,
        making_amount: int,
        extra_data: ExtraData,
        remaining_making_amount: int = -1,
        caller: Address = None,
    ) -> ContractId:
        if remaining_making_amount < 0:
            remaining_making_amount = order.making_amount
        ctx = self.create_context(caller_id=caller or self.maker, timestamp=ts)
        return self.runner.call_public_method(
            self.src_factory_id,
            "create_src_escrow",
            ctx,
            order,
            b"",
            order_hash,
            self.taker,
            making_amount,
            making_amount * 2,
            remaining_making_amount,
            extra_data,
        )

    def _create_full_src(self, ts: int, amount: int = 1000) -> ContractId:
        self._fund_maker(amount)
        order, order_hash = self._order(making_amount=amount)
        return self._create_src(ts, order, order_hash, amount, self._extra_data())

    # -----------------------
    # Destination side helpers
    # -----------------------

    def _dst_immutables(self, amount: int = 500, hashlock: bytes = b"", **timelock_overrides: int) -> Immutables:
        return Immutables(
            order_hash=b"\x07" * 32,
            hashlock=hashlock or self.hashlock,
            maker=self.taker,
            taker=self.user,
            token=self.token_id,
            amount=amount,
            timelocks=make_timelocks(**timelock_overrides),
            src_factory=self.src_factory_id,
            dst_factory=self.dst_factory_id,
        )

    def _create_dst(self, ts: int, immutables: Immutables, caller: Address = None) -> ContractId:
        ctx = self.create_context(caller_id=caller or immutables.maker, timestamp=ts)
        return self.runner.call_public_method(
            self.dst_factory_id,
            "create_dst_escrow",
            ctx,
            immutables.hashlock,
            immutables.taker,
            immutables,
        )

    def _fund_resolver(self, amount: int) -> None:
        self._mint(self.taker, amount)
        self._approve(self.taker, self.dst_factory_id, amount)

    # -----------------------
    # Escrow helpers
    # -----------------------

    def _immutables(self, escrow_id: ContractId) -> Immutables:
        return self.runner.call_view_method(escrow_id, "get_immutables")

    def _state(self, escrow_id: ContractId):
        return self.runner.call_view_method(escrow_id, "get_state")

    def _call(self, escrow_id: ContractId, method: str, caller: Address, ts: int, *args) -> None:
        ctx = self.create_context(caller_id=caller, timestamp=ts)
        self.runner.call_public_method(escrow_id, method, ctx, *args)

    def _last_events(self, name: str) -> list[dict]:
        """Decoded notifications of the last runner call with event name `name`."""
        call_info = self.runner.get_last_call_info()
        decoded = [events.decode_event(event.data) for event in call_info.nc_logger.__events__]
        return [event for event in decoded if event["event"] == name]

    # -----------------------
    # Reentrancy helpers
    # -----------------------

    def _create_reentrant_src(self, ts: int, amount: int = 1000) -> tuple[ContractId, ContractId]:
        """Full-fill source escrow whose token is a ReentrantToken. Returns (token_id, escrow_id)."""
        token_id = self.gen_random_contract_id()
        ctx = self.create_context(caller_id=self.owner, timestamp=1)
        self.runner.create_contract(token_id, self.reentrant_token_blueprint_id, ctx)

        order, order_hash = self._order(making_amount=amount, salt=99, maker_asset=token_id)
        escrow_id = self._create_src(ts, order, order_hash, amount, self._extra_data())
        return token_id, escrow_id

    def _arm(self, token_id: ContractId, escrow_id: ContractId, method: str, immutables: Immutables) -> None:
        ctx = self.create_context(caller_id=self.owner, timestamp=1)
        self.runner.call_public_method(token_id, "arm", ctx, escrow_id, method, immutables, self.secret)
