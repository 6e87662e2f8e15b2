from hathor import (
    Address,
    Blueprint,
    BlueprintId,
    Context,
    ContractId,
    export,
    public,
    view,
)
from hathor.nanocontracts.utils import derive_child_contract_id

from blueprints.cross_chain_swap import escrow_core, events
from blueprints.cross_chain_swap.errors import (
    DeploymentFailed,
    InvalidConfig,
    InvalidCreationTime,
    InvalidImmutables,
    InvalidMerkleProof,
    Unauthorized,
)
from blueprints.cross_chain_swap.hashlock import HASHLOCK_SIZE, commit
from blueprints.cross_chain_swap.swap_types import (
    EscrowIdsPage,
    ExtraData,
    FactoryCountersView,
    Immutables,
    MerkleLeaf,
    Order,
    OrderFillView,
    dst_escrow_salt,
    hash_order,
    partial_fill_salt,
    tranche_key,
)
from blueprints.cross_chain_swap.timelocks import (
    STAGE_DST_CANCELLATION,
    STAGE_SRC_CANCELLATION,
    stage_time,
    validate_dst_schedule,
    validate_src_schedule,
    with_deployed_at,
)

#
# === FACTORY CONSTANTS ===
#

INVALIDATOR_SALT = b"merkle-invalidator"
MAX_PAGE_LIMIT = 200


@export
class EscrowFactory(Blueprint):
    """
    Deploys and funds per-swap escrows.

    One factory runs on each chain of a swap. On the source chain it turns a
    (possibly partial) order fill into an EscrowSrc; on the destination chain
    it deploys the matching EscrowDst. Escrow ids are derived from the factory
    id, the escrow blueprint and a salt, so relayers can compute them before
    deployment with get_escrow_address().

    Deployment and funding happen in the same call: if pulling the depositor's
    tokens fails, the new escrow is rolled back with everything else.
    """

    owner: Address
    src_escrow_blueprint_id: BlueprintId
    dst_escrow_blueprint_id: BlueprintId
    invalidator: ContractId

 # Deployment registry (blueprint id + salt -> escrow id)
    deployments: dict[bytes, ContractId]
    deployed_escrows: dict[ContractId, bool]
    escrow_ids: list[ContractId]

 # Fill record per order hash
    filled_amounts: dict[bytes, int]
    fill_counts: dict[bytes, int]

 # Counters
    count_src: int
    count_dst: int
    count_partial_fills: int

    @public
    def initialize(
        self,
        ctx: Context,
        src_escrow_blueprint_id: BlueprintId,
        dst_escrow_blueprint_id: BlueprintId,
        invalidator_blueprint_id: BlueprintId,
    ) -> None:
        """
        Store escrow code identities and deploy this factory's fill watermark.

        The caller becomes the owner; escrows created here make the owner their
        rescue beneficiary.
        """
        if src_escrow_blueprint_id == dst_escrow_blueprint_id:
            raise InvalidConfig("Source and destination escrows must use different blueprints")

        self.owner = escrow_core.get_caller_address(ctx)
        self.src_escrow_blueprint_id = src_escrow_blueprint_id
        self.dst_escrow_blueprint_id = dst_escrow_blueprint_id

        self.deployments = {}
        self.deployed_escrows = {}
        self.escrow_ids = []

        self.filled_amounts = {}
        self.fill_counts = {}

        self.count_src = 0
        self.count_dst = 0
        self.count_partial_fills = 0

        invalidator_id, _ = self.syscall.create_contract(invalidator_blueprint_id, INVALIDATOR_SALT, [])
        self.invalidator = invalidator_id

 #
 # === INTERNAL HELPERS ===
 #

    def _deployment_key(self, blueprint_id: BlueprintId, salt: bytes) -> bytes:
        return bytes(blueprint_id) + salt

    def _predict(self, blueprint_id: BlueprintId, salt: bytes) -> ContractId:
        return derive_child_contract_id(self.syscall.get_contract_id(), salt, blueprint_id)

    def _deploy(self, blueprint_id: BlueprintId, salt: bytes, immutables: Immutables) -> ContractId:
        """Instantiate an escrow; a salt can be used once per blueprint."""
        if not salt:
            raise DeploymentFailed("Deployment salt must not be empty")
        key = self._deployment_key(blueprint_id, salt)
        if key in self.deployments:
            raise DeploymentFailed("An escrow was already deployed with this salt")

        escrow_id, _ = self.syscall.create_contract(blueprint_id, salt, [], self.owner, immutables)

        self.deployments[key] = escrow_id
        self.deployed_escrows[escrow_id] = True
        self.escrow_ids.append(escrow_id)
        return escrow_id

    def _fund(self, escrow_id: ContractId, immutables: Immutables) -> None:
        escrow_core.transfer_token_from(
            self.syscall,
            immutables.token,
            immutables.maker,
            escrow_id,
            immutables.amount,
        )
        self.syscall.emit_event(events.encode_event(
            events.DEPOSITED,
            escrow=escrow_id,
            depositor=immutables.maker,
            token=immutables.token,
            amount=immutables.amount,
        ))

 #
 # === SOURCE ESCROW ===
 #

    @public
    def create_src_escrow(
        self,
        ctx: Context,
        order: Order,
        extension: bytes,
        order_hash: bytes,
        taker: Address,
        making_amount: int,
        taking_amount: int,
        remaining_making_amount: int,
        extra_data: ExtraData,
    ) -> ContractId:
        """
        Lock `making_amount` of the order's maker asset for `taker`.

        A fill below the order's full making amount is a partial fill. Partial
        fills must be allowed by the order (order.parts_amount >= 2), at most
        order.parts_amount of them are accepted, and each one raises the
        order's fill watermark to the filled total, in the same call.

        remaining_making_amount must equal what this factory has not filled
        yet, so a stale or inflated value cannot overfill the order.

        Salt: order_hash for a full fill, so an order has at most one full-fill
        escrow; for partial fills it is derived from the tranche key and the
        filled total, which is unique per accepted tranche.
        """
        caller = escrow_core.get_caller_address(ctx)
        if caller != order.maker:
            raise Unauthorized("Only the order maker can lock its funds")
        if hash_order(order) != order_hash:
            raise InvalidConfig("Order hash does not match the order")

        if making_amount <= 0 or taking_amount <= 0:
            raise InvalidConfig("Fill amounts must be > 0")

        filled = self.filled_amounts.get(order_hash, 0)
        fills = self.fill_counts.get(order_hash, 0)
        if remaining_making_amount != order.making_amount - filled:
            raise InvalidConfig(
                f"Remaining amount {remaining_making_amount} does not match the unfilled "
                f"amount {order.making_amount - filled}"
            )
        if making_amount > remaining_making_amount:
            raise InvalidConfig("Fill exceeds the remaining order amount")
        if len(extra_data.hashlock) != HASHLOCK_SIZE:
            raise InvalidConfig("Hashlock must be 32 bytes")

        is_partial = making_amount < order.making_amount
        salt = order_hash
        if is_partial:
            if order.parts_amount < 2:
                raise InvalidMerkleProof("Order does not allow multiple fills")
            if fills >= order.parts_amount:
                raise InvalidMerkleProof(f"Order allows only {order.parts_amount} fills")
            key = tranche_key(order_hash, extra_data.hashlock)
            filled_total = filled + making_amount
            leaf = MerkleLeaf(leaf_hash=commit(extra_data.hashlock), amount=filled_total)
            self.syscall.call_public_method(self.invalidator, "validate_and_invalidate", [], key, leaf)
            salt = partial_fill_salt(key, filled_total)

        schedule = with_deployed_at(extra_data.timelocks, ctx.block.timestamp)
        validate_src_schedule(schedule)

        immutables = Immutables(
            order_hash=order_hash,
            hashlock=extra_data.hashlock,
            maker=order.maker,
            taker=taker,
            token=order.maker_asset,
            amount=making_amount,
            timelocks=schedule,
            src_factory=self.syscall.get_contract_id(),
            dst_factory=extra_data.dst_factory,
        )

        escrow_id = self._deploy(self.src_escrow_blueprint_id, salt, immutables)
        self._fund(escrow_id, immutables)

        self.filled_amounts[order_hash] = filled + making_amount
        self.fill_counts[order_hash] = fills + 1

        self.count_src += 1
        if is_partial:
            self.count_partial_fills += 1

        self.syscall.emit_event(events.encode_event(
            events.SRC_ESCROW_CREATED,
            escrow=escrow_id,
            order_hash=order_hash,
            hashlock=extra_data.hashlock,
            maker=order.maker,
            taker=taker,
            token=order.maker_asset,
            amount=making_amount,
            taking_amount=taking_amount,
            extension=extension,
        ))
        self.log.info("src escrow created", escrow=escrow_id.hex(), amount=making_amount, partial=is_partial)
        return escrow_id

 #
 # === DESTINATION ESCROW ===
 #

    @public
    def create_dst_escrow(
        self,
        ctx: Context,
        hashlock: bytes,
        taker: Address,
        immutables: Immutables,
    ) -> ContractId:
        """
        Lock the depositor's (immutables.maker) tokens for the taker on this chain.

        Timelocks: a non-zero immutables.timelocks.deployed_at is taken as the
        source escrow's deployment time; zero means "same time as this call".
        Destination cancellation must not start after source cancellation.
        """
        caller = escrow_core.get_caller_address(ctx)
        if caller != immutables.maker:
            raise Unauthorized("Only the depositor can create a destination escrow")
        if hashlock != immutables.hashlock:
            raise InvalidImmutables("Hashlock does not match the immutables")
        if taker != immutables.taker:
            raise InvalidImmutables("Taker does not match the immutables")
        if immutables.dst_factory != self.syscall.get_contract_id():
            raise InvalidImmutables("Immutables target another destination factory")
        if immutables.amount <= 0:
            raise InvalidConfig("Escrow amount must be > 0")

        validate_dst_schedule(immutables.timelocks)

        now = ctx.block.timestamp
        src_deployed_at = immutables.timelocks.deployed_at
        if src_deployed_at == 0:
            src_deployed_at = now
        src_cancellation_time = stage_time(
            with_deployed_at(immutables.timelocks, src_deployed_at),
            STAGE_SRC_CANCELLATION,
        )

        schedule = with_deployed_at(immutables.timelocks, now)
        if stage_time(schedule, STAGE_DST_CANCELLATION) > src_cancellation_time:
            raise InvalidCreationTime("Destination cancellation would start after source cancellation")

        stamped = immutables._replace(timelocks=schedule)
        escrow_id = self._deploy(self.dst_escrow_blueprint_id, dst_escrow_salt(hashlock, taker), stamped)
        self._fund(escrow_id, stamped)

        self.count_dst += 1

        self.syscall.emit_event(events.encode_event(
            events.DST_ESCROW_CREATED,
            escrow=escrow_id,
            hashlock=hashlock,
            maker=stamped.maker,
            taker=taker,
            token=stamped.token,
            amount=stamped.amount,
        ))
        self.log.info("dst escrow created", escrow=escrow_id.hex(), amount=stamped.amount)
        return escrow_id

 #
 # === VIEWS ===
 #

    @view
    def get_escrow_address(self, immutables: Immutables, salt: bytes) -> ContractId:
        """
        Predict the id an escrow deployed with `salt` will get.

        Source code identity when the immutables name this factory as the
        source factory, destination otherwise.
        """
        if immutables.src_factory == self.syscall.get_contract_id():
            return self._predict(self.src_escrow_blueprint_id, salt)
        return self._predict(self.dst_escrow_blueprint_id, salt)

    @view
    def get_src_escrow_address(self, salt: bytes) -> ContractId:
        return self._predict(self.src_escrow_blueprint_id, salt)

    @view
    def get_dst_escrow_address(self, salt: bytes) -> ContractId:
        return self._predict(self.dst_escrow_blueprint_id, salt)

    @view
    def get_src_escrow_class_hash(self) -> BlueprintId:
        return self.src_escrow_blueprint_id

    @view
    def get_dst_escrow_class_hash(self) -> BlueprintId:
        return self.dst_escrow_blueprint_id

    @view
    def generate_hashlock(self, secret: bytes) -> bytes:
        return commit(secret)

    @view
    def get_invalidator(self) -> ContractId:
        return self.invalidator

    @view
    def get_owner(self) -> Address:
        return self.owner

    @view
    def is_escrow_deployed(self, escrow_id: ContractId) -> bool:
        return self.deployed_escrows.get(escrow_id, False)

    @view
    def get_counters(self) -> FactoryCountersView:
        return FactoryCountersView(
            total_escrows=len(self.escrow_ids),
            count_src=self.count_src,
            count_dst=self.count_dst,
            count_partial_fills=self.count_partial_fills,
        )

    @view
    def get_order_fill(self, order_hash: bytes) -> OrderFillView:
        """Filled total and number of fills this factory accepted for an order."""
        return OrderFillView(
            filled_amount=self.filled_amounts.get(order_hash, 0),
            fills=self.fill_counts.get(order_hash, 0),
        )

    @view
    def get_escrow_ids_page(self, cursor: int, limit: int) -> EscrowIdsPage:
        """
        Return a page of deployed escrow ids, oldest first.

        - cursor is an index into the deployment list
        - next_cursor is 0 when no more data

        NOTE: Builds the page with an index loop; list slicing on typed storage
        lists is rejected by some PythonVM environments.
        """
        if cursor < 0:
            cursor = 0
        if limit <= 0:
            raise InvalidConfig("limit must be > 0")
        if limit > MAX_PAGE_LIMIT:
            raise InvalidConfig("limit too large")

        total = len(self.escrow_ids)
        if cursor >= total:
            return EscrowIdsPage(cursor_in=cursor, limit=limit, next_cursor=0, ids=[])

        end = cursor + limit
        if end > total:
            end = total

        ids: list[ContractId] = []
        i = cursor
        while i < end:
            ids.append(self.escrow_ids[i])
            i += 1

        next_cursor = 0 if end >= total else end
        return EscrowIdsPage(cursor_in=cursor, limit=limit, next_cursor=next_cursor, ids=ids)
