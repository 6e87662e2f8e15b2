from hathor import (
    Address,
    Blueprint,
    Context,
    ContractId,
    export,
    public,
    view,
)

from blueprints.cross_chain_swap import escrow_core, events
from blueprints.cross_chain_swap.swap_types import EscrowStateView, Immutables
from blueprints.cross_chain_swap.timelocks import (
    RESCUE_DELAY,
    STAGE_DST_CANCELLATION,
    STAGE_DST_PUBLIC_WITHDRAWAL,
    STAGE_DST_WITHDRAWAL,
    is_stage_active,
    rescue_time,
    stage_time,
)

#
# === DESTINATION-CHAIN ESCROW ===
#
# Holds the resolver's tokens on the chain where the order is settled.
# Immutables here use destination-chain roles: maker = depositor,
# taker = recipient.
#
#   deployed --/-- PRIVATE WITHDRAWAL --/-- PUBLIC WITHDRAWAL --/-- PRIVATE CANCELLATION --
#


@export
class EscrowDst(Blueprint):
    """
    Destination-side hashed-timelock escrow. Deployed and funded by EscrowFactory.

    There is no public cancellation: the destination side unlocks first in the
    happy path and its cancellation window closes before the source side's.
    """

    owner: Address
    factory: ContractId
    immutables: Immutables

    is_withdrawn: bool
    is_cancelled: bool
    revealed_secret: bytes

    @public
    def initialize(self, ctx: Context, owner: Address, immutables: Immutables) -> None:
        escrow_core.initialize_escrow(self, ctx, owner, immutables)

 #
 # === WITHDRAW ===
 #

    @public
    def withdraw(self, ctx: Context, immutables: Immutables, secret: bytes) -> None:
        """Taker-only withdrawal: [DstWithdrawal, DstCancellation)."""
        escrow_core.withdraw(
            self,
            ctx,
            immutables,
            secret,
            start_stage=STAGE_DST_WITHDRAWAL,
            end_stage=STAGE_DST_CANCELLATION,
            caller_role="taker",
            expected_caller=self.immutables.taker,
        )

    @public
    def withdraw_public(self, ctx: Context, immutables: Immutables, secret: bytes) -> None:
        """Withdrawal by anyone on the taker's behalf: [DstPublicWithdrawal, DstCancellation)."""
        escrow_core.withdraw(
            self,
            ctx,
            immutables,
            secret,
            start_stage=STAGE_DST_PUBLIC_WITHDRAWAL,
            end_stage=STAGE_DST_CANCELLATION,
        )
        self.syscall.emit_event(events.encode_event(
            events.ESCROW_PUBLIC_WITHDRAWAL,
            escrow=self.syscall.get_contract_id(),
            caller=ctx.caller_id,
            token=self.immutables.token,
            amount=self.immutables.amount,
            secret=secret,
        ))

 #
 # === CANCEL ===
 #

    @public
    def cancel(self, ctx: Context, immutables: Immutables) -> None:
        """Same as cancel_private()."""
        self._cancel_private(ctx, immutables)

    @public
    def cancel_private(self, ctx: Context, immutables: Immutables) -> None:
        """Maker-only cancellation from DstCancellation on."""
        self._cancel_private(ctx, immutables)

    def _cancel_private(self, ctx: Context, immutables: Immutables) -> None:
        escrow_core.cancel(
            self,
            ctx,
            immutables,
            start_stage=STAGE_DST_CANCELLATION,
            caller_role="maker",
            expected_caller=self.immutables.maker,
        )
        self.syscall.emit_event(events.encode_event(
            events.ESCROW_PRIVATE_CANCELLED,
            escrow=self.syscall.get_contract_id(),
            caller=ctx.caller_id,
            token=self.immutables.token,
            amount=self.immutables.amount,
        ))

 #
 # === RESCUE ===
 #

    @public
    def rescue(self, ctx: Context, token: ContractId, amount: int) -> None:
        escrow_core.rescue(self, ctx, token, amount)

 #
 # === VIEWS ===
 #

    @view
    def get_immutables(self) -> Immutables:
        return self.immutables

    @view
    def get_state(self) -> EscrowStateView:
        return escrow_core.state_view(self)

    @view
    def get_revealed_secret(self) -> bytes:
        return self.revealed_secret

    @view
    def get_owner(self) -> Address:
        return self.owner

    @view
    def get_factory(self) -> ContractId:
        return self.factory

    @view
    def get_stage_time(self, stage: int) -> int:
        return stage_time(self.immutables.timelocks, stage)

    @view
    def is_stage_active(self, stage: int, current_timestamp: int) -> bool:
        return is_stage_active(self.immutables.timelocks, stage, current_timestamp)

    @view
    def get_rescue_time(self) -> int:
        return rescue_time(self.immutables.timelocks, RESCUE_DELAY)
