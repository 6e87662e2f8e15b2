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
    STAGE_SRC_CANCELLATION,
    STAGE_SRC_PUBLIC_CANCELLATION,
    STAGE_SRC_PUBLIC_WITHDRAWAL,
    STAGE_SRC_WITHDRAWAL,
    is_stage_active,
    rescue_time,
    stage_time,
)

#
# === SOURCE-CHAIN ESCROW ===
#
# Holds the maker's tokens on the chain where the order was placed.
#
#   deployed --/-- PRIVATE WITHDRAWAL --/-- PUBLIC WITHDRAWAL --/--
#     PRIVATE CANCELLATION --/-- PUBLIC CANCELLATION --
#


@export
class EscrowSrc(Blueprint):
    """
    Source-side hashed-timelock escrow. Deployed and funded by EscrowFactory.

    Withdrawals always pay the taker; cancellations always refund the maker.

    Roles:
      - withdraw(): early claim, checked against the maker identity
      - withdraw_public(): anyone, once the public window opens
      - cancel_private()/cancel(): maker, once cancellation opens
      - cancel_public(): anyone, once public cancellation opens
      - rescue(): factory owner, one rescue delay after deployment
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
        """Private withdrawal: [SrcWithdrawal, SrcCancellation)."""
        # The early-claim check uses the maker role; the payout still goes to the taker.
        escrow_core.withdraw(
            self,
            ctx,
            immutables,
            secret,
            start_stage=STAGE_SRC_WITHDRAWAL,
            end_stage=STAGE_SRC_CANCELLATION,
            caller_role="maker",
            expected_caller=self.immutables.maker,
        )

    @public
    def withdraw_public(self, ctx: Context, immutables: Immutables, secret: bytes) -> None:
        """Public withdrawal by anyone: [SrcPublicWithdrawal, SrcCancellation)."""
        escrow_core.withdraw(
            self,
            ctx,
            immutables,
            secret,
            start_stage=STAGE_SRC_PUBLIC_WITHDRAWAL,
            end_stage=STAGE_SRC_CANCELLATION,
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
        """Maker-only cancellation from SrcCancellation on."""
        self._cancel_private(ctx, immutables)

    @public
    def cancel_public(self, ctx: Context, immutables: Immutables) -> None:
        """Cancellation by anyone from SrcPublicCancellation on. Funds still go to the maker."""
        escrow_core.cancel(self, ctx, immutables, start_stage=STAGE_SRC_PUBLIC_CANCELLATION)
        self.syscall.emit_event(events.encode_event(
            events.ESCROW_PUBLIC_CANCELLED,
            escrow=self.syscall.get_contract_id(),
            caller=ctx.caller_id,
            token=self.immutables.token,
            amount=self.immutables.amount,
        ))

    def _cancel_private(self, ctx: Context, immutables: Immutables) -> None:
        escrow_core.cancel(
            self,
            ctx,
            immutables,
            start_stage=STAGE_SRC_CANCELLATION,
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
        """Owner-only: sweep stray tokens after RESCUE_DELAY."""
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
        """Secret published by the withdrawal, or b"" while unrevealed."""
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
        """NOTE: @view cannot access Context, so caller must pass current_timestamp."""
        return is_stage_active(self.immutables.timelocks, stage, current_timestamp)

    @view
    def get_rescue_time(self) -> int:
        return rescue_time(self.immutables.timelocks, RESCUE_DELAY)
