"""
State machine shared by the source and destination escrow blueprints.

An escrow starts ACTIVE once the factory has deployed and funded it, and ends
in exactly one terminal state:

    ACTIVE --withdraw(secret)--> WITHDRAWN
    ACTIVE --cancel-----------> CANCELLED

Every privileged call re-supplies the escrow's immutables, which are compared
field by field against the snapshot stored at construction. Terminal flags are
written before tokens leave the escrow, so a token that calls back into the
escrow hits the terminal-state guard.

The helpers below take the escrow blueprint instance (`escrow`, an EscrowSrc
or EscrowDst) and only touch the fields both declare: `owner`, `factory`,
`immutables`, `is_withdrawn`, `is_cancelled` and `revealed_secret`.
"""

from typing import TYPE_CHECKING, Any, Optional, Union

from hathor import Address, CallerId, Context, ContractId

from blueprints.cross_chain_swap import events, hashlock, timelocks
from blueprints.cross_chain_swap.errors import (
    AlreadyCancelled,
    AlreadyWithdrawn,
    InvalidConfig,
    InvalidImmutables,
    InvalidSecret,
    TooEarly,
    TooLate,
    TransferFailed,
    Unauthorized,
)
from blueprints.cross_chain_swap.swap_types import (
    STATUS_ACTIVE,
    STATUS_CANCELLED,
    STATUS_WITHDRAWN,
    EscrowStateView,
    Immutables,
    Timelocks,
)

if TYPE_CHECKING:
    from blueprints.cross_chain_swap.escrow_dst import EscrowDst
    from blueprints.cross_chain_swap.escrow_src import EscrowSrc

    Escrow = Union[EscrowSrc, EscrowDst]

#
# === CALLER / TOKEN HELPERS ===
#


def get_caller_address(ctx: Context) -> Address:
    """Returns the caller's user address; contracts are not accepted."""
    caller = ctx.get_caller_address()
    if caller is None:
        raise Unauthorized("Caller must be a user address")
    return caller


def assert_caller(caller: Address, expected: Address, role: str) -> None:
    if caller != expected:
        raise Unauthorized(f"Only the {role} can call this method")


def transfer_token(syscall: Any, token: ContractId, to: CallerId, amount: int) -> None:
    ok = syscall.call_public_method(token, "transfer", [], to, amount)
    if not ok:
        raise TransferFailed(f"Transfer of {amount} units failed")


def transfer_token_from(syscall: Any, token: ContractId, owner: CallerId, to: CallerId, amount: int) -> None:
    ok = syscall.call_public_method(token, "transfer_from", [], owner, to, amount)
    if not ok:
        raise TransferFailed(f"Pulling {amount} units from the depositor failed")


#
# === VALIDATION ===
#


def assert_valid_immutables(stored: Immutables, supplied: Immutables) -> None:
    for name in Immutables._fields:
        if getattr(stored, name) != getattr(supplied, name):
            raise InvalidImmutables(f"Immutables field '{name}' does not match this escrow")


def assert_active(is_withdrawn: bool, is_cancelled: bool) -> None:
    if is_withdrawn:
        raise AlreadyWithdrawn("Escrow has already been withdrawn")
    if is_cancelled:
        raise AlreadyCancelled("Escrow has already been cancelled")


def assert_after(schedule: Timelocks, stage: int, now: int) -> None:
    if not timelocks.is_stage_active(schedule, stage, now):
        raise TooEarly(f"{timelocks.STAGE_NAMES[stage]} has not started")


def assert_before(schedule: Timelocks, stage: int, now: int) -> None:
    if not timelocks.is_before_stage(schedule, stage, now):
        raise TooLate(f"{timelocks.STAGE_NAMES[stage]} has already started")


def assert_valid_secret(secret: bytes, expected: bytes) -> None:
    if not hashlock.validate(secret, expected):
        raise InvalidSecret("Secret does not match the hashlock")


#
# === LIFECYCLE ===
#


def initialize_escrow(escrow: "Escrow", ctx: Context, owner: Address, immutables: Immutables) -> None:
    """Record the snapshot; `deployed_at` is stamped with the deployment block time."""
    factory = ctx.get_caller_contract_id()
    if factory is None:
        raise Unauthorized("Escrows can only be deployed by a factory")
    if immutables.amount <= 0:
        raise InvalidConfig("Escrow amount must be > 0")

    stamped = timelocks.with_deployed_at(immutables.timelocks, ctx.block.timestamp)

    escrow.owner = owner
    escrow.factory = factory
    escrow.immutables = immutables._replace(timelocks=stamped)
    escrow.is_withdrawn = False
    escrow.is_cancelled = False
    escrow.revealed_secret = b""


def withdraw(
    escrow: "Escrow",
    ctx: Context,
    immutables: Immutables,
    secret: bytes,
    start_stage: int,
    end_stage: int,
    caller_role: Optional[str] = None,
    expected_caller: Optional[Address] = None,
) -> None:
    """
    Release the escrowed amount to the taker.

    Check order: immutables, terminal state, caller (private paths only),
    window start, window end, secret. A window violation therefore wins
    over a bad secret.
    """
    stored = escrow.immutables
    assert_valid_immutables(stored, immutables)
    assert_active(escrow.is_withdrawn, escrow.is_cancelled)
    if expected_caller is not None:
        assert_caller(get_caller_address(ctx), expected_caller, caller_role or "authorized party")

    now = ctx.block.timestamp
    assert_after(stored.timelocks, start_stage, now)
    assert_before(stored.timelocks, end_stage, now)
    assert_valid_secret(secret, stored.hashlock)

    escrow.is_withdrawn = True
    escrow.revealed_secret = secret

    transfer_token(escrow.syscall, stored.token, stored.taker, stored.amount)
    escrow.syscall.emit_event(events.encode_event(
        events.ESCROW_WITHDRAWAL,
        escrow=escrow.syscall.get_contract_id(),
        caller=ctx.caller_id,
        taker=stored.taker,
        token=stored.token,
        amount=stored.amount,
        secret=secret,
    ))


def cancel(
    escrow: "Escrow",
    ctx: Context,
    immutables: Immutables,
    start_stage: int,
    caller_role: Optional[str] = None,
    expected_caller: Optional[Address] = None,
) -> None:
    """Return the escrowed amount to the maker once `start_stage` has begun."""
    stored = escrow.immutables
    assert_valid_immutables(stored, immutables)
    assert_active(escrow.is_withdrawn, escrow.is_cancelled)
    if expected_caller is not None:
        assert_caller(get_caller_address(ctx), expected_caller, caller_role or "authorized party")

    assert_after(stored.timelocks, start_stage, ctx.block.timestamp)

    escrow.is_cancelled = True

    transfer_token(escrow.syscall, stored.token, stored.maker, stored.amount)
    escrow.syscall.emit_event(events.encode_event(
        events.ESCROW_CANCELLED,
        escrow=escrow.syscall.get_contract_id(),
        caller=ctx.caller_id,
        maker=stored.maker,
        token=stored.token,
        amount=stored.amount,
    ))


def rescue(escrow: "Escrow", ctx: Context, token: ContractId, amount: int) -> None:
    """Owner-only sweep of any token balance, one rescue delay after deployment."""
    assert_caller(get_caller_address(ctx), escrow.owner, "owner")
    if amount <= 0:
        raise InvalidConfig("Rescue amount must be > 0")

    unlock_at = timelocks.rescue_time(escrow.immutables.timelocks, timelocks.RESCUE_DELAY)
    if ctx.block.timestamp < unlock_at:
        raise TooEarly("Rescue delay has not elapsed")

    transfer_token(escrow.syscall, token, escrow.owner, amount)
    escrow.syscall.emit_event(events.encode_event(
        events.FUNDS_RESCUED,
        escrow=escrow.syscall.get_contract_id(),
        owner=escrow.owner,
        token=token,
        amount=amount,
    ))
    escrow.log.info("funds rescued", token=token.hex(), amount=amount)


def state_view(escrow: "Escrow") -> EscrowStateView:
    status = STATUS_ACTIVE
    if escrow.is_withdrawn:
        status = STATUS_WITHDRAWN
    elif escrow.is_cancelled:
        status = STATUS_CANCELLED
    return EscrowStateView(
        is_withdrawn=escrow.is_withdrawn,
        is_cancelled=escrow.is_cancelled,
        status=status,
    )
