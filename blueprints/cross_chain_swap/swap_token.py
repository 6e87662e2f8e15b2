from typing import NamedTuple

from hathor import (
    Address,
    Blueprint,
    CallerId,
    Context,
    export,
    public,
    view,
)

from blueprints.cross_chain_swap import events
from blueprints.cross_chain_swap.errors import InvalidConfig, Unauthorized


class TokenInfoView(NamedTuple):
    admin: str
    name: str
    symbol: str
    decimals: int
    total_supply: int


def _allowance_key(owner: CallerId, spender: CallerId) -> bytes:
    # owner length prefix keeps (owner, spender) pairs of different id sizes apart
    owner_bytes = bytes(owner)
    return len(owner_bytes).to_bytes(1, "big") + owner_bytes + bytes(spender)


@export
class SwapToken(Blueprint):
    """
    Minimal fungible token ledger used as the escrow token collaborator.

    Balances and allowances are kept in contract storage and keyed by caller
    id, so both user addresses and contracts (escrows, factories) can hold
    tokens.

    transfer()/transfer_from() follow a boolean-success convention: an
    insufficient balance or allowance returns False and changes nothing.
    """

    admin: Address
    name: str
    symbol: str
    decimals: int
    total_supply: int

    balances: dict[CallerId, int]
    allowances: dict[bytes, int]

    @public
    def initialize(self, ctx: Context, name: str, symbol: str, decimals: int) -> None:
        admin = ctx.get_caller_address()
        if admin is None:
            raise Unauthorized("Token admin must be a user address")
        if decimals < 0:
            raise InvalidConfig("decimals must be >= 0")

        self.admin = admin
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.total_supply = 0
        self.balances = {}
        self.allowances = {}

    @public
    def mint(self, ctx: Context, to: CallerId, amount: int) -> None:
        """Admin-only: create `amount` new units for `to`."""
        if ctx.caller_id != self.admin:
            raise Unauthorized("Only the token admin can mint")
        if amount <= 0:
            raise InvalidConfig("Mint amount must be > 0")

        self.balances[to] = self.balances.get(to, 0) + amount
        self.total_supply += amount
        self.syscall.emit_event(events.encode_event(events.MINT, to=to, amount=amount))

    @public
    def approve(self, ctx: Context, spender: CallerId, amount: int) -> None:
        if amount < 0:
            raise InvalidConfig("Allowance must be >= 0")
        self.allowances[_allowance_key(ctx.caller_id, spender)] = amount
        self.syscall.emit_event(events.encode_event(
            events.APPROVAL,
            owner=ctx.caller_id,
            spender=spender,
            amount=amount,
        ))

    @public
    def transfer(self, ctx: Context, to: CallerId, amount: int) -> bool:
        return self._move(ctx.caller_id, to, amount)

    @public
    def transfer_from(self, ctx: Context, owner: CallerId, to: CallerId, amount: int) -> bool:
        """Move `amount` from `owner` to `to` using the caller's allowance."""
        key = _allowance_key(owner, ctx.caller_id)
        allowed = self.allowances.get(key, 0)
        if amount < 0 or allowed < amount:
            return False
        if not self._move(owner, to, amount):
            return False
        self.allowances[key] = allowed - amount
        return True

    def _move(self, sender: CallerId, to: CallerId, amount: int) -> bool:
        if amount < 0:
            return False
        balance = self.balances.get(sender, 0)
        if balance < amount:
            return False

        self.balances[sender] = balance - amount
        self.balances[to] = self.balances.get(to, 0) + amount
        self.syscall.emit_event(events.encode_event(
            events.TRANSFER,
            sender=sender,
            to=to,
            amount=amount,
        ))
        return True

 #
 # === VIEWS ===
 #

    @view
    def balance_of(self, account: CallerId) -> int:
        return self.balances.get(account, 0)

    @view
    def allowance(self, owner: CallerId, spender: CallerId) -> int:
        return self.allowances.get(_allowance_key(owner, spender), 0)

    @view
    def get_total_supply(self) -> int:
        return self.total_supply

    @view
    def get_info(self) -> TokenInfoView:
        return TokenInfoView(
            admin=str(self.admin),
            name=self.name,
            symbol=self.symbol,
            decimals=self.decimals,
            total_supply=self.total_supply,
        )
