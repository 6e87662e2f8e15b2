from hathor import (
    Blueprint,
    CallerId,
    Context,
    export,
    public,
    view,
)

from blueprints.cross_chain_swap import events
from blueprints.cross_chain_swap.errors import InvalidMerkleProof, Unauthorized
from blueprints.cross_chain_swap.swap_types import ZERO_LEAF, MerkleLeaf


@export
class MerkleStorageInvalidator(Blueprint):
    """
    Fill watermark for orders that can be filled in several tranches.

    For each tranche key the highest accepted leaf is stored. A new leaf is
    valid only if its amount is strictly greater than the stored one, so an
    order can be filled in increasing steps but a tranche can never be
    claimed twice or out of order.

    Only the writer (the factory that deployed this contract) may move a
    watermark; reads are open to everyone.
    """

    writer: CallerId
    last_validated: dict[bytes, MerkleLeaf]
    count_invalidated: int

    @public
    def initialize(self, ctx: Context) -> None:
        self.writer = ctx.caller_id
        self.last_validated = {}
        self.count_invalidated = 0

    def _assert_writer(self, ctx: Context) -> None:
        if ctx.caller_id != self.writer:
            raise Unauthorized("Only the factory can invalidate merkle leaves")

    def _get_last(self, key: bytes) -> MerkleLeaf:
        return self.last_validated.get(key, ZERO_LEAF)

    def _store(self, ctx: Context, key: bytes, leaf: MerkleLeaf) -> None:
        self.last_validated[key] = leaf
        self.count_invalidated += 1
        self.syscall.emit_event(events.encode_event(
            events.MERKLE_LEAF_INVALIDATED,
            key=key,
            leaf_hash=leaf.leaf_hash,
            amount=leaf.amount,
            caller=ctx.caller_id,
        ))

    @public
    def invalidate_merkle_leaf(self, ctx: Context, key: bytes, leaf: MerkleLeaf) -> None:
        """
        Writer-only: overwrite the watermark for `key` with `leaf`.

        No ordering check happens here; callers must ask is_leaf_valid() first.
        """
        self._assert_writer(ctx)
        self._store(ctx, key, leaf)

    @public
    def validate_and_invalidate(self, ctx: Context, key: bytes, leaf: MerkleLeaf) -> None:
        """Writer-only: accept `leaf` if it raises the watermark, fail otherwise."""
        self._assert_writer(ctx)
        last = self._get_last(key)
        if leaf.amount <= last.amount:
            raise InvalidMerkleProof(
                f"Tranche amount {leaf.amount} does not exceed the filled amount {last.amount}"
            )
        self._store(ctx, key, leaf)

 #
 # === VIEWS ===
 #

    @view
    def get_last_validated(self, key: bytes) -> MerkleLeaf:
        return self._get_last(key)

    @view
    def is_leaf_valid(self, key: bytes, leaf: MerkleLeaf) -> bool:
        return leaf.amount > self._get_last(key).amount

    @view
    def get_writer(self) -> CallerId:
        return self.writer

    @view
    def get_count_invalidated(self) -> int:
        return self.count_invalidated
