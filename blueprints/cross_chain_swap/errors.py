from hathor import NCFail

#
# === CUSTOM FAIL TYPES ===
#
# Every failure aborts the whole call; the runner rolls back storage and any
# nested contract calls made before the raise.
#


class SwapError(NCFail):
    """Base class for cross-chain swap failures."""


class Unauthorized(SwapError):
    """Caller lacks permission for this operation."""


class AlreadyWithdrawn(SwapError):
    """Escrow funds were already released to the taker."""


class AlreadyCancelled(SwapError):
    """Escrow funds were already returned to the maker."""


class InvalidImmutables(SwapError):
    """Supplied immutables do not match the stored snapshot."""


class InvalidSecret(SwapError):
    """Secret does not hash to the escrow hashlock."""


class TooEarly(SwapError):
    """The timelock stage guarding this operation has not started."""


class TooLate(SwapError):
    """The timelock window for this operation has closed."""


class InvalidMerkleProof(SwapError):
    """Partial-fill tranche was rejected by the fill watermark."""


class TransferFailed(SwapError):
    """Token contract reported a failed transfer."""


class DeploymentFailed(SwapError):
    """Factory could not instantiate an escrow."""


class InvalidCreationTime(SwapError):
    """Destination cancellation would start after source cancellation."""


class InvalidConfig(SwapError):
    """Invalid initialization or creation parameters."""


class InvalidTimelocks(InvalidConfig):
    """Timelock offsets are not in stage order."""
