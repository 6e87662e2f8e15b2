"""
Timelock stage arithmetic.

Stage layout of one swap (offsets measured from each escrow's own deployment):

    dst:  deployed --/-- PRIVATE WITHDRAWAL --/-- PUBLIC WITHDRAWAL --/-- PRIVATE CANCELLATION --
    src:  deployed --/-- PRIVATE WITHDRAWAL --/-- PUBLIC WITHDRAWAL --/-- PRIVATE CANCELLATION --/-- PUBLIC CANCELLATION --

Nothing here reads a clock; `now` always comes from the caller's block.
"""

from blueprints.cross_chain_swap.errors import InvalidTimelocks
from blueprints.cross_chain_swap.swap_types import Timelocks

#
# === STAGES ===
#

STAGE_DST_WITHDRAWAL = 0
STAGE_DST_PUBLIC_WITHDRAWAL = 1
STAGE_DST_CANCELLATION = 2
STAGE_SRC_WITHDRAWAL = 3
STAGE_SRC_PUBLIC_WITHDRAWAL = 4
STAGE_SRC_CANCELLATION = 5
STAGE_SRC_PUBLIC_CANCELLATION = 6

STAGE_NAMES = {
    STAGE_DST_WITHDRAWAL: "DstWithdrawal",
    STAGE_DST_PUBLIC_WITHDRAWAL: "DstPublicWithdrawal",
    STAGE_DST_CANCELLATION: "DstCancellation",
    STAGE_SRC_WITHDRAWAL: "SrcWithdrawal",
    STAGE_SRC_PUBLIC_WITHDRAWAL: "SrcPublicWithdrawal",
    STAGE_SRC_CANCELLATION: "SrcCancellation",
    STAGE_SRC_PUBLIC_CANCELLATION: "SrcPublicCancellation",
}

RESCUE_DELAY = 365 * 24 * 60 * 60  # 1 year


def stage_offset(timelocks: Timelocks, stage: int) -> int:
    if stage not in STAGE_NAMES:
        raise InvalidTimelocks(f"Unknown timelock stage {stage}")
    # offsets follow deployed_at in stage order
    return timelocks[stage + 1]


def stage_time(timelocks: Timelocks, stage: int) -> int:
    """Absolute timestamp at which `stage` starts."""
    return timelocks.deployed_at + stage_offset(timelocks, stage)


def is_stage_active(timelocks: Timelocks, stage: int, now: int) -> bool:
    return now >= stage_time(timelocks, stage)


def is_before_stage(timelocks: Timelocks, stage: int, now: int) -> bool:
    return now < stage_time(timelocks, stage)


def rescue_time(timelocks: Timelocks, rescue_delay: int) -> int:
    return timelocks.deployed_at + rescue_delay


def with_deployed_at(timelocks: Timelocks, now: int) -> Timelocks:
    return timelocks._replace(deployed_at=now)


def _validate_ordered(timelocks: Timelocks, stages: tuple[int, ...]) -> None:
    previous = 0
    for stage in stages:
        offset = stage_offset(timelocks, stage)
        if offset < 0:
            raise InvalidTimelocks(f"{STAGE_NAMES[stage]} offset must be >= 0")
        if offset < previous:
            raise InvalidTimelocks(f"{STAGE_NAMES[stage]} starts before the previous stage")
        previous = offset


def validate_src_schedule(timelocks: Timelocks) -> None:
    """Private withdrawal <= public withdrawal <= cancellation <= public cancellation."""
    _validate_ordered(
        timelocks,
        (
            STAGE_SRC_WITHDRAWAL,
            STAGE_SRC_PUBLIC_WITHDRAWAL,
            STAGE_SRC_CANCELLATION,
            STAGE_SRC_PUBLIC_CANCELLATION,
        ),
    )


def validate_dst_schedule(timelocks: Timelocks) -> None:
    _validate_ordered(
        timelocks,
        (
            STAGE_DST_WITHDRAWAL,
            STAGE_DST_PUBLIC_WITHDRAWAL,
            STAGE_DST_CANCELLATION,
        ),
    )
