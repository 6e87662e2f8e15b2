import hashlib

import pytest

from blueprints.cross_chain_swap import events, timelocks
from blueprints.cross_chain_swap.errors import InvalidConfig, InvalidTimelocks
from blueprints.cross_chain_swap.hashlock import HASHLOCK_SIZE, commit, validate
from blueprints.cross_chain_swap.swap_test_case import make_timelocks
from blueprints.cross_chain_swap.swap_types import (
    Order,
    dst_escrow_salt,
    hash_order,
    partial_fill_salt,
    tranche_key,
)

MAKER = b"\x11" * 25
TOKEN = b"\x22" * 32


def _order(**overrides) -> Order:
    values = dict(
        salt=7,
        maker=MAKER,
        receiver=MAKER,
        maker_asset=TOKEN,
        taker_asset=b"\x33" * 32,
        making_amount=1000,
        taking_amount=2000,
        parts_amount=1,
    )
    values.update(overrides)
    return Order(**values)


# -----------------------
# Hashlock
# -----------------------

def test_commit_is_sha256():
    secret = b"open sesame"
    assert commit(secret) == hashlib.sha256(secret).digest()
    assert len(commit(secret)) == HASHLOCK_SIZE


def test_validate_accepts_only_the_preimage():
    hashlock = commit(b"secret")
    assert validate(b"secret", hashlock)
    assert not validate(b"Secret", hashlock)
    assert not validate(b"", hashlock)


# -----------------------
# Timelocks
# -----------------------

def test_stage_time_adds_offset_to_deployment():
    schedule = make_timelocks(deployed_at=10_000)
    assert timelocks.stage_time(schedule, timelocks.STAGE_DST_WITHDRAWAL) == 10_300
    assert timelocks.stage_time(schedule, timelocks.STAGE_SRC_WITHDRAWAL) == 11_800
    assert timelocks.stage_time(schedule, timelocks.STAGE_SRC_CANCELLATION) == 96_400
    assert timelocks.stage_time(schedule, timelocks.STAGE_SRC_PUBLIC_CANCELLATION) == 100_000


def test_stage_boundaries_are_inclusive_at_start():
    schedule = make_timelocks(deployed_at=10_000)
    start = timelocks.stage_time(schedule, timelocks.STAGE_SRC_WITHDRAWAL)

    assert not timelocks.is_stage_active(schedule, timelocks.STAGE_SRC_WITHDRAWAL, start - 1)
    assert timelocks.is_stage_active(schedule, timelocks.STAGE_SRC_WITHDRAWAL, start)
    assert timelocks.is_before_stage(schedule, timelocks.STAGE_SRC_WITHDRAWAL, start - 1)
    assert not timelocks.is_before_stage(schedule, timelocks.STAGE_SRC_WITHDRAWAL, start)


def test_unknown_stage_is_rejected():
    schedule = make_timelocks()
    with pytest.raises(InvalidTimelocks):
        timelocks.stage_time(schedule, 7)
    with pytest.raises(InvalidTimelocks):
        timelocks.stage_offset(schedule, -1)


def test_with_deployed_at_keeps_offsets():
    schedule = make_timelocks(deployed_at=5)
    stamped = timelocks.with_deployed_at(schedule, 1_000)
    assert stamped.deployed_at == 1_000
    assert stamped[1:] == schedule[1:]


def test_rescue_time():
    schedule = make_timelocks(deployed_at=1_000)
    assert timelocks.rescue_time(schedule, timelocks.RESCUE_DELAY) == 1_000 + 365 * 24 * 60 * 60


def test_schedule_validation():
    timelocks.validate_src_schedule(make_timelocks())
    timelocks.validate_dst_schedule(make_timelocks())

    with pytest.raises(InvalidTimelocks):
        timelocks.validate_src_schedule(make_timelocks(src_cancellation=1000))
    with pytest.raises(InvalidTimelocks):
        timelocks.validate_dst_schedule(make_timelocks(dst_withdrawal=-1))
    with pytest.raises(InvalidTimelocks):
        timelocks.validate_dst_schedule(make_timelocks(dst_public_withdrawal=100))

    # equal offsets are allowed (zero-length windows)
    timelocks.validate_src_schedule(make_timelocks(src_public_withdrawal=1800))


def test_invalid_timelocks_is_a_config_error():
    assert issubclass(InvalidTimelocks, InvalidConfig)


# -----------------------
# Order hashing and salts
# -----------------------

def test_hash_order_is_deterministic_and_field_sensitive():
    assert hash_order(_order()) == hash_order(_order())
    assert len(hash_order(_order())) == 32
    assert hash_order(_order()) != hash_order(_order(salt=8))
    assert hash_order(_order()) != hash_order(_order(making_amount=999))
    assert hash_order(_order()) != hash_order(_order(receiver=b"\x12" * 25))
    assert hash_order(_order()) != hash_order(_order(parts_amount=4))


def test_salts_differ_per_tranche_and_taker():
    order_hash = hash_order(_order())
    key = tranche_key(order_hash, commit(b"root"))

    assert key != tranche_key(order_hash, commit(b"other root"))
    assert partial_fill_salt(key, 300) != partial_fill_salt(key, 600)
    assert partial_fill_salt(key, 300) == partial_fill_salt(key, 300)
    assert dst_escrow_salt(commit(b"root"), MAKER) != dst_escrow_salt(commit(b"root"), b"\x12" * 25)


# -----------------------
# Events
# -----------------------

def test_events_render_bytes_as_hex():
    data = events.encode_event(events.ESCROW_WITHDRAWAL, secret=b"\x01\x02", amount=5, public=False)
    assert data == b'{"amount":5,"event":"EscrowWithdrawal","public":false,"secret":"0102"}'
    assert events.decode_event(data) == {
        "event": "EscrowWithdrawal",
        "secret": "0102",
        "amount": 5,
        "public": False,
    }
