"""Tests for timestamp parsing and life count computation."""
from datetime import datetime, timedelta, timezone

import pytest

from llu_sync.utils.normalization import (
    DISTANT_PAST,
    compute_life_count,
    epoch_to_datetime,
    is_distant_past,
    parse_llu_timestamp,
    serial_matches,
)

from conftest import ACTIVATION_EPOCH, ACTIVATION_TIME


def test_parse_llu_timestamp():
    utc = timezone.utc
    assert parse_llu_timestamp("1/9/2026 10:41:01 AM", utc) == datetime(2026, 1, 9, 10, 41, 1, tzinfo=utc)
    assert parse_llu_timestamp("12/31/2025 12:05:00 PM", utc).hour == 12
    assert parse_llu_timestamp("12/31/2025 12:05:00 AM", utc).hour == 0


def test_parse_llu_timestamp_in_zone():
    tz = timezone(timedelta(hours=2))

    assert parse_llu_timestamp("1/9/2026 10:41:01 AM", tz).utcoffset() == timedelta(hours=2)


def test_parse_local_time_follows_daylight_saving(berlin_local_time):
    winter = parse_llu_timestamp("1/15/2026 10:00:00 AM")
    summer = parse_llu_timestamp("7/15/2026 10:00:00 AM")

    assert winter.utcoffset() == timedelta(hours=1)
    assert summer.utcoffset() == timedelta(hours=2)
    assert winter.astimezone(timezone.utc).hour == 9
    assert summer.astimezone(timezone.utc).hour == 8


def test_life_count_across_daylight_saving_change(berlin_local_time):
    # Clocks go forward at 2:00 on 29 March 2026; two wall-clock hours apart is one real hour
    before = parse_llu_timestamp("3/29/2026 1:30:00 AM")
    after = parse_llu_timestamp("3/29/2026 3:30:00 AM")

    assert compute_life_count(after, before) == 60


@pytest.mark.parametrize("value", ["2026-01-09T10:41:01Z", "", None, 12345])
def test_parse_llu_timestamp_rejects(value):
    with pytest.raises(ValueError):
        parse_llu_timestamp(value)


def test_life_count_plain():
    assert compute_life_count(ACTIVATION_TIME + timedelta(seconds=421), ACTIVATION_TIME) == 7


def test_life_count_late_sample_is_snapped():
    assert compute_life_count(ACTIVATION_TIME + timedelta(seconds=360), ACTIVATION_TIME) == 5
    assert compute_life_count(ACTIVATION_TIME + timedelta(minutes=61), ACTIVATION_TIME) == 60


@pytest.mark.parametrize("minutes", [0, 5, 10, 1440])
def test_life_count_multiples_of_five(minutes):
    assert compute_life_count(ACTIVATION_TIME + timedelta(minutes=minutes), ACTIVATION_TIME) == minutes


def test_life_count_against_distant_past():
    count = compute_life_count(ACTIVATION_TIME, DISTANT_PAST)

    assert count >= 10 * 365 * 24 * 60
    assert count % 5 != 1


def test_epoch_to_datetime():
    assert epoch_to_datetime(ACTIVATION_EPOCH) == ACTIVATION_TIME
    assert is_distant_past(DISTANT_PAST)
    assert not is_distant_past(ACTIVATION_TIME)


def test_serial_matches():
    assert serial_matches("30M0008ABCD", "0M0008ABCD")
    assert serial_matches("30m0008abcd", "0M0008ABCD")
    assert serial_matches("0M0008ABCD", "0M0008ABCD")
    assert not serial_matches("0M0008ABCD", "30M0008ABCD")
    assert not serial_matches("", "0M0008ABCD")
    assert not serial_matches("30M0008ABCD", "")
