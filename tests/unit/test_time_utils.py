from datetime import datetime, timedelta, timezone

import pytest
import pytz

from utils.time_utils import format_uptime, now_utc, parse_iso, to_epoch_ms, to_iso, utc_now_iso


def test_now_utc_is_aware():
    now = now_utc()
    assert now.tzinfo is not None
    assert now.utcoffset() == timedelta(0)


def test_to_iso_millisecond_precision_with_z():
    dt = datetime(2024, 1, 15, 10, 0, 0, 123456, tzinfo=pytz.UTC)
    assert to_iso(dt) == "2024-01-15T10:00:00.123Z"


def test_to_iso_converts_other_zones_to_utc():
    tz = pytz.timezone("America/New_York")
    dt = tz.localize(datetime(2024, 1, 15, 5, 0, 0))
    assert to_iso(dt) == "2024-01-15T10:00:00.000Z"


def test_to_iso_treats_naive_as_utc():
    assert to_iso(datetime(2024, 3, 10, 9, 15)) == "2024-03-10T09:15:00.000Z"


def test_utc_now_iso_parses_back():
    value = utc_now_iso()
    assert value.endswith("Z")
    assert abs((parse_iso(value) - datetime.now(timezone.utc)).total_seconds()) < 5


@pytest.mark.parametrize(
    "value",
    ["2024-01-15T10:00:00Z", "2024-01-15T10:00:00.000Z", "2024-01-15T10:00:00+00:00", "2024-01-15T10:00:00"],
)
def test_parse_iso_variants(value):
    dt = parse_iso(value)
    assert dt == datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


def test_to_epoch_ms():
    assert to_epoch_ms(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)) == 1000
    assert to_epoch_ms(parse_iso("2024-01-15T10:00:00Z")) == 1705312800000


@pytest.mark.parametrize(
    "seconds, expected",
    [(0, "0h 0m 0s"), (59.9, "0h 0m 59s"), (61, "0h 1m 1s"), (3 * 3600 + 125, "3h 2m 5s"), (-5, "0h 0m 0s")],
)
def test_format_uptime(seconds, expected):
    assert format_uptime(seconds) == expected
