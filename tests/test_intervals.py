"""
Unit tests for half-open intervals.
"""

import random
from datetime import datetime, timedelta, timezone

import pytest

from shared.errors import InvalidInterval, InvalidTimeRange, ValidationError
from shared.intervals import Interval, overlaps, parse_timestamp, to_utc_naive

BASE = datetime(2030, 5, 6, 8, 0)


def at(hours: float) -> datetime:
    return BASE + timedelta(hours=hours)


def iv(start: float, end: float) -> Interval:
    return Interval(at(start), at(end))


def test_overlap_partial():
    """10:00-11:00 and 10:30-11:30 overlap."""
    assert overlaps(iv(2, 3), iv(2.5, 3.5))


def test_back_to_back_do_not_overlap():
    assert not overlaps(iv(2, 3), iv(3, 4))
    assert not overlaps(iv(3, 4), iv(2, 3))


def test_containment_overlaps():
    assert overlaps(iv(1, 5), iv(2, 3))
    assert overlaps(iv(2, 3), iv(1, 5))


def test_disjoint_do_not_overlap():
    assert not overlaps(iv(1, 2), iv(4, 5))


def test_self_overlap():
    interval = iv(1, 2)
    assert interval.overlaps(interval)


def test_overlap_matches_disjunctive_definition():
    """Randomized check against start-inside, end-inside or enclosing."""
    rng = random.Random(1234)
    for _ in range(2000):
        a_start, b_start = rng.randint(0, 40), rng.randint(0, 40)
        a = iv(a_start, a_start + rng.randint(1, 10))
        b = iv(b_start, b_start + rng.randint(1, 10))

        starts_inside = a.start <= b.start < a.end
        ends_inside = a.start < b.end <= a.end
        encloses = b.start <= a.start and b.end >= a.end
        expected = starts_inside or ends_inside or encloses

        assert overlaps(a, b) == expected
        assert overlaps(a, b) == overlaps(b, a)


def test_empty_interval_rejected():
    with pytest.raises(InvalidInterval):
        iv(2, 2)


def test_reversed_interval_rejected():
    with pytest.raises(InvalidInterval) as exc_info:
        iv(3, 2)
    assert exc_info.value.status_code == 400


def test_missing_bound_rejected():
    with pytest.raises(InvalidInterval):
        Interval(None, at(1))


def test_invalid_interval_is_validation_error():
    assert issubclass(InvalidInterval, ValidationError)
    assert issubclass(InvalidTimeRange, ValidationError)


def test_contains_is_half_open():
    interval = iv(1, 2)
    assert interval.contains(at(1))
    assert interval.contains(at(1.5))
    assert not interval.contains(at(2))


def test_covers():
    assert iv(1, 5).covers(iv(2, 3))
    assert iv(1, 5).covers(iv(1, 5))
    assert not iv(2, 3).covers(iv(1, 5))


def test_duration():
    assert iv(1, 2.5).duration == timedelta(hours=1, minutes=30)


def test_parse_iso_strings():
    interval = Interval.parse("2030-05-06T10:00:00", "2030-05-06T11:00:00")
    assert interval.start == datetime(2030, 5, 6, 10, 0)
    assert interval.end == datetime(2030, 5, 6, 11, 0)


def test_parse_normalizes_offsets_to_utc():
    interval = Interval.parse("2030-05-06T12:00:00+02:00", "2030-05-06T11:00:00Z")
    assert interval.start == datetime(2030, 5, 6, 10, 0)
    assert interval.end == datetime(2030, 5, 6, 11, 0)
    assert interval.start.tzinfo is None


def test_parse_reversed_range():
    with pytest.raises(InvalidInterval):
        Interval.parse("2030-05-06T11:00:00", "2030-05-06T10:00:00")


def test_parse_garbage():
    with pytest.raises(InvalidTimeRange):
        Interval.parse("tomorrow", "2030-05-06T10:00:00")


def test_parse_timestamp_missing():
    with pytest.raises(InvalidTimeRange):
        parse_timestamp(None, "start time")
    with pytest.raises(InvalidTimeRange):
        parse_timestamp("", "start time")


def test_parse_timestamp_accepts_datetime():
    aware = datetime(2030, 5, 6, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert parse_timestamp(aware) == datetime(2030, 5, 6, 10, 0)


def test_to_utc_naive_keeps_naive_values():
    assert to_utc_naive(BASE) is BASE


def test_interval_of_record():
    class Record:
        start_time = at(1)
        end_time = at(2)

    assert Interval.of(Record()) == iv(1, 2)
