"""Tests for half-open time intervals."""

from datetime import datetime, timedelta

import pytest

from clinicbook.domain.scheduling.errors import InvalidInterval
from clinicbook.domain.scheduling.intervals import TimeInterval


def iv(start: str, end: str) -> TimeInterval:
    return TimeInterval(datetime.fromisoformat(f"2030-01-07T{start}"), datetime.fromisoformat(f"2030-01-07T{end}"))


class TestConstruction:
    def test_start_must_precede_end(self):
        with pytest.raises(InvalidInterval):
            iv("10:00", "10:00")
        with pytest.raises(InvalidInterval):
            iv("11:00", "10:00")

    def test_from_duration(self):
        interval = TimeInterval.from_duration(datetime(2030, 1, 7, 9, 0), 45)
        assert interval.end == datetime(2030, 1, 7, 9, 45)
        assert interval.duration == timedelta(minutes=45)


class TestOverlap:
    def test_partial_overlap(self):
        assert iv("10:00", "10:30").overlaps(iv("10:15", "10:45"))
        assert iv("10:15", "10:45").overlaps(iv("10:00", "10:30"))

    def test_containment_overlaps(self):
        assert iv("09:00", "12:00").overlaps(iv("10:00", "10:30"))

    def test_touching_endpoints_do_not_overlap(self):
        """Back-to-back slots share an endpoint but not an instant."""
        assert not iv("10:00", "10:30").overlaps(iv("10:30", "11:00"))
        assert not iv("10:30", "11:00").overlaps(iv("10:00", "10:30"))

    def test_disjoint(self):
        assert not iv("08:00", "09:00").overlaps(iv("10:00", "11:00"))


class TestHelpers:
    def test_contains_is_half_open(self):
        interval = iv("10:00", "10:30")
        assert interval.contains(datetime(2030, 1, 7, 10, 0))
        assert interval.contains(datetime(2030, 1, 7, 10, 29))
        assert not interval.contains(datetime(2030, 1, 7, 10, 30))

    def test_spans_midnight(self):
        assert not iv("23:00", "23:59").spans_midnight()
        late = TimeInterval(datetime(2030, 1, 7, 23, 30), datetime(2030, 1, 8, 0, 30))
        assert late.spans_midnight()
        # Ending exactly at midnight still lands on the next date
        assert TimeInterval(datetime(2030, 1, 7, 23, 30), datetime(2030, 1, 8, 0, 0)).spans_midnight()

    def test_same_as(self):
        assert iv("10:00", "10:30").same_as(iv("10:00", "10:30"))
        assert not iv("10:00", "10:30").same_as(iv("10:00", "10:45"))
