"""Tests for the date helpers behind availability checks and dashboards."""

from datetime import date, datetime, timezone, timedelta

from event_marketplace.utils.dates import (
    end_of_day,
    event_day_range,
    find_overlap,
    ranges_overlap,
    start_of_day,
    to_naive_utc,
)


class TestRanges:
    def test_touching_ranges_overlap(self):
        """Overlap is inclusive, so a range ending where another starts conflicts."""
        start = datetime(2030, 5, 1)
        end = datetime(2030, 5, 2)

        assert ranges_overlap(start, end, end, datetime(2030, 5, 3))

    def test_disjoint_ranges_do_not_overlap(self):
        assert not ranges_overlap(
            datetime(2030, 5, 1), datetime(2030, 5, 2),
            datetime(2030, 5, 3), datetime(2030, 5, 4),
        )

    def test_find_overlap_returns_first_conflict(self):
        ranges = [
            (datetime(2030, 1, 1), datetime(2030, 1, 2)),
            (datetime(2030, 1, 10), datetime(2030, 1, 12)),
        ]

        found = find_overlap(datetime(2030, 1, 11), datetime(2030, 1, 11, 23), ranges)

        assert found == ranges[1]
        assert find_overlap(datetime(2030, 2, 1), datetime(2030, 2, 2), ranges) is None

    def test_event_day_range_runs_to_end_of_day(self):
        start, end = event_day_range(datetime(2030, 6, 15, 14, 30))

        assert start == datetime(2030, 6, 15, 14, 30)
        assert end == datetime(2030, 6, 15, 23, 59, 59, 999000)


class TestDayBoundaries:
    def test_start_and_end_of_day(self):
        moment = datetime(2030, 3, 9, 17, 45)

        assert start_of_day(moment) == datetime(2030, 3, 9)
        assert start_of_day(date(2030, 3, 9)) == datetime(2030, 3, 9)
        assert end_of_day(moment).date() == date(2030, 3, 9)

    def test_to_naive_utc_converts_aware_values(self):
        aware = datetime(2030, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=1)))

        assert to_naive_utc(aware) == datetime(2030, 1, 1, 11, 0)
        assert to_naive_utc(datetime(2030, 1, 1)) == datetime(2030, 1, 1)
        assert to_naive_utc(None) is None
