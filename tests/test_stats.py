"""Tests for the stats aggregator."""
import calendar
import threading
from datetime import datetime, timedelta

import pytest

from edit_monitor.normalizer import EventType
from edit_monitor.stats import (
    StatsAggregator, format_percentage, format_time_saved, start_of_week,
)
from edit_monitor.store import MetricsStore

from conftest import NOW, make_event

AUTO = EventType.AUTO_COMPLETION
HAND = EventType.HAND_WRITTEN


def at(*args):
    return datetime(*args).astimezone()


class TestWindowedStats:
    """Count, chars and time saved per window (NOW is Wed 2026-03-18 14:30)."""

    def setup_method(self):
        self.stats = StatsAggregator(week_start=0, clock=lambda: NOW)

    def test_empty(self):
        result = self.stats.windowed_stats()
        assert set(result) == {"total", "today", "this_week", "this_month"}
        assert all(w.count == 0 and w.chars == 0 for w in result.values())

    def test_today_equals_total_when_all_events_today(self):
        for hour in (0, 9, 14):
            self.stats.add_event(make_event(chars=24, timestamp=at(2026, 3, 18, hour, 5)))
        result = self.stats.windowed_stats()
        assert result["today"] == result["total"]
        assert result["total"].count == 3
        assert result["total"].chars == 72

    def test_window_boundaries(self):
        self.stats.add_event(make_event(chars=240, timestamp=at(2026, 3, 18, 8)))   # today
        self.stats.add_event(make_event(chars=120, timestamp=at(2026, 3, 16, 0)))   # Monday midnight
        self.stats.add_event(make_event(chars=60, timestamp=at(2026, 3, 15, 23)))   # Sunday
        self.stats.add_event(make_event(chars=30, timestamp=at(2026, 2, 28, 12)))   # last month
        result = self.stats.windowed_stats()
        assert (result["today"].count, result["today"].chars) == (1, 240)
        assert (result["this_week"].count, result["this_week"].chars) == (2, 360)
        assert (result["this_month"].count, result["this_month"].chars) == (3, 420)
        assert (result["total"].count, result["total"].chars) == (4, 450)

    def test_time_saved_uses_240_chars_per_minute(self):
        self.stats.add_event(make_event(chars=480))
        assert self.stats.windowed_stats()["total"].time_saved_minutes == pytest.approx(2.0)

    def test_hand_written_not_counted_as_completions(self):
        self.stats.add_event(make_event(HAND, chars=1))
        assert self.stats.windowed_stats()["total"].count == 0

    def test_sunday_week_start(self):
        stats = StatsAggregator(week_start=6, clock=lambda: NOW)
        stats.add_event(make_event(chars=5, timestamp=at(2026, 3, 15, 9)))  # Sunday
        assert stats.windowed_stats()["this_week"].count == 1

    def test_default_week_start_follows_calendar_setting(self):
        previous = calendar.firstweekday()
        try:
            assert StatsAggregator().week_start == previous
            calendar.setfirstweekday(calendar.SUNDAY)
            assert StatsAggregator().week_start == calendar.SUNDAY
        finally:
            calendar.setfirstweekday(previous)

    def test_start_of_week_on_first_day(self):
        monday = at(2026, 3, 16, 10, 0)
        assert start_of_week(monday, 0) == at(2026, 3, 16)


class TestCompletionRatio:

    def setup_method(self):
        self.stats = StatsAggregator(week_start=0, clock=lambda: NOW)

    def test_zero_without_data(self):
        assert self.stats.completion_ratio("total") == 0.0
        assert format_percentage(self.stats.completion_ratio("today")) == "N/A"

    def test_ratio_of_chars(self):
        self.stats.add_event(make_event(AUTO, chars=30))
        for _ in range(10):
            self.stats.add_event(make_event(HAND, chars=1))
        assert self.stats.completion_ratio("total") == pytest.approx(0.75)

    def test_ratio_respects_window(self):
        self.stats.add_event(make_event(AUTO, chars=10, timestamp=at(2026, 3, 1, 12)))
        self.stats.add_event(make_event(HAND, chars=1))
        assert self.stats.completion_ratio("today") == 0.0
        assert self.stats.completion_ratio("this_month") == pytest.approx(10 / 11)

    def test_unknown_window(self):
        with pytest.raises(ValueError):
            self.stats.completion_ratio("this_decade")

    def test_completion_ratios_has_every_window(self):
        assert set(self.stats.completion_ratios()) == {"total", "today", "this_week", "this_month"}


class TestLeaderboards:

    def setup_method(self):
        self.stats = StatsAggregator(clock=lambda: NOW)

    def test_descending_with_first_seen_ties(self):
        for repo in ["beta", "alpha", "gamma", "alpha", "gamma", "delta"]:
            self.stats.add_event(make_event(repository=repo))
        assert self.stats.top_repositories(3) == [("alpha", 2), ("gamma", 2), ("beta", 1)]

    def test_unknown_and_empty_skipped(self):
        self.stats.add_event(make_event(repository="unknown", language=""))
        self.stats.add_event(make_event(repository="app", language="Python"))
        assert self.stats.top_repositories() == [("app", 1)]
        assert self.stats.top_languages() == [("Python", 1)]

    def test_hand_written_not_ranked(self):
        self.stats.add_event(make_event(HAND, chars=1, repository="app", language="Go"))
        assert self.stats.top_repositories() == []
        assert self.stats.top_languages() == []

    def test_limit(self):
        for i in range(8):
            self.stats.add_event(make_event(language=f"lang{i}"))
        assert len(self.stats.top_languages(5)) == 5
        assert self.stats.top_languages(0) == []


class TestHourlySeries:

    def setup_method(self):
        self.stats = StatsAggregator(clock=lambda: NOW)

    def test_zero_filled_and_labelled(self):
        series = self.stats.hourly_chart_series(3)
        assert [p.label for p in series] == ["12:00", "13:00", "14:00"]
        assert all(p.auto_completion_chars == 0 and p.hand_written_chars == 0 for p in series)

    def test_buckets_by_hour(self):
        self.stats.add_event(make_event(AUTO, chars=10, timestamp=at(2026, 3, 18, 14, 1)))
        self.stats.add_event(make_event(AUTO, chars=5, timestamp=at(2026, 3, 18, 14, 59)))
        self.stats.add_event(make_event(HAND, chars=1, timestamp=at(2026, 3, 18, 13, 30)))
        self.stats.add_event(make_event(AUTO, chars=99, timestamp=at(2026, 3, 17, 14, 0)))  # yesterday
        series = self.stats.hourly_chart_series(3)
        assert (series[-1].auto_completion_chars, series[-1].hand_written_chars) == (15, 0)
        assert (series[-2].auto_completion_chars, series[-2].hand_written_chars) == (0, 1)

    def test_default_is_24_hours(self):
        assert len(self.stats.hourly_chart_series()) == 24


class TestReset:

    def test_reset_clears_everything(self):
        stats = StatsAggregator(clock=lambda: NOW)
        stats.add_event(make_event(AUTO, chars=10, repository="app", language="Python"))
        stats.add_event(make_event(HAND, chars=1))
        stats.reset()
        snap = stats.snapshot()
        assert snap.windows["total"].count == 0
        assert snap.ratios["total"] == 0.0
        assert snap.top_repositories == []
        assert snap.top_languages == []
        assert all(p.auto_completion_chars == 0 for p in snap.hourly)
        assert stats.auto_completion_events() == []
        assert stats.hand_written_events() == []

    def test_readers_never_see_partial_reset(self):
        stats = StatsAggregator(clock=lambda: NOW)
        stop = threading.Event()
        bad = []

        def reader():
            while not stop.is_set():
                snap = stats.snapshot(hours=1)
                repos = sum(c for _, c in snap.top_repositories)
                if repos != snap.auto_completion_events:
                    bad.append((repos, snap.auto_completion_events))

        t = threading.Thread(target=reader)
        t.start()
        for _ in range(200):
            stats.add_event(make_event(repository="app"))
            stats.add_event(make_event(repository="app"))
            stats.reset()
        stop.set()
        t.join()
        assert bad == []


class TestPersistence:

    def test_events_persisted_and_replayed(self, tmp_path):
        store = MetricsStore(str(tmp_path / "metrics.db"))
        stats = StatsAggregator(store=store, clock=lambda: NOW)
        stats.add_event(make_event(AUTO, chars=10, repository="app"))
        stats.add_event(make_event(HAND, chars=1))

        fresh = StatsAggregator(store=store, clock=lambda: NOW)
        assert fresh.load_from_store() == 2
        assert fresh.windowed_stats()["total"].chars == 10
        assert fresh.top_repositories() == [("app", 1)]

    def test_reset_clears_store(self, tmp_path):
        store = MetricsStore(str(tmp_path / "metrics.db"))
        stats = StatsAggregator(store=store)
        stats.add_event(make_event())
        stats.reset()
        assert store.count() == 0


class TestFormatting:

    @pytest.mark.parametrize("minutes,text", [
        (0, "0m"),
        (45, "45m"),
        (150, "2h 30m"),
        (61.4, "1h 1m"),
    ])
    def test_format_time_saved(self, minutes, text):
        assert format_time_saved(minutes) == text

    def test_format_percentage(self):
        assert format_percentage(0.955) == "95%"
        assert format_percentage(0.0) == "N/A"
