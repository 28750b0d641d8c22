# Edit Monitor — stats aggregator
#
# Holds the permanent event log (never drained by uploads) and derives the
# numbers shown to users: windowed completion counts, time saved,
# auto-completion ratios, top repositories/languages, hourly chart data.
#
# Every structure sits behind one lock, so reset() is never observed
# half-done by a reader.

import calendar
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from .normalizer import UNKNOWN, CodingEvent, EventType, now_local

logger = logging.getLogger(__name__)

CHARS_PER_MINUTE = 240.0  # assumed human typing speed

WINDOWS = ("total", "today", "this_week", "this_month")

HourKey = Tuple[int, int, int, int]  # (year, month, day, hour), local time


@dataclass(frozen=True)
class WindowStats:
    count: int
    chars: int

    @property
    def time_saved_minutes(self) -> float:
        return self.chars / CHARS_PER_MINUTE


@dataclass(frozen=True)
class HourlyPoint:
    label: str
    auto_completion_chars: int
    hand_written_chars: int


@dataclass(frozen=True)
class StatsSnapshot:
    """Read-only view handed to display code."""
    windows: Dict[str, WindowStats]
    ratios: Dict[str, float]
    top_repositories: List[Tuple[str, int]]
    top_languages: List[Tuple[str, int]]
    hourly: List[HourlyPoint]
    auto_completion_events: int
    hand_written_events: int
    generated_at: datetime = field(default_factory=now_local)


def hour_key(ts: datetime) -> HourKey:
    local = ts.astimezone()
    return (local.year, local.month, local.day, local.hour)


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(now: datetime, week_start: int) -> datetime:
    """Midnight of the most recent `week_start` weekday (0 = Monday)."""
    days_back = (now.weekday() - week_start) % 7
    return start_of_day(now) - timedelta(days=days_back)


def start_of_month(now: datetime) -> datetime:
    return start_of_day(now).replace(day=1)


def format_time_saved(minutes: float) -> str:
    """e.g. "2h 30m" or "45m"."""
    hours = int(minutes // 60)
    remaining = int(round(minutes % 60))
    if hours > 0:
        return f"{hours}h {remaining}m"
    return f"{remaining}m"


def format_percentage(ratio: float) -> str:
    """e.g. "95%"; "N/A" when there is nothing to compare."""
    if ratio > 0:
        return f"{int(ratio * 100)}%"
    return "N/A"


class StatsAggregator:
    """
    Aggregates CodingEvents for reporting.

    Args:
        store: optional MetricsStore; every added event is persisted to it
        week_start: first weekday of a week, 0 = Monday ... 6 = Sunday.
                    Defaults to calendar.firstweekday(), which is Monday
                    unless the host calls calendar.setfirstweekday(); the
                    standard library does not expose the locale's first
                    weekday.
        clock: returns the current time as an aware datetime
    """

    def __init__(self, store=None, week_start: Optional[int] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.week_start = calendar.firstweekday() if week_start is None else week_start
        self._clock = clock or now_local
        self._lock = threading.RLock()
        self._init_collections()

    def _init_collections(self):
        self._events: Dict[EventType, List[CodingEvent]] = {t: [] for t in EventType}
        self._hourly: Dict[EventType, Dict[HourKey, int]] = {t: {} for t in EventType}
        self._repositories: Dict[str, int] = {}
        self._languages: Dict[str, int] = {}

    # ── Intake ──────────────────────────────────────────────

    def add_event(self, event: CodingEvent) -> None:
        with self._lock:
            self._record(event)
            if self.store is not None:
                self.store.append(event)
        logger.debug(
            f"Added {event.type.value} event: {event.char_count_change} chars, "
            f"repo: {event.repository}, lang: {event.language}"
        )

    def _record(self, event: CodingEvent) -> None:
        self._events[event.type].append(event)

        buckets = self._hourly[event.type]
        key = hour_key(event.timestamp)
        buckets[key] = buckets.get(key, 0) + event.char_count_change

        # Leaderboards rank auto-completion usage only
        if event.type is EventType.AUTO_COMPLETION:
            if event.repository and event.repository != UNKNOWN:
                self._repositories[event.repository] = self._repositories.get(event.repository, 0) + 1
            if event.language and event.language != UNKNOWN:
                self._languages[event.language] = self._languages.get(event.language, 0) + 1

    def load_from_store(self) -> int:
        """Replay persisted events into memory. Returns the number loaded."""
        if self.store is None:
            return 0
        events = self.store.load_all()
        with self._lock:
            self._init_collections()
            for event in events:
                self._record(event)
        logger.info(f"Loaded {len(events)} events from {self.store.db_path}")
        return len(events)

    # ── Queries ─────────────────────────────────────────────

    def window_starts(self, now: Optional[datetime] = None) -> Dict[str, Optional[datetime]]:
        now = now or self._clock()
        return {
            "total": None,
            "today": start_of_day(now),
            "this_week": start_of_week(now, self.week_start),
            "this_month": start_of_month(now),
        }

    def windowed_stats(self, now: Optional[datetime] = None) -> Dict[str, WindowStats]:
        """Auto-completion count and chars for each window."""
        starts = self.window_starts(now)
        with self._lock:
            events = list(self._events[EventType.AUTO_COMPLETION])
        result = {}
        for name, start in starts.items():
            in_window = [e for e in events if start is None or e.timestamp >= start]
            result[name] = WindowStats(
                count=len(in_window),
                chars=sum(e.char_count_change for e in in_window),
            )
        return result

    def completion_ratio(self, window: str = "total", now: Optional[datetime] = None) -> float:
        """auto chars / (auto + hand-written chars) in the window; 0.0 when both are 0."""
        starts = self.window_starts(now)
        if window not in starts:
            raise ValueError(f"Unknown window {window!r}, expected one of {WINDOWS}")
        start = starts[window]
        with self._lock:
            auto = self._chars_since(EventType.AUTO_COMPLETION, start)
            hand = self._chars_since(EventType.HAND_WRITTEN, start)
        total = auto + hand
        return auto / total if total > 0 else 0.0

    def completion_ratios(self, now: Optional[datetime] = None) -> Dict[str, float]:
        now = now or self._clock()
        return {name: self.completion_ratio(name, now) for name in WINDOWS}

    def _chars_since(self, event_type: EventType, start: Optional[datetime]) -> int:
        return sum(
            e.char_count_change for e in self._events[event_type]
            if start is None or e.timestamp >= start
        )

    def top_repositories(self, limit: int = 5) -> List[Tuple[str, int]]:
        with self._lock:
            return _top(self._repositories, limit)

    def top_languages(self, limit: int = 5) -> List[Tuple[str, int]]:
        with self._lock:
            return _top(self._languages, limit)

    def hourly_chart_series(self, hours: int = 24, now: Optional[datetime] = None) -> List[HourlyPoint]:
        """One point per hour for the last `hours` hours, oldest first, ending at now."""
        now = now or self._clock()
        series = []
        with self._lock:
            auto = self._hourly[EventType.AUTO_COMPLETION]
            hand = self._hourly[EventType.HAND_WRITTEN]
            for i in range(hours - 1, -1, -1):
                t = now - timedelta(hours=i)
                key = hour_key(t)
                series.append(HourlyPoint(
                    label=f"{t.astimezone().hour}:00",
                    auto_completion_chars=auto.get(key, 0),
                    hand_written_chars=hand.get(key, 0),
                ))
        return series

    def auto_completion_events(self) -> List[CodingEvent]:
        with self._lock:
            return list(self._events[EventType.AUTO_COMPLETION])

    def hand_written_events(self) -> List[CodingEvent]:
        with self._lock:
            return list(self._events[EventType.HAND_WRITTEN])

    def snapshot(self, now: Optional[datetime] = None, top_limit: int = 5,
                 hours: int = 24) -> StatsSnapshot:
        now = now or self._clock()
        with self._lock:
            return StatsSnapshot(
                windows=self.windowed_stats(now),
                ratios=self.completion_ratios(now),
                top_repositories=self.top_repositories(top_limit),
                top_languages=self.top_languages(top_limit),
                hourly=self.hourly_chart_series(hours, now),
                auto_completion_events=len(self._events[EventType.AUTO_COMPLETION]),
                hand_written_events=len(self._events[EventType.HAND_WRITTEN]),
                generated_at=now,
            )

    # ── Reset ───────────────────────────────────────────────

    def reset(self) -> None:
        """Clear every counter and log (and the store)."""
        with self._lock:
            self._init_collections()
            if self.store is not None:
                self.store.clear()
        logger.info("Stats reset")


def _top(counts: Dict[str, int], limit: int) -> List[Tuple[str, int]]:
    # sorted() is stable, so equal counts keep first-seen order
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return ranked[:max(limit, 0)]
