"""Tests for the SQLite metrics store."""
from datetime import timedelta

from edit_monitor.normalizer import EventType
from edit_monitor.store import MetricsStore

from conftest import NOW, make_event


def test_creates_parent_directories(tmp_path):
    db = tmp_path / "nested" / "dir" / "metrics.db"
    MetricsStore(str(db))
    assert db.parent.is_dir()


def test_append_and_load_in_order(tmp_path):
    store = MetricsStore(str(tmp_path / "metrics.db"))
    first = make_event(EventType.AUTO_COMPLETION, chars=12, repository="app", branch="main",
                       filename="/ws/app/a.py", extension="py", language="Python")
    second = make_event(EventType.HAND_WRITTEN, chars=1, timestamp=NOW + timedelta(seconds=1))
    store.append(first)
    store.append(second)

    loaded = store.load_all()
    assert loaded == [first, second]
    assert store.count() == 2


def test_clear(tmp_path):
    store = MetricsStore(str(tmp_path / "metrics.db"))
    store.append(make_event())
    store.clear()
    assert store.load_all() == []


def test_reopen_keeps_events(tmp_path):
    path = str(tmp_path / "metrics.db")
    MetricsStore(path).append(make_event(chars=3))
    assert MetricsStore(path).count() == 1
