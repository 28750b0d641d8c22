"""
Edit Monitor — main entry point

Builds every component, watches a workspace for file edits, classifies
them, and uploads events on a fixed interval.

Usage:
    edit-monitor                                   # watch the current directory
    edit-monitor --workspace ~/myproject           # watch another workspace
    edit-monitor --api-key KEY --endpoint URL      # override backend settings
    edit-monitor --set batch_size=200              # validate + save a setting
    edit-monitor --stats                           # print stats and exit
    edit-monitor --reset                           # clear stored stats and exit

Editors that can deliver keystroke-level change events should embed
MonitorApp and call `app.tracker.document_changed(...)` directly; the
filesystem watcher only sees saves, which group several keystrokes.
"""

import argparse
import logging
import os
import sys
import time
from pathlib import Path
from typing import List, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .config import ConfigError, Settings
from .emitter import BatchUploader
from .events import STATS_RESET, STATS_SENT, StatsEventBus
from .normalizer import DocumentChange
from .report import render_report, render_summary
from .scheduler import Ticker
from .state import EventState
from .stats import StatsAggregator, StatsSnapshot
from .store import MetricsStore
from .tracker import EditTracker
from .vcs import VcsResolver, select_resolver

logger = logging.getLogger(__name__)

MAX_FILE_BYTES = 2_000_000
MAX_PRIME_FILES = 5000
SKIP_DIRS = {".git", ".hg", ".svn", "node_modules", "__pycache__", ".venv", "venv", ".idea", "build", "dist"}


# ── Composition root ───────────────────────────────────────────────────────

class MonitorApp:
    """Owns the settings, state, stats, tracker, uploader and timers."""

    def __init__(self, settings: Settings, resolver: Optional[VcsResolver] = None,
                 session=None, store: Optional[MetricsStore] = None):
        self.settings = settings
        self.store = store if store is not None else MetricsStore(settings.db_path)
        self.bus = StatsEventBus()
        self.state = EventState()
        self.stats = StatsAggregator(store=self.store)
        self.resolver = resolver or select_resolver()
        self.tracker = EditTracker(self.state, self.stats, self.resolver, bus=self.bus)
        self.uploader = BatchUploader(settings, self.state, bus=self.bus, session=session)
        self.upload_ticker = Ticker(settings.batch_interval_secs, self.uploader.tick, name="upload")
        self.refresh_ticker = Ticker(settings.stats_refresh_secs, self.refresh, name="stats-refresh")
        self.bus.subscribe(STATS_SENT, self._on_sent)

    def _on_sent(self, event_type, count):
        logger.info(f"Sent {count} {event_type.value} events")

    def refresh(self) -> StatsSnapshot:
        snapshot = self.stats.snapshot()
        logger.debug(render_summary(snapshot))
        return snapshot

    def start(self) -> None:
        self.stats.load_from_store()
        self.upload_ticker.start()
        self.refresh_ticker.start()
        logger.info(f"Upload every {self.settings.batch_interval}ms, batch size {self.settings.batch_size}")

    def stop(self) -> None:
        self.refresh_ticker.cancel()
        self.upload_ticker.cancel()
        # Last chance for events queued since the previous tick
        self.uploader.tick()
        self.uploader.close()

    def reset(self) -> None:
        self.state.reset()
        self.stats.reset()
        self.bus.emit(STATS_RESET)


# ── Filesystem intake ──────────────────────────────────────────────────────

def compute_change(path: str, old: str, new: str) -> Optional[DocumentChange]:
    """
    Express the difference between two versions of a file as one change:
    the span between the common prefix and common suffix.
    """
    if old == new:
        return None
    limit = min(len(old), len(new))
    prefix = 0
    while prefix < limit and old[prefix] == new[prefix]:
        prefix += 1
    suffix = 0
    while suffix < limit - prefix and old[len(old) - 1 - suffix] == new[len(new) - 1 - suffix]:
        suffix += 1
    return DocumentChange(
        path=path,
        offset=prefix,
        old_fragment=old[prefix:len(old) - suffix],
        new_fragment=new[prefix:len(new) - suffix],
        text=new,
    )


def _read_text(path: str) -> Optional[str]:
    try:
        if os.path.getsize(path) > MAX_FILE_BYTES:
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError):
        return None


def _is_ignored(path: Path) -> bool:
    return any(part in SKIP_DIRS for part in path.parts)


class WorkspaceHandler(FileSystemEventHandler):
    """Feeds file modifications to the tracker as document changes."""

    def __init__(self, tracker: EditTracker, workspace: str):
        self.tracker = tracker
        self.workspace = Path(workspace).resolve()

    def prime(self) -> int:
        """Cache the current text of workspace files so the first save diffs correctly."""
        primed = 0
        for root, dirs, files in os.walk(self.workspace):
            dirs[:] = [d for d in dirs if d not in SKIP_DIRS and not d.startswith(".")]
            for name in files:
                path = os.path.join(root, name)
                text = _read_text(path)
                if text is not None:
                    self.tracker.prime(path, text)
                    primed += 1
                if primed >= MAX_PRIME_FILES:
                    return primed
        return primed

    def on_modified(self, fs_event):
        if fs_event.is_directory:
            return
        self._handle(fs_event.src_path)

    def on_created(self, fs_event):
        if fs_event.is_directory:
            return
        self._prime_path(fs_event.src_path)

    def on_deleted(self, fs_event):
        self.tracker.forget(fs_event.src_path)

    def on_moved(self, fs_event):
        self.tracker.forget(fs_event.src_path)
        if not fs_event.is_directory:
            self._prime_path(fs_event.dest_path)

    def _prime_path(self, path: str):
        if _is_ignored(Path(path)):
            return
        text = _read_text(path)
        if text is not None:
            self.tracker.prime(path, text)

    def _handle(self, path: str):
        if _is_ignored(Path(path)):
            return
        new = _read_text(path)
        if new is None:
            return
        old = self.tracker.last_text(path)
        if old is None:
            # First sighting: nothing to diff against yet
            self.tracker.prime(path, new)
            return
        change = compute_change(path, old, new)
        if change is not None:
            self.tracker.document_changed(change)


def watch(app: MonitorApp, workspace: str) -> int:
    """Run the watcher until interrupted."""
    ws = Path(workspace).expanduser()
    if not ws.is_dir():
        print(f"Workspace not found: {ws}")
        return 1

    handler = WorkspaceHandler(app.tracker, str(ws))
    primed = handler.prime()
    logger.info(f"Primed {primed} files in {ws.resolve()}")

    observer = Observer()
    observer.schedule(handler, str(ws), recursive=True)
    app.start()
    observer.start()
    print(f"edit-monitor running on {ws.resolve()}. Ctrl+C to stop.")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nStopping...")
    finally:
        observer.stop()
        observer.join()
        app.stop()
    return 0


# ── CLI ────────────────────────────────────────────────────────────────────

def _parse_assignments(items: List[str]) -> dict:
    values = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep:
            raise ConfigError(f"Expected KEY=VALUE, got {item!r}")
        values[key.strip()] = value
    return values


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Edit Monitor — hand-written vs auto-completion edit telemetry"
    )
    ap.add_argument("--workspace", default=".",
                    help="Workspace root to monitor (default: current directory)")
    ap.add_argument("--config", default=None,
                    help="Path to config.yaml (default: ~/.config/edit-monitor/config.yaml)")
    ap.add_argument("--endpoint", default=None, help="Backend base URL")
    ap.add_argument("--api-key", default=None, help="Backend API key")
    ap.add_argument("--webhook", default=None,
                    help="Post flat JSON batches to this URL instead of the GraphQL endpoint")
    ap.add_argument("--set", dest="assignments", action="append", default=[],
                    metavar="KEY=VALUE", help="Validate and save a setting, then exit")
    ap.add_argument("--stats", action="store_true", help="Print stored stats and exit")
    ap.add_argument("--reset", action="store_true", help="Clear stored stats and exit")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [edit-monitor] %(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    settings = Settings.load(args.config)

    if args.assignments:
        try:
            settings.apply_form(_parse_assignments(args.assignments))
        except ConfigError as e:
            print(f"Rejected: {e}")
            return 2
        path = settings.save(args.config)
        print(f"Saved {path}")
        return 0

    # CLI overrides (not persisted)
    if args.endpoint:
        settings.url = args.endpoint
    if args.api_key:
        settings.api_key = args.api_key
    if args.webhook:
        settings.webhook = args.webhook

    if args.stats:
        stats = StatsAggregator(store=MetricsStore(settings.db_path))
        stats.load_from_store()
        print(render_report(stats.snapshot()))
        return 0

    if args.reset:
        MetricsStore(settings.db_path).clear()
        print("Stats cleared")
        return 0

    if not settings.api_key:
        logger.warning("No API key configured; events will be recorded but not uploaded")

    app = MonitorApp(settings)
    return watch(app, args.workspace)


if __name__ == "__main__":
    sys.exit(main())
