"""
Metrics storage backend (SQLite).

Keeps the permanent stats log across restarts. The upload queues are not
persisted; only what the stats aggregator reports on.
"""
import json
import sqlite3
import threading
from pathlib import Path
from typing import List, Optional

from .normalizer import CodingEvent


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection in WAL mode."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


class MetricsStore:
    """SQLite-backed store for the coding event log."""

    def __init__(self, db_path: Optional[str] = None):
        """Initialize store and create tables if needed."""
        if db_path is None:
            db_path = str(Path.home() / ".local" / "share" / "edit-monitor" / "metrics.db")
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._init_schema()

    def _init_schema(self):
        """Create tables if they don't exist."""
        with _connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS coding_events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    type TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    payload TEXT NOT NULL  -- JSON, CodingEvent.to_dict()
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_events_type ON coding_events(type)"
            )

    def append(self, event: CodingEvent) -> None:
        """Persist one event."""
        data = event.to_dict()
        with self._lock, _connect(self.db_path) as conn:
            conn.execute(
                "INSERT INTO coding_events (type, timestamp, payload) VALUES (?, ?, ?)",
                (data["type"], data["timestamp"], json.dumps(data)),
            )

    def load_all(self) -> List[CodingEvent]:
        """Every stored event, in insertion order."""
        with _connect(self.db_path) as conn:
            rows = conn.execute(
                "SELECT payload FROM coding_events ORDER BY id"
            ).fetchall()
        return [CodingEvent.from_dict(json.loads(row["payload"])) for row in rows]

    def count(self) -> int:
        with _connect(self.db_path) as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM coding_events").fetchone()
        return row["n"]

    def clear(self) -> None:
        """Delete every stored event."""
        with self._lock, _connect(self.db_path) as conn:
            conn.execute("DELETE FROM coding_events")
