# Edit Monitor — data model
#
# Every classified edit becomes one CodingEvent. Events are immutable once
# created; the upload queue and the stats log each hold their own reference.
#
# SCHEMA RULES:
#   - type MUST be an EventType (closed set of two categories)
#   - repository / branch / language use the UNKNOWN sentinel when unresolved
#   - to_dict() keys follow the backend's camelCase wire format

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import PurePath
from typing import Any, Dict, Optional

UNKNOWN = "unknown"


class EventType(Enum):
    """Categories that produce CodingEvents."""
    AUTO_COMPLETION = "AutoCompletion"
    HAND_WRITTEN = "HandWritten"

    @classmethod
    def from_str(cls, value: str) -> "EventType":
        for member in cls:
            if member.value == value or member.name == value.upper():
                return member
        raise ValueError(f"Unknown event type: {value!r}")


class ChangeType(Enum):
    """Labels assigned by the edit classifier."""
    HAND_WRITTEN_CHAR = "hand_written_char"
    AUTO_COMPLETION = "auto_completion"
    DELETION = "deletion"
    WHITESPACE = "whitespace"
    AUTO_CLOSE_BRACKET = "auto_close_bracket"
    NO_CHANGE = "no_change"
    UNKNOWN = "unknown"

    @property
    def event_type(self) -> Optional[EventType]:
        """EventType recorded for this label, or None if it is not tracked."""
        if self is ChangeType.HAND_WRITTEN_CHAR:
            return EventType.HAND_WRITTEN
        if self is ChangeType.AUTO_COMPLETION:
            return EventType.AUTO_COMPLETION
        return None


# Extension → language id, used when the host does not supply one
LANGUAGES: Dict[str, str] = {
    "py": "Python",
    "pyi": "Python",
    "kt": "Kotlin",
    "kts": "Kotlin",
    "java": "JAVA",
    "js": "JavaScript",
    "jsx": "JavaScript",
    "mjs": "JavaScript",
    "ts": "TypeScript",
    "tsx": "TypeScript",
    "go": "Go",
    "rs": "Rust",
    "rb": "Ruby",
    "c": "C",
    "h": "C",
    "cpp": "C++",
    "cc": "C++",
    "hpp": "C++",
    "cs": "C#",
    "php": "PHP",
    "swift": "Swift",
    "scala": "Scala",
    "sh": "Shell Script",
    "sql": "SQL",
    "html": "HTML",
    "css": "CSS",
    "json": "JSON",
    "yaml": "YAML",
    "yml": "YAML",
    "toml": "TOML",
    "md": "Markdown",
    "xml": "XML",
}


def language_for(path: str) -> str:
    """Guess a language id from a file extension."""
    ext = PurePath(path).suffix.lstrip(".").lower()
    return LANGUAGES.get(ext, UNKNOWN)


def _iso_utc(ts: datetime) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2026-01-02T03:04:05.123Z"""
    if ts.tzinfo is None:
        ts = ts.astimezone()
    utc = ts.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def now_local() -> datetime:
    """Current time as a timezone-aware local datetime."""
    return datetime.now().astimezone()


@dataclass(frozen=True)
class CodingEvent:
    """A single observed edit attributed to one category."""

    timestamp: datetime
    char_count_change: int
    type: EventType
    filename: str = ""
    extension: str = ""
    language: str = UNKNOWN
    repository: str = UNKNOWN
    branch: str = UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": _iso_utc(self.timestamp),
            "charCountChange": self.char_count_change,
            "type": self.type.value,
            "filename": self.filename,
            "extension": self.extension,
            "language": self.language,
            "repository": self.repository,
            "branch": self.branch,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CodingEvent":
        raw_ts = data["timestamp"]
        if raw_ts.endswith("Z"):
            raw_ts = raw_ts[:-1] + "+00:00"
        return cls(
            timestamp=datetime.fromisoformat(raw_ts).astimezone(),
            char_count_change=int(data.get("charCountChange", 0)),
            type=EventType.from_str(data["type"]),
            filename=data.get("filename", ""),
            extension=data.get("extension", ""),
            language=data.get("language") or UNKNOWN,
            repository=data.get("repository") or UNKNOWN,
            branch=data.get("branch") or UNKNOWN,
        )


@dataclass(frozen=True)
class EditDelta:
    """What a single document change replaced: text removed at offset, text inserted."""
    offset: int
    removed_text: str
    inserted_text: str


@dataclass(frozen=True)
class DocumentChange:
    """
    Change notification delivered by an editor host.

    `text` is the full document text AFTER the change. `language` is the
    host's syntax id when it has one; otherwise it is guessed from the path.
    """

    path: str
    offset: int
    old_fragment: str
    new_fragment: str
    text: str
    language: Optional[str] = field(default=None)

    @property
    def old_length(self) -> int:
        return len(self.old_fragment)

    @property
    def extension(self) -> str:
        return PurePath(self.path).suffix.lstrip(".")

    @property
    def delta(self) -> EditDelta:
        return EditDelta(
            offset=self.offset,
            removed_text=self.old_fragment,
            inserted_text=self.new_fragment,
        )

    def previous_text(self) -> str:
        """Reconstruct the document text as it was before this change."""
        end = self.offset + len(self.new_fragment)
        return self.text[: self.offset] + self.old_fragment + self.text[end:]
