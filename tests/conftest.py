"""Shared fixtures for edit monitor tests."""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Ensure the package is importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent))

from edit_monitor.normalizer import UNKNOWN, CodingEvent, EventType


# Wednesday afternoon, local time
NOW = datetime(2026, 3, 18, 14, 30).astimezone()


class FakeResolver:
    """VcsResolver returning fixed names."""

    def __init__(self, repo="edit-monitor", branch="main"):
        self.repo = repo
        self.branch = branch

    def repo_name(self, path):
        return self.repo

    def branch_name(self, path):
        return self.branch


class BrokenResolver:
    def repo_name(self, path):
        raise RuntimeError("vcs exploded")

    def branch_name(self, path):
        raise RuntimeError("vcs exploded")


def make_event(type=EventType.AUTO_COMPLETION, chars=10, timestamp=None,
               repository=UNKNOWN, language=UNKNOWN, branch=UNKNOWN,
               filename="", extension=""):
    return CodingEvent(
        timestamp=timestamp or NOW,
        char_count_change=chars,
        type=type,
        filename=filename,
        extension=extension,
        language=language,
        repository=repository,
        branch=branch,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def resolver():
    return FakeResolver()
