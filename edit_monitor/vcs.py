# Edit Monitor — git metadata resolvers
#
# Two implementations of the same capability, picked once at startup:
#   GitCliResolver: asks the git executable (handles worktrees, packed refs)
#   GitDirResolver: reads .git/HEAD directly, always available
# Both return the UNKNOWN sentinel rather than raising.

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Protocol

from .normalizer import UNKNOWN

logger = logging.getLogger(__name__)

HEAD_REF_PREFIX = "ref: refs/heads/"


class VcsResolver(Protocol):
    """Resolves repository and branch names for a file path."""

    def repo_name(self, path: str) -> str:
        """Repository name, or "unknown"."""

    def branch_name(self, path: str) -> str:
        """Current branch name, or "unknown"."""


def find_git_dir(path: str) -> Optional[Path]:
    """
    Walk up from `path` to the nearest git metadata directory.

    A `.git` file (worktree or submodule) is followed through its
    `gitdir:` line.
    """
    current = Path(path).expanduser().resolve()
    if current.is_file() or not current.exists():
        current = current.parent
    for directory in (current, *current.parents):
        candidate = directory / ".git"
        if candidate.is_dir():
            return candidate
        if candidate.is_file():
            target = _read_gitdir_file(candidate)
            if target is not None:
                return target
    return None


def _read_gitdir_file(git_file: Path) -> Optional[Path]:
    try:
        content = git_file.read_text(encoding="utf-8").strip()
    except OSError:
        return None
    if not content.startswith("gitdir:"):
        return None
    target = Path(content[len("gitdir:"):].strip())
    if not target.is_absolute():
        target = (git_file.parent / target).resolve()
    return target if target.is_dir() else None


def _worktree_root(git_dir: Path, path: str) -> Path:
    # The working tree is the directory holding the .git entry we walked to
    current = Path(path).expanduser().resolve()
    for directory in (current, *current.parents):
        if (directory / ".git").exists():
            return directory
    return git_dir.parent


class GitDirResolver:
    """Reads repository metadata straight from the .git directory."""

    def repo_name(self, path: str) -> str:
        git_dir = find_git_dir(path)
        if git_dir is None:
            return UNKNOWN
        return _worktree_root(git_dir, path).name

    def branch_name(self, path: str) -> str:
        git_dir = find_git_dir(path)
        if git_dir is None:
            return UNKNOWN
        head = git_dir / "HEAD"
        if not head.is_file():
            return UNKNOWN
        content = head.read_text(encoding="utf-8", errors="replace").strip()
        if content.startswith(HEAD_REF_PREFIX):
            return content[len(HEAD_REF_PREFIX):]
        # Detached HEAD
        return "HEAD"


def _run(cmd: list, cwd: str, timeout: float) -> Optional[str]:
    """Run a git command. Returns stdout or None on failure."""
    try:
        result = subprocess.run(
            cmd, cwd=cwd, capture_output=True, text=True, timeout=timeout
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"git command failed: {' '.join(cmd)}: {e}")
        return None
    return result.stdout.strip() if result.returncode == 0 else None


class GitCliResolver:
    """Asks the git executable; falls back to reading .git on any failure."""

    def __init__(self, git: str = "git", timeout: float = 5.0,
                 fallback: Optional[GitDirResolver] = None):
        self.git = git
        self.timeout = timeout
        self.fallback = fallback or GitDirResolver()

    def _cwd(self, path: str) -> Optional[str]:
        p = Path(path).expanduser()
        directory = p if p.is_dir() else p.parent
        return str(directory) if directory.is_dir() else None

    def repo_name(self, path: str) -> str:
        cwd = self._cwd(path)
        if cwd is None:
            return UNKNOWN
        top = _run([self.git, "rev-parse", "--show-toplevel"], cwd, self.timeout)
        if top:
            return Path(top).name
        return self.fallback.repo_name(path)

    def branch_name(self, path: str) -> str:
        cwd = self._cwd(path)
        if cwd is None:
            return UNKNOWN
        branch = _run([self.git, "rev-parse", "--abbrev-ref", "HEAD"], cwd, self.timeout)
        if branch:
            return branch
        return self.fallback.branch_name(path)


class SafeResolver:
    """Wraps a resolver so that lookups never raise."""

    def __init__(self, inner: VcsResolver):
        self.inner = inner

    def repo_name(self, path: str) -> str:
        try:
            return self.inner.repo_name(path) or UNKNOWN
        except Exception as e:
            logger.warning(f"Error getting git repository name for {path}: {e}")
            return UNKNOWN

    def branch_name(self, path: str) -> str:
        try:
            return self.inner.branch_name(path) or UNKNOWN
        except Exception as e:
            logger.warning(f"Error getting git branch for {path}: {e}")
            return UNKNOWN


def select_resolver(prefer_cli: bool = True) -> SafeResolver:
    """Pick the resolver once at startup."""
    git = shutil.which("git") if prefer_cli else None
    if git:
        logger.info(f"Using git executable for VCS metadata: {git}")
        return SafeResolver(GitCliResolver(git=git))
    logger.info("git executable not available, reading .git directly")
    return SafeResolver(GitDirResolver())
