"""Best-effort git auto-commit of the memory directory.

Callers must treat a failed commit as a no-op: the memory write already
happened and nothing downstream depends on the commit.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

GIT_TIMEOUT = 5  # seconds per git invocation


@runtime_checkable
class Committer(Protocol):
    """Capability to record the current state of the memory directory."""

    def commit(self, message: str) -> None:
        """Commit all changes. May raise; callers swallow failures."""
        ...


class NullCommitter:
    """Used when autocommit is disabled."""

    def commit(self, message: str) -> None:
        return None


@dataclass
class GitCommitter:
    """Stage everything under `root` and commit it with `message`."""

    root: Path
    timeout: int = GIT_TIMEOUT

    def commit(self, message: str) -> None:
        self._git("add", "-A")
        self._git("commit", "-m", message, "--allow-empty-message", "--no-verify")

    def _git(self, *args: str) -> None:
        subprocess.run(
            ["git", *args],
            cwd=self.root,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=self.timeout,
            check=True,
        )


def make_committer(root: Path, autocommit: bool) -> Committer:
    return GitCommitter(root) if autocommit else NullCommitter()


def safe_commit(committer: Committer, message: str) -> bool:
    """Run the commit, swallowing any failure. Returns True if it succeeded."""
    try:
        committer.commit(message)
    except Exception as e:
        # git missing, not a repository, or nothing to commit
        logger.debug("Auto-commit skipped (%s): %s", message, e)
        return False
    return True
