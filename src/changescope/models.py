"""
Data models for repository history.

All models are immutable (frozen) dataclasses: they are read-only views
computed per call and never cached by the package.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from changescope.constants import LOCAL_BRANCH_PREFIX, REMOTES_PREFIX


def timestamp_to_datetime(timestamp: int) -> datetime:
    """Convert a unix timestamp (seconds) to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


@dataclass(frozen=True)
class Commit:
    """
    A commit node in the history graph.

    ``timestamp`` is the committer time in unix seconds. Root commits have
    no parents, merge commits have two or more.
    """
    id: str
    timestamp: int
    parents: tuple[str, ...] = ()

    @property
    def date(self) -> datetime:
        return timestamp_to_datetime(self.timestamp)


@dataclass(frozen=True)
class Ref:
    """A named pointer to a commit, e.g. ``refs/remotes/origin/main``."""
    name: str
    commit_id: str

    @property
    def short_name(self) -> str:
        for prefix in (LOCAL_BRANCH_PREFIX, REMOTES_PREFIX):
            if self.name.startswith(prefix):
                return self.name[len(prefix):]
        return self.name


@dataclass(frozen=True)
class ForkPoint:
    """The best common ancestor of two commits."""
    commit: Commit

    @property
    def id(self) -> str:
        return self.commit.id

    @property
    def date(self) -> datetime:
        return self.commit.date


@dataclass(frozen=True)
class ChangedFile:
    """A path reported by a name-status tree diff."""
    path: str
    status: str  # 'added', 'modified', 'deleted', 'renamed', 'copied', 'type_changed'
    old_path: Optional[str] = None  # Only set for renames and copies


@dataclass(frozen=True)
class BlameLine:
    """Attribution of one line of a file's current content."""
    line: int
    revision: str
    author: str
    author_email: str
    timestamp: int
    summary: str = field(default="", compare=False)

    @property
    def date(self) -> datetime:
        return timestamp_to_datetime(self.timestamp)
