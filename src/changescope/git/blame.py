"""
Line attribution (blame).

``BlameResult`` is a lazy, finite and restartable sequence: nothing runs
until it is iterated, every iteration starts a fresh blame, and lines come
out in ascending line order as git streams them.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator

from changescope.git.commands import GitCommandError, GitParseError
from changescope.models import BlameLine

logger = logging.getLogger(__name__)


class BlameResult:
    """Iterable of ``BlameLine`` for one file."""

    def __init__(self, path: str, source: Callable[[], Iterator[BlameLine]]):
        self.path = path
        self._source = source

    def __iter__(self) -> Iterator[BlameLine]:
        try:
            yield from self._source()
        except (GitCommandError, GitParseError, ValueError) as e:
            logger.warning("Failed to blame %s: %s", self.path, e)

    def __repr__(self) -> str:
        return f"BlameResult({self.path!r})"


class BlameResolver:
    """Attributes each line of a file to the commit that last touched it."""

    def __init__(self, repo):
        self.repo = repo

    def blame(self, path: str) -> BlameResult:
        """
        Blame ``path`` (relative to the work tree root).

        Files without history give an empty sequence.
        """
        return BlameResult(path, lambda: self.repo.blame_lines(path))
