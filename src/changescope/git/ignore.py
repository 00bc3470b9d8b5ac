"""Ignore-rule checks (.gitignore, .git/info/exclude, core.excludesFile)."""

from __future__ import annotations

import logging
from typing import Iterable

from changescope.git.commands import GitCommandError

logger = logging.getLogger(__name__)


class IgnoreChecker:
    """
    Evaluates ignore rules with git's own precedence.

    More specific files and later patterns win and ``!`` patterns re-include.
    Tracked files are never ignored.
    """

    def __init__(self, repo):
        self.repo = repo

    def is_ignored(self, path: str) -> bool:
        """True if ``path`` (relative to the work tree root) is ignored."""
        try:
            return self.repo.check_ignore(path)
        except GitCommandError as e:
            logger.debug("Ignore check failed for %s: %s", path, e)
            return False

    def ignored_paths(self, paths: Iterable[str]) -> set[str]:
        """The subset of ``paths`` that is ignored, computed in one pass."""
        paths = list(paths)
        try:
            return self.repo.check_ignore_many(paths)
        except GitCommandError as e:
            logger.debug("Batch ignore check failed for %d paths: %s", len(paths), e)
            return set()
