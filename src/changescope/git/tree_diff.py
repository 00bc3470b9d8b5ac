"""Changed-file detection between the fork point and the head commit."""

from __future__ import annotations

import logging
from typing import Optional

from changescope.constants import CHANGED_STATUSES
from changescope.git.commands import GitCommandError, GitParseError
from changescope.models import ChangedFile, ForkPoint

logger = logging.getLogger(__name__)


def is_new_code(change: ChangedFile) -> bool:
    """Added, modified and renamed-to paths count; deletions never do."""
    return change.status in CHANGED_STATUSES


class TreeDiffer:
    """Structural (name and status only) diff of two commit trees."""

    def __init__(self, repo):
        self.repo = repo

    def changed_files(self, fork_point: Optional[ForkPoint], head_commit: Optional[str]) -> Optional[set[str]]:
        """
        Paths, relative to the work tree root, that hold new code in ``head_commit``.

        Returns:
            Set of paths, or None when there is no fork point or the diff
            could not be computed
        """
        if fork_point is None or head_commit is None:
            return None

        try:
            changes = self.repo.diff_trees(fork_point.id, head_commit)
        except (GitCommandError, GitParseError) as e:
            logger.warning("Failed to diff %s against %s: %s", fork_point.id, head_commit, e)
            return None

        return {change.path for change in changes if is_new_code(change)}
