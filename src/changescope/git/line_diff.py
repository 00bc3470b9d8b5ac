"""
Changed-line detection for individual files.

Line terminators are normalized before comparing, so CRLF/LF conversions
never show up as changes. The diff itself is git's, run on the normalized
content with ``git diff --no-index``; only the new-side hunk ranges are used.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional

from changescope.constants import DEFAULT_GIT_EXECUTABLE, DEFAULT_GIT_TIMEOUT
from changescope.git.commands import GitCommandError, GitParseError, diff_text_ranges
from changescope.models import ForkPoint
from changescope.readers import BinaryContentError, decode_text

logger = logging.getLogger(__name__)

# Failures that only affect the file being diffed
_PER_FILE_ERRORS = (GitCommandError, GitParseError, BinaryContentError, ValueError, OSError)


def normalize_line_endings(text: str) -> str:
    """Treat CRLF as LF, and a missing final newline as present."""
    text = text.replace('\r\n', '\n')
    if text and not text.endswith('\n'):
        text += '\n'
    return text


def split_lines(text: str) -> list[str]:
    """
    Split on LF only, the way git counts lines.

    A trailing newline does not start another line.
    """
    if not text:
        return []
    lines = text.split('\n')
    if lines[-1] == '':
        lines.pop()
    return lines


def changed_line_numbers(
    old_text: str,
    new_text: str,
    timeout: int = DEFAULT_GIT_TIMEOUT,
    git_executable: str = DEFAULT_GIT_EXECUTABLE,
) -> set[int]:
    """
    1-based numbers of lines in ``new_text`` that are added or modified.

    Lines that were only removed have no number in the new content and are
    not reported.

    Raises:
        GitCommandError: If git fails to diff the contents
    """
    old_text = normalize_line_endings(old_text)
    new_text = normalize_line_endings(new_text)
    if old_text == new_text or not new_text:
        return set()
    if not old_text:
        return set(range(1, len(split_lines(new_text)) + 1))

    ranges = diff_text_ranges(
        old_text.encode('utf-8'),
        new_text.encode('utf-8'),
        timeout=timeout,
        git_executable=git_executable,
    )
    return {line for start, count in ranges for line in range(start, start + count)}


class LineDiffer:
    """Computes changed lines between the fork point and the new content."""

    def __init__(self, repo):
        self.repo = repo

    def changed_lines(
        self,
        fork_point: Optional[ForkPoint],
        head_commit: Optional[str],
        candidate_paths: Iterable[str],
        include_uncommitted: bool = True,
        rename_sources: Optional[Mapping[str, str]] = None,
    ) -> Optional[dict[str, set[int]]]:
        """
        Changed lines for each candidate path (relative to the work tree root).

        Args:
            fork_point: Old side of the comparison
            head_commit: New side, used when ``include_uncommitted`` is False
            candidate_paths: Paths to compute
            include_uncommitted: Read the new content from the working copy
            rename_sources: new path -> old path, for files renamed since
                the fork point

        Returns:
            Map of path to changed line numbers, or None when there is no
            fork point. Paths that are unchanged, deleted, missing or fail
            to diff are left out; the rest of the batch still completes.
        """
        if fork_point is None:
            return None
        if head_commit is None and not include_uncommitted:
            return None

        rename_sources = rename_sources or {}
        result: dict[str, set[int]] = {}

        for path in candidate_paths:
            try:
                lines = self._file_changed_lines(
                    fork_point, head_commit, path, include_uncommitted,
                    rename_sources.get(path, path),
                )
            except _PER_FILE_ERRORS as e:
                logger.warning("Failed to get changed lines for file %s: %s", path, e)
                continue
            if lines is not None:
                result[path] = lines

        return result

    def _file_changed_lines(
        self,
        fork_point: ForkPoint,
        head_commit: Optional[str],
        path: str,
        include_uncommitted: bool,
        old_path: str,
    ) -> Optional[set[int]]:
        if include_uncommitted:
            new_data = self.repo.read_worktree(path)
        else:
            new_data = self.repo.read_blob(head_commit, path)
        if new_data is None:
            # Deleted or never existed: no new lines
            return None

        old_data = self.repo.read_blob(fork_point.id, old_path)
        if old_data is None:
            old_data = b''
        if old_data == new_data:
            return None

        try:
            new_text = decode_text(new_data)
            old_text = decode_text(old_data)
        except BinaryContentError as e:
            raise BinaryContentError(f"{path} has binary content") from e

        settings = self.repo.settings
        return changed_line_numbers(
            old_text, new_text,
            timeout=settings.timeout,
            git_executable=settings.git_executable,
        )
