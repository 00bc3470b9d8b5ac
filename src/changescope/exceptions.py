"""Exceptions raised by changescope."""

from __future__ import annotations

from pathlib import Path

from changescope.constants import NOT_IN_WORK_TREE_MESSAGE


class ChangeScopeError(Exception):
    """Base class for changescope errors."""


class NotInWorkTreeError(ChangeScopeError):
    """
    Raised when a directory is not inside a version-controlled work tree.

    This is a configuration problem the caller has to fix, so unlike every
    other failure in the package it is never converted to ``None``.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        super().__init__(NOT_IN_WORK_TREE_MESSAGE.format(path=self.path))
