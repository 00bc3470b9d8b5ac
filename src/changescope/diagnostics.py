"""
Warning sink for analysis-level diagnostics.

The package only produces message text. Where and how the messages are shown
is decided by whoever owns the sink.
"""
from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class WarningSink(Protocol):
    """Anything accepting de-duplicated user-facing warnings."""

    def add_unique(self, message: str) -> None:
        ...


class AnalysisWarnings:
    """
    In-memory WarningSink that keeps each distinct message once.

    Messages keep their first-seen order.
    """

    def __init__(self) -> None:
        self._messages: dict[str, None] = {}

    def add_unique(self, message: str) -> None:
        if message in self._messages:
            return
        logger.debug("Analysis warning recorded: %s", message)
        self._messages[message] = None

    @property
    def messages(self) -> list[str]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, message: object) -> bool:
        return message in self._messages


class NullWarnings:
    """WarningSink that drops everything."""

    def add_unique(self, message: str) -> None:
        pass
