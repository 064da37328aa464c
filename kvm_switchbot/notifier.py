"""User-facing notification and prompt collaborators."""

from __future__ import annotations

import logging
import sys
from typing import Callable, Optional, Protocol, TextIO

from .results import SEVERITY_ERROR, SEVERITY_SUCCESS, ApiResult

LOGGER = logging.getLogger(__name__)


class Notifier(Protocol):
    """Fire-and-forget sink for ``(message, severity)`` pairs."""

    def notify(self, message: str, severity: str) -> None:
        ...


class UserPrompt(Protocol):
    """Blocking user interactions."""

    def alert(self, message: str) -> None:
        ...

    def confirm(self, message: str) -> bool:
        ...


class LoggingNotifier:
    """Routes notifications to the log and keeps them for later inspection."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream
        self.history: list[tuple[str, str]] = []

    def notify(self, message: str, severity: str) -> None:
        self.history.append((message, severity))
        if severity == SEVERITY_ERROR:
            LOGGER.error("%s", message)
        else:
            LOGGER.info("%s", message)
        if self._stream is not None:
            print(message, file=self._stream)


class ConsolePrompt:
    def __init__(
        self,
        *,
        input_func: Callable[[str], str] = input,
        stream: TextIO = sys.stderr,
    ) -> None:
        self._input = input_func
        self._stream = stream

    def alert(self, message: str) -> None:
        print(f"⚠️ {message}", file=self._stream)

    def confirm(self, message: str) -> bool:
        try:
            answer = self._input(f"{message} [y/N] ")
        except EOFError:
            return False
        return answer.strip().lower() in {"y", "yes"}


def report_result(result: ApiResult, notifier: Notifier) -> None:
    """Hand a classified dispatch result to the notifier."""
    severity = SEVERITY_SUCCESS if result.ok else SEVERITY_ERROR
    notifier.notify(result.format_message(), severity)
