"""Classified outcomes of a device command dispatch."""

from __future__ import annotations

import abc
import json
from dataclasses import dataclass, field
from typing import Any, ClassVar

SEVERITY_SUCCESS = "success"
SEVERITY_ERROR = "error"


def _pretty(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class ApiResult(abc.ABC):
    """Base class for the four result kinds; one instance per dispatch."""

    command: str

    severity: ClassVar[str] = SEVERITY_ERROR

    @property
    def ok(self) -> bool:
        return self.severity == SEVERITY_SUCCESS

    @abc.abstractmethod
    def format_message(self) -> str:
        """Render the user-facing notification text."""


@dataclass(frozen=True, slots=True)
class CommandSuccess(ApiResult):
    """API accepted the command.

    ``plain`` is true for the canonical empty-success body
    (``message == "success"`` with an empty ``body`` object or array);
    otherwise the full response carries detail worth showing.
    """

    message: str = ""
    payload: dict[str, Any] = field(default_factory=dict)
    plain: bool = True

    severity: ClassVar[str] = SEVERITY_SUCCESS

    def format_message(self) -> str:
        if self.plain:
            return f"✅ [{self.command}] Success!"
        return f"✅ [{self.command}] Success:\n{_pretty(self.payload)}"


@dataclass(frozen=True, slots=True)
class DomainError(ApiResult):
    """Well-formed response whose ``statusCode`` is not the success sentinel."""

    status_code: Any = None
    payload: dict[str, Any] = field(default_factory=dict)

    def format_message(self) -> str:
        return f"❌ [{self.command}] Error:\n{_pretty(self.payload)}"


@dataclass(frozen=True, slots=True)
class TransportError(ApiResult):
    """The request never produced a response body (network, timeout, signing)."""

    detail: str = ""

    def format_message(self) -> str:
        return f"❌ Error sending [{self.command}]:\n{self.detail}"


@dataclass(frozen=True, slots=True)
class ParseError(ApiResult):
    """The response body was not a JSON object."""

    raw: str = ""

    def format_message(self) -> str:
        return f"❌ [{self.command}] Invalid JSON response:\n{self.raw}"
