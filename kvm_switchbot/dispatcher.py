"""Signed device command dispatch and response classification."""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Optional, Union

import aiohttp

from . import constants
from .config import Credentials
from .results import ApiResult, CommandSuccess, DomainError, ParseError, TransportError
from .signing import SigningError, build_auth_headers

LOGGER = logging.getLogger(__name__)


class Command(str, Enum):
    TURN_ON = "turnOn"
    TURN_OFF = "turnOff"


CommandLike = Union[Command, str]


def build_command_body(command: CommandLike) -> dict[str, str]:
    return {
        "command": Command(command).value,
        "parameter": "default",
        "commandType": "command",
    }


def command_url(base_url: str, device_id: str) -> str:
    return (
        f"{base_url.rstrip('/')}{constants.API_VERSION_PATH}"
        f"/devices/{device_id}/commands"
    )


def classify_response(command: CommandLike, raw_text: str) -> ApiResult:
    """Map a raw response body onto one of the result kinds.

    Order matters: unparsable body, then non-OK ``statusCode``, then the
    plain versus detailed success split.
    """

    name = Command(command).value

    try:
        payload: Any = json.loads(raw_text)
    except (json.JSONDecodeError, TypeError) as exc:
        LOGGER.error("[%s] Failed to parse JSON: %s", name, exc)
        return ParseError(command=name, raw=raw_text)

    if not isinstance(payload, dict):
        LOGGER.error("[%s] Response is not a JSON object", name)
        return ParseError(command=name, raw=raw_text)

    LOGGER.debug("[%s] Parsed response: %s", name, payload)

    status_code = payload.get("statusCode")
    if status_code != constants.API_STATUS_OK:
        return DomainError(command=name, status_code=status_code, payload=payload)

    message = payload.get("message")
    body = payload.get("body")
    # An empty list counts as an empty body too
    plain = message == "success" and isinstance(body, (dict, list)) and not body

    return CommandSuccess(
        command=name,
        message=str(message) if message is not None else "",
        payload=payload,
        plain=plain,
    )


class CommandDispatcher:
    """Sends signed commands to a single SwitchBot device.

    Each call to :meth:`dispatch` produces exactly one :class:`ApiResult`.
    Nothing is retried and a request that has been sent is never cancelled
    by the dispatcher itself; the only bound is the total request timeout.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        base_url: str = constants.DEFAULT_API_BASE_URL,
        timeout_seconds: float = constants.DEFAULT_REQUEST_TIMEOUT_SECONDS,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        credentials.require_complete()
        self._credentials = credentials
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "CommandDispatcher":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @property
    def url(self) -> str:
        return command_url(self.base_url, self._credentials.device_id)

    async def dispatch(self, command: CommandLike) -> ApiResult:
        name = Command(command).value

        try:
            headers = build_auth_headers(
                self._credentials.token, self._credentials.secret
            )
        except SigningError as exc:
            LOGGER.error("[%s] Signing failed: %s", name, exc)
            return TransportError(command=name, detail=str(exc))

        body = json.dumps(build_command_body(name))
        session = self._ensure_session()

        LOGGER.info("Sending [%s] to device %s", name, self._credentials.device_id)

        try:
            async with session.post(
                self.url,
                data=body,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                raw_bytes = await response.read()
                http_status = response.status
        except asyncio.TimeoutError:
            LOGGER.error("Error sending [%s]: timed out", name)
            return TransportError(
                command=name,
                detail=f"Request timed out after {self.timeout_seconds:g}s",
            )
        except aiohttp.ClientError as exc:
            LOGGER.error("Error sending [%s]: %s", name, exc)
            return TransportError(
                command=name, detail=f"{type(exc).__name__}: {exc}"
            )

        raw_text = raw_bytes.decode("utf-8", errors="replace")
        LOGGER.info("[%s] Raw response (HTTP %d): %s", name, http_status, raw_text)

        return classify_response(name, raw_text)

    async def aclose(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session
