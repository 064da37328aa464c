"""Wires credentials, dispatcher, notifier and mount observer together."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional

from . import constants
from .config import AppConfig, ConfigurationMissingError, CredentialStore, credential_store_for
from .dispatcher import Command, CommandDispatcher, CommandLike
from .dom import Document
from .mount import MountObserver
from .notifier import Notifier, UserPrompt, report_result
from .results import SEVERITY_ERROR, ApiResult

LOGGER = logging.getLogger(__name__)


class AppNotRunningError(RuntimeError):
    """Raised when a command is requested while the app is not active."""


class AppState(str, Enum):
    COLD_START = "cold_start"
    UNCONFIGURED = "unconfigured"
    ACTIVE = "active"
    STOPPING = "stopping"
    STOPPED = "stopped"


class SwitchBotButtonsApp:
    """Coordinates startup, control activation and shutdown.

    Credentials are read once in :meth:`start`. When any of them is missing
    the app stays in ``UNCONFIGURED``: the user is warned once, no dispatcher
    is created and no controls are mounted, so nothing can be sent.
    """

    def __init__(
        self,
        config: AppConfig,
        document: Document,
        *,
        notifier: Notifier,
        prompt: UserPrompt,
        store: Optional[CredentialStore] = None,
        dispatcher: Optional[CommandDispatcher] = None,
    ) -> None:
        self._config = config
        self._document = document
        self._notifier = notifier
        self._prompt = prompt
        self._store = store or credential_store_for(config)
        self._dispatcher = dispatcher
        self._observer: Optional[MountObserver] = None
        self._tasks: set[asyncio.Task[ApiResult]] = set()
        self._missing: list[str] = []
        self.state = AppState.COLD_START

    @property
    def observer(self) -> Optional[MountObserver]:
        return self._observer

    def start(self) -> bool:
        if self.state is AppState.ACTIVE:
            return True
        if self.state is AppState.UNCONFIGURED:
            return False

        credentials = self._store.load_credentials()
        self._missing = credentials.missing_fields()
        if self._missing:
            self.state = AppState.UNCONFIGURED
            LOGGER.warning(
                "SwitchBot config not set (missing: %s)", ", ".join(self._missing)
            )
            self._prompt.alert(constants.CONFIG_MISSING_WARNING)
            return False

        if self._dispatcher is None:
            self._dispatcher = CommandDispatcher(
                credentials,
                base_url=self._config.api.base_url,
                timeout_seconds=self._config.api.timeout_seconds,
            )

        self._observer = MountObserver(
            self._document,
            activate=self.activate,
            confirm=self._prompt.confirm,
            anchor_label=self._config.mount.anchor_label,
        )
        self._observer.start()
        self.state = AppState.ACTIVE
        return True

    def activate(self, command: CommandLike) -> None:
        """Start dispatching ``command`` in the background (click handler).

        Clicks on controls left in the page after shutdown are ignored.
        """
        if self.state is not AppState.ACTIVE:
            LOGGER.warning(
                "Ignoring [%s]: app is %s", Command(command).value, self.state.value
            )
            return
        loop = asyncio.get_running_loop()
        task = loop.create_task(self.run_command(command))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    async def run_command(self, command: CommandLike) -> ApiResult:
        if self.state is AppState.UNCONFIGURED:
            raise ConfigurationMissingError(self._missing)
        if self._dispatcher is None or self.state not in (AppState.ACTIVE, AppState.STOPPING):
            raise AppNotRunningError(f"App is not running (state: {self.state.value})")

        result = await self._dispatcher.dispatch(command)
        report_result(result, self._notifier)
        return result

    async def aclose(self) -> None:
        if self.state is AppState.ACTIVE:
            self.state = AppState.STOPPING
        if self._observer is not None:
            self._observer.stop()
        if self._tasks:
            # Requests already sent run to completion; failures are reported
            # by _on_task_done
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        if self._dispatcher is not None:
            await self._dispatcher.aclose()
        self.state = AppState.STOPPED

    def _on_task_done(self, task: "asyncio.Task[ApiResult]") -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        LOGGER.error("Command dispatch failed: %s", exc, exc_info=exc)
        self._notifier.notify(f"❌ Command failed:\n{exc}", SEVERITY_ERROR)
