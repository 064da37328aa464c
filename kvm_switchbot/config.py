"""Configuration and credential storage for kvm-switchbot."""

from __future__ import annotations

import logging
import os
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import constants

LOGGER = logging.getLogger(__name__)

CREDENTIALS_SECTION = "credentials"


class ConfigurationMissingError(RuntimeError):
    """Raised when one or more SwitchBot credentials are not configured."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(
            "SwitchBot configuration incomplete, missing: " + ", ".join(missing)
        )
        self.missing = list(missing)


@dataclass(frozen=True, slots=True)
class Credentials:
    token: str
    secret: str
    device_id: str

    def missing_fields(self) -> list[str]:
        return [
            name
            for name, value in (
                ("token", self.token),
                ("secret", self.secret),
                ("device_id", self.device_id),
            )
            if not value
        ]

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()

    def require_complete(self) -> None:
        missing = self.missing_fields()
        if missing:
            raise ConfigurationMissingError(missing)


@dataclass(slots=True)
class ApiConfig:
    base_url: str = constants.DEFAULT_API_BASE_URL
    timeout_seconds: float = constants.DEFAULT_REQUEST_TIMEOUT_SECONDS


@dataclass(slots=True)
class MountConfig:
    anchor_label: str = constants.ANCHOR_LABEL


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = None
    log_network: bool = False


@dataclass(slots=True)
class AppConfig:
    api: ApiConfig
    mount: MountConfig
    logging: LoggingConfig
    raw: ConfigParser
    path: Path


class CredentialStore:
    """Key/value credential store persisted in the ``[credentials]`` section.

    Values are written back to disk on every ``set`` so they survive across
    sessions. Keys are the same as the browser user script storage keys
    (``switchbot_token``, ``switchbot_secret``, ``switchbot_deviceId``).
    """

    def __init__(self, path: Path, parser: Optional[ConfigParser] = None) -> None:
        self.path = path
        # Keys are case-sensitive (switchbot_deviceId)
        self._parser = parser if parser is not None else _new_parser()
        if parser is None and path.exists():
            self._parser.read(path, encoding="utf-8")

    def get(self, key: str, default: str = "") -> str:
        return self._parser.get(CREDENTIALS_SECTION, key, fallback=default).strip()

    def set(self, key: str, value: str) -> None:
        if not self._parser.has_section(CREDENTIALS_SECTION):
            self._parser.add_section(CREDENTIALS_SECTION)
        self._parser.set(CREDENTIALS_SECTION, key, value.strip())
        _write_parser(self._parser, self.path)
        LOGGER.info("Stored %s in %s", key, self.path)

    def load_credentials(self) -> Credentials:
        return Credentials(
            token=self.get(constants.TOKEN_KEY),
            secret=self.get(constants.SECRET_KEY),
            device_id=self.get(constants.DEVICE_ID_KEY),
        )


def _new_parser() -> ConfigParser:
    parser = ConfigParser(interpolation=None)
    parser.optionxform = str  # type: ignore[assignment]
    return parser


def _write_parser(parser: ConfigParser, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        parser.write(stream)

    # The file holds the API secret (Unix only)
    if hasattr(os, "chmod"):
        os.chmod(path, 0o600)


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load configuration from disk, applying defaults where necessary."""

    config_path = path or constants.DEFAULT_CONFIG_PATH
    parser = _new_parser()
    parser.read_dict(
        {
            "api": {
                "base_url": constants.DEFAULT_API_BASE_URL,
                "timeout_seconds": str(constants.DEFAULT_REQUEST_TIMEOUT_SECONDS),
            },
            "mount": {
                "anchor_label": constants.ANCHOR_LABEL,
            },
            "logging": {
                "level": "INFO",
                "log_network": "false",
            },
        }
    )

    if config_path.exists():
        parser.read(config_path, encoding="utf-8")

    try:
        timeout_value = parser.getfloat(
            "api",
            "timeout_seconds",
            fallback=constants.DEFAULT_REQUEST_TIMEOUT_SECONDS,
        )
    except ValueError:
        timeout_value = constants.DEFAULT_REQUEST_TIMEOUT_SECONDS
    if timeout_value <= 0:
        timeout_value = constants.DEFAULT_REQUEST_TIMEOUT_SECONDS

    api = ApiConfig(
        base_url=parser.get("api", "base_url").rstrip("/"),
        timeout_seconds=timeout_value,
    )

    mount = MountConfig(
        anchor_label=parser.get("mount", "anchor_label").strip()
        or constants.ANCHOR_LABEL,
    )

    log_path_value = parser.get("logging", "path", fallback="").strip()
    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=Path(log_path_value).expanduser() if log_path_value else None,
        log_network=parser.getboolean("logging", "log_network", fallback=False),
    )

    return AppConfig(
        api=api,
        mount=mount,
        logging=logging_config,
        raw=parser,
        path=config_path,
    )


def save_config(config: AppConfig) -> None:
    """Persist the current configuration to disk."""

    _write_parser(config.raw, config.path)


def credential_store_for(config: AppConfig) -> CredentialStore:
    """Return a credential store sharing the parser and file of ``config``."""

    return CredentialStore(config.path, parser=config.raw)
