"""SwitchBot power controls for a KVM web panel."""

from .app import AppState, SwitchBotButtonsApp
from .config import ConfigurationMissingError, Credentials, CredentialStore, load_config
from .dispatcher import Command, CommandDispatcher, classify_response
from .mount import MountObserver, inject_controls
from .results import ApiResult, CommandSuccess, DomainError, ParseError, TransportError
from .signing import sign

__all__ = [
    "ApiResult",
    "AppState",
    "Command",
    "CommandDispatcher",
    "CommandSuccess",
    "ConfigurationMissingError",
    "CredentialStore",
    "Credentials",
    "DomainError",
    "MountObserver",
    "ParseError",
    "SwitchBotButtonsApp",
    "TransportError",
    "classify_response",
    "inject_controls",
    "load_config",
    "sign",
]
