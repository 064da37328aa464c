"""Command-line interface for kvm-switchbot."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable, Optional

from . import constants
from .config import AppConfig, Credentials, credential_store_for, load_config
from .controls import POWER_OFF_SPEC, POWER_ON_SPEC, confirmation_message
from .dispatcher import CommandDispatcher
from .logging import configure_logging
from .notifier import ConsolePrompt, LoggingNotifier, UserPrompt, report_result
from .results import ApiResult

LOGGER = logging.getLogger(__name__)

CONTROL_SPECS = {"on": POWER_ON_SPEC, "off": POWER_OFF_SPEC}

CREDENTIAL_FIELDS = (
    ("token", constants.TOKEN_KEY, "Token"),
    ("secret", constants.SECRET_KEY, "Secret"),
    ("device_id", constants.DEVICE_ID_KEY, "Device ID"),
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kvm-switchbot", description="SwitchBot power controls for a KVM web panel"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {constants.DEFAULT_CONFIG_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    configure_parser = subparsers.add_parser(
        "configure", help="Store SwitchBot token, secret and device id"
    )
    configure_parser.add_argument("--token", help="SwitchBot API token")
    configure_parser.add_argument("--secret", help="SwitchBot API secret")
    configure_parser.add_argument("--device-id", help="SwitchBot device id")

    send_parser = subparsers.add_parser("send", help="Send a power command now")
    send_parser.add_argument("action", choices=sorted(CONTROL_SPECS))
    send_parser.add_argument(
        "-y", "--yes", action="store_true", help="Skip the confirmation prompt"
    )

    subparsers.add_parser(
        "show-config", help="Print the resolved configuration and exit"
    )

    return parser


def _mask(value: str) -> str:
    if not value:
        return ""
    return value[:4] + "*" * max(len(value) - 4, 4)


def run_configure(
    config: AppConfig,
    args: argparse.Namespace,
    *,
    input_func: Callable[[str], str] = input,
) -> int:
    store = credential_store_for(config)
    given = {attr: getattr(args, attr) for attr, _, _ in CREDENTIAL_FIELDS}
    interactive = all(value is None for value in given.values())

    for attr, key, title in CREDENTIAL_FIELDS:
        value = given[attr]
        if value is None and interactive:
            current = store.get(key)
            suffix = f" [{_mask(current)}]" if current else ""
            value = input_func(f"Enter your SwitchBot {title}{suffix}: ")
            if not value.strip():
                continue
        if value is None:
            continue
        store.set(key, value)
        print(f"✅ {title} saved!")

    return 0


async def send_command(config: AppConfig, credentials: Credentials, action: str) -> ApiResult:
    spec = CONTROL_SPECS[action]
    async with CommandDispatcher(
        credentials,
        base_url=config.api.base_url,
        timeout_seconds=config.api.timeout_seconds,
    ) as dispatcher:
        return await dispatcher.dispatch(spec.command)


def run_send(
    config: AppConfig,
    args: argparse.Namespace,
    *,
    prompt: Optional[UserPrompt] = None,
) -> int:
    prompt = prompt or ConsolePrompt()
    credentials = credential_store_for(config).load_credentials()
    missing = credentials.missing_fields()
    if missing:
        LOGGER.warning("SwitchBot config not set (missing: %s)", ", ".join(missing))
        prompt.alert(constants.CONFIG_MISSING_WARNING)
        return 1

    spec = CONTROL_SPECS[args.action]
    if spec.requires_confirmation and not args.yes:
        if not prompt.confirm(confirmation_message(spec.label)):
            print("Cancelled.")
            return 0

    result = asyncio.run(send_command(config, credentials, args.action))
    report_result(result, LoggingNotifier(stream=sys.stdout))
    return 0 if result.ok else 1


def run_show_config(config: AppConfig) -> int:
    masked_keys = {constants.TOKEN_KEY, constants.SECRET_KEY}
    print(f"Configuration loaded from {config.path!s}\n")
    for section in config.raw.sections():
        print(f"[{section}]")
        for key, value in config.raw[section].items():
            if key in masked_keys:
                value = _mask(value)
            print(f"{key} = {value}")
        print()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)
    configure_logging(
        config.logging.level,
        log_path=config.logging.path,
        log_network=config.logging.log_network,
    )

    if args.command == "configure":
        return run_configure(config, args)

    if args.command == "send":
        return run_send(config, args)

    if args.command == "show-config":
        return run_show_config(config)

    LOGGER.error("Unknown command: %s", args.command)
    return 1


if __name__ == "__main__":
    sys.exit(main())
