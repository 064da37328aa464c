"""Constants used across the kvm-switchbot package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "kvm-switchbot"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / APP_NAME / DEFAULT_CONFIG_FILENAME
DEFAULT_LOG_PATH = Path.home() / ".local" / "state" / APP_NAME / f"{APP_NAME}.log"

DEFAULT_API_BASE_URL = "https://api.switch-bot.com"
API_VERSION_PATH = "/v1.1"
API_STATUS_OK = 100
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0

# Credential store keys
TOKEN_KEY = "switchbot_token"
SECRET_KEY = "switchbot_secret"
DEVICE_ID_KEY = "switchbot_deviceId"

ANCHOR_LABEL = "Virtual Keyboard"

POWER_ON_BUTTON_ID = "switchbot-power-on-button"
POWER_OFF_BUTTON_ID = "switchbot-power-off-button"
POWER_ON_LABEL = "SwitchBot Power On (1s)"
POWER_OFF_LABEL = "SwitchBot Power Off (6s)"
POWER_ON_ICON = "⏻"
POWER_OFF_ICON = "⏼"

CONFIG_MISSING_WARNING = (
    "SwitchBot not configured! Use `kvm-switchbot configure` to set Token, "
    "Secret, and Device ID."
)
