"""Request signing for the SwitchBot v1.1 API (HMAC-SHA256)."""

from __future__ import annotations

import base64
import logging
import time
import uuid
from typing import Optional

from cryptography.hazmat.primitives import hashes, hmac

LOGGER = logging.getLogger(__name__)


class SigningError(RuntimeError):
    """Raised when a request signature cannot be computed."""


def compute_signature(secret: str, message: str) -> str:
    """Return the base64-encoded HMAC-SHA256 of ``message`` keyed by ``secret``."""
    try:
        mac = hmac.HMAC(secret.encode("utf-8"), hashes.SHA256())
        mac.update(message.encode("utf-8"))
        digest = mac.finalize()
    except (TypeError, ValueError, AttributeError) as exc:
        raise SigningError(f"Unable to compute request signature: {exc}") from exc
    return base64.b64encode(digest).decode("ascii")


def sign(token: str, secret: str, timestamp: int, nonce: str) -> str:
    """Sign ``token ++ timestamp ++ nonce`` with the shared secret.

    The timestamp is rendered as a decimal string and the three parts are
    concatenated without separators.
    """
    return compute_signature(secret, f"{token}{timestamp}{nonce}")


def generate_nonce() -> str:
    """Return a fresh per-request nonce (unique, not a secret)."""
    return uuid.uuid4().hex


def current_timestamp_ms() -> int:
    return int(time.time() * 1000)


def build_auth_headers(
    token: str,
    secret: str,
    *,
    timestamp: Optional[int] = None,
    nonce: Optional[str] = None,
) -> dict[str, str]:
    """Build the signed header set expected by the device command endpoint."""

    t = current_timestamp_ms() if timestamp is None else timestamp
    n = generate_nonce() if nonce is None else nonce
    signature = sign(token, secret, t, n)
    LOGGER.debug("Signed request with nonce=%s t=%d", n, t)

    return {
        "Authorization": token,
        "sign": signature,
        "nonce": n,
        "t": str(t),
        "Content-Type": "application/json",
    }
