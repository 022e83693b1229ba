"""Runtime environment helpers for development-only behaviour."""

import os
from urllib.parse import urlparse
from typing import Optional, Set

_LOCAL_HOSTS: Set[str] = {"localhost", "127.0.0.1", "::1"}


def _hostname(url_value: str) -> Optional[str]:
    value = (url_value or "").strip()
    if not value:
        return None
    if "://" not in value:
        value = f"http://{value}"
    return urlparse(value).hostname


def running_under_pytest() -> bool:
    return bool(os.getenv("PYTEST_CURRENT_TEST"))


def dev_mode_requested() -> bool:
    return os.getenv("DEV_MODE", "false").strip().lower() == "true"


def dev_mode_active() -> bool:
    """Return True when DEV_MODE is on and allowed for this deployment.

    DEV_MODE is only honoured when APP_BASE_URL points at a local host, or
    when ALLOW_DEV_MODE=true is set explicitly. Anything else is a
    misconfiguration and raises RuntimeError.
    """
    if not dev_mode_requested():
        return False

    host = _hostname(os.getenv("APP_BASE_URL", ""))
    if host:
        if host.lower() not in _LOCAL_HOSTS:
            raise RuntimeError(
                f"DEV_MODE=true is not permitted when APP_BASE_URL points to '{host}'."
            )
        return True

    if os.getenv("ALLOW_DEV_MODE", "false").strip().lower() != "true" and not running_under_pytest():
        raise RuntimeError(
            "DEV_MODE=true requires a localhost APP_BASE_URL or ALLOW_DEV_MODE=true."
        )
    return True


def insecure_defaults_allowed() -> bool:
    """Development secrets may stand in for real ones under pytest or dev mode."""
    if running_under_pytest():
        return True
    try:
        return dev_mode_active()
    except RuntimeError:
        return False
