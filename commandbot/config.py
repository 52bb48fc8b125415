"""Configuration loaded from the environment (.env supported)."""

__version__ = "0.1.0"

import os
import sys
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

_stderr_print = lambda *a, **kw: print(*a, **kw, file=sys.stderr)

SUPPORTED_BACKOFF_MODES = ("fixed", "exponential")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        _stderr_print(f"Invalid {name}={raw!r}, falling back to {default}")
        return default
    if value < 0:
        _stderr_print(f"Negative {name}={raw!r}, falling back to {default}")
        return default
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        _stderr_print(f"Invalid {name}={raw!r}, falling back to {default}")
        return default


def _env_backoff() -> str:
    mode = os.getenv("RECONNECT_BACKOFF", "fixed").strip().lower()
    if mode not in SUPPORTED_BACKOFF_MODES:
        _stderr_print(f"Unsupported RECONNECT_BACKOFF={mode!r}, falling back to 'fixed'")
        return "fixed"
    return mode


@dataclass
class AppConfig:
    """Typed process configuration."""

    port: int = 3000
    host: str = "0.0.0.0"
    restart_secret: Optional[str] = None
    auth_dir: str = "auth_info"
    discord_token: str = ""
    service_name: str = "command-bot"
    platform_label: str = "local"
    notify_recipient: Optional[str] = None
    reconnect_delay_seconds: float = 5.0
    reconnect_backoff: str = "fixed"
    reconnect_max_delay_seconds: float = 300.0
    shutdown_grace_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create AppConfig from environment variables."""
        return cls(
            port=_env_int("PORT", 3000),
            host=os.getenv("HOST", "0.0.0.0"),
            restart_secret=os.getenv("RESTART_SECRET") or None,
            auth_dir=os.getenv("AUTH_DIR", "auth_info"),
            discord_token=os.getenv("DISCORD_BOT_TOKEN", "").strip(),
            service_name=os.getenv("SERVICE_NAME", "command-bot"),
            platform_label=os.getenv("PLATFORM_LABEL", "local"),
            notify_recipient=os.getenv("NOTIFY_RECIPIENT") or None,
            reconnect_delay_seconds=_env_float("RECONNECT_DELAY_SECONDS", 5.0),
            reconnect_backoff=_env_backoff(),
            reconnect_max_delay_seconds=_env_float("RECONNECT_MAX_DELAY_SECONDS", 300.0),
            shutdown_grace_seconds=_env_float("SHUTDOWN_GRACE_SECONDS", 10.0),
        )
