from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _float_env(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.getenv(name, "")
    try:
        value = float(raw) if raw.strip() else default
    except ValueError:
        value = default
    return max(minimum, value)


def _int_env(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name, "")
    try:
        value = int(raw) if raw.strip() else default
    except ValueError:
        value = default
    return max(minimum, value)


@dataclass(frozen=True)
class SyncConfig:
    api_base_url: str = "http://127.0.0.1:3001"

    # REST calls have no timeout of their own upstream; fail them after this
    request_timeout_seconds: float = 10.0

    # Broadcast bus reconnection: fixed attempt count, fixed delay
    reconnect_attempts: int = 5
    reconnect_delay_seconds: float = 1.0

    # How long a pending marker survives REST acknowledgment to swallow a late echo
    echo_grace_seconds: float = 2.0

    # Debounce for local viewport/cache writes
    autosave_delay_seconds: float = 1.0

    storage_path: str = str(Path.home() / ".people_web" / "local_state.json")

    @property
    def events_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}/api/events"

    @classmethod
    def from_env(cls) -> "SyncConfig":
        # Importing config loads the .env files
        from config import API_BASE_URL

        default = cls()
        return cls(
            api_base_url=(os.getenv("PEOPLE_WEB_API_URL") or API_BASE_URL).rstrip("/"),
            request_timeout_seconds=_float_env(
                "PEOPLE_WEB_REQUEST_TIMEOUT_SECONDS", default.request_timeout_seconds, minimum=0.1
            ),
            reconnect_attempts=_int_env("PEOPLE_WEB_RECONNECT_ATTEMPTS", default.reconnect_attempts),
            reconnect_delay_seconds=_float_env(
                "PEOPLE_WEB_RECONNECT_DELAY_SECONDS", default.reconnect_delay_seconds
            ),
            echo_grace_seconds=_float_env("PEOPLE_WEB_ECHO_GRACE_SECONDS", default.echo_grace_seconds),
            autosave_delay_seconds=_float_env(
                "PEOPLE_WEB_AUTOSAVE_DELAY_SECONDS", default.autosave_delay_seconds
            ),
            storage_path=os.getenv("PEOPLE_WEB_STORAGE_PATH") or default.storage_path,
        )
