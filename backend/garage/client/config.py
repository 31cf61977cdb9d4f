# backend/garage/client/config.py
from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class ClientConfig:
    """Settings for the offline-aware API client, with GARAGE_* environment overrides."""

    # Garage API root, without trailing slash
    base_url: str = "http://127.0.0.1:5000"

    # Local SQLite file holding queued write operations
    queue_path: str = "garage_offline_queue.sqlite3"

    # Timeout for live requests (seconds)
    request_timeout: float = 10.0

    # Upper bound for a single queued replay (seconds)
    replay_timeout: float = 15.0

    # Connectivity probe settings
    probe_timeout: float = 2.0
    probe_interval: float = 5.0

    # Sent as X-Actor so audit entries name the right person
    actor: str | None = None

    @classmethod
    def from_env(cls) -> "ClientConfig":
        defaults = cls()
        return cls(
            base_url=os.environ.get("GARAGE_BASE_URL", defaults.base_url).rstrip("/"),
            queue_path=os.environ.get("GARAGE_QUEUE_PATH", defaults.queue_path),
            request_timeout=float(os.environ.get("GARAGE_REQUEST_TIMEOUT", defaults.request_timeout)),
            replay_timeout=float(os.environ.get("GARAGE_REPLAY_TIMEOUT", defaults.replay_timeout)),
            probe_timeout=float(os.environ.get("GARAGE_PROBE_TIMEOUT", defaults.probe_timeout)),
            probe_interval=float(os.environ.get("GARAGE_PROBE_INTERVAL", defaults.probe_interval)),
            actor=os.environ.get("GARAGE_ACTOR") or None,
        )
