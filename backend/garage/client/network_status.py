# Overview: Online/offline signal for the offline-aware client.

"""
Network Monitor

Holds the most recent connectivity signal. The signal is refreshed by
probing GET /api/ping, either on demand (`probe()`) or from a background
thread (`start()`). Dispatch decisions read `is_online` and never probe per
call.

Listeners registered with `add_listener` are called with the new value on
every online/offline transition, on the thread that observed it.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

import httpx

logger = logging.getLogger(__name__)

PING_PATH = "/api/ping"


class NetworkMonitor:
    def __init__(
        self,
        http: httpx.Client,
        *,
        probe_timeout: float = 2.0,
        interval: float = 5.0,
        initially_online: bool = True,
    ):
        self._http = http
        self._probe_timeout = probe_timeout
        self._interval = interval
        self._online = initially_online
        self._state_lock = threading.Lock()
        self._listeners: list[Callable[[bool], None]] = []
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_online(self) -> bool:
        return self._online

    def add_listener(self, callback: Callable[[bool], None]) -> None:
        self._listeners.append(callback)

    def set_online(self, online: bool) -> None:
        """Record a new signal value; listeners fire only on a transition."""
        with self._state_lock:
            changed = online != self._online
            self._online = online
        if not changed:
            return

        logger.info("Network is now %s", "online" if online else "offline")
        for callback in list(self._listeners):
            try:
                callback(online)
            except Exception:
                logger.exception("Network listener %r failed", callback)

    def probe(self) -> bool:
        try:
            response = self._http.get(PING_PATH, timeout=self._probe_timeout)
            online = response.is_success
        except httpx.HTTPError as exc:
            logger.debug("Ping failed: %s", exc)
            online = False
        self.set_online(online)
        return online

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="garage-network-monitor", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self._interval + self._probe_timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.is_set():
            self.probe()
            self._stop.wait(self._interval)
