# Overview: Replays queued offline writes against the Garage API.

"""
Sync Service

Drains the offline queue strictly in insertion order.

Failure policy: stop on first failure. The failing operation stays at the
head of the queue with retry_count + 1 and last_error set; later operations
are not attempted, since they may depend on it (create, then update the
same record). Non-2xx responses and timeouts are failures.

Only one drain runs at a time. A sync() call made while another is in
flight, or while the network is offline, returns a skipped result at once.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

import httpx

from .api_client import OfflineAwareClient, error_message

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    skipped: bool = False
    synced: int = 0
    failed: int = 0
    remaining: int = 0


class SyncService:
    def __init__(self, client: OfflineAwareClient, *, replay_timeout: float | None = None, auto_sync: bool = True):
        self._client = client
        self._queue = client.queue
        self._monitor = client.monitor
        self._replay_timeout = replay_timeout if replay_timeout is not None else client.config.replay_timeout
        self._drain_lock = threading.Lock()
        if auto_sync:
            self._monitor.add_listener(self._on_network_change)

    def pending_count(self) -> int:
        return self._queue.count()

    def clear(self) -> int:
        dropped = self._queue.clear()
        if dropped:
            logger.warning("Discarded %d queued operation(s)", dropped)
        return dropped

    def _on_network_change(self, online: bool) -> None:
        if online:
            result = self.sync()
            logger.info(
                "Auto-sync after reconnect: synced=%d failed=%d remaining=%d",
                result.synced, result.failed, result.remaining,
            )

    def _replay(self, operation) -> str | None:
        """Send one queued operation. Returns an error message, or None on success."""
        try:
            response = self._client.send(
                operation.method, operation.url, operation.data, timeout=self._replay_timeout
            )
        except (httpx.ConnectError, httpx.ConnectTimeout, httpx.RemoteProtocolError) as exc:
            self._monitor.set_online(False)
            return f"Connection failed: {exc}"
        except httpx.TimeoutException:
            return f"Replay timed out after {self._replay_timeout}s"
        except httpx.HTTPError as exc:
            return f"Request failed: {exc}"

        if response.is_success:
            return None
        return error_message(response)

    def sync(self) -> SyncResult:
        if not self._monitor.is_online:
            return SyncResult(skipped=True, remaining=self._queue.count())
        if not self._drain_lock.acquire(blocking=False):
            logger.debug("Sync already in progress; skipping")
            return SyncResult(skipped=True, remaining=self._queue.count())

        try:
            synced = 0
            failed = 0
            while True:
                operation = self._queue.head()
                if operation is None:
                    break

                error = self._replay(operation)
                if error is None:
                    self._queue.remove(operation.id)
                    synced += 1
                    continue

                self._queue.mark_failed(operation.id, error)
                failed = 1
                logger.warning(
                    "Replay of %s %s failed (attempt %d): %s",
                    operation.method, operation.url, operation.retry_count + 1, error,
                )
                break

            return SyncResult(skipped=False, synced=synced, failed=failed, remaining=self._queue.count())
        finally:
            self._drain_lock.release()
