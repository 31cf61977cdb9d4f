# Overview: Offline-aware HTTP client for the Garage API.

"""
Offline-Aware Client

Every call returns an ApiResult instead of raising:

- online: the request is sent; `data` is the envelope's `data`, or `error`
  is the envelope's `error` for a non-2xx response. `offline` is False.
- offline write (POST/PUT/PATCH/DELETE): the operation is queued and the
  submitted body comes back as `data` with `offline=True` so callers can
  render it optimistically.
- offline read (GET): error "Cannot fetch data while offline".
- offline with `offline_fallback=False`: the write is refused, not queued.

If the connection is refused between the online check and the send, the
monitor is flipped offline and a write is queued as above.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from .config import ClientConfig
from .network_status import NetworkMonitor
from .offline_storage import OfflineQueue

logger = logging.getLogger(__name__)

OFFLINE_READ_ERROR = "Cannot fetch data while offline"
OFFLINE_REQUIRED_ERROR = "Network is offline and this action requires an internet connection"

WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


@dataclass
class ApiResult:
    data: Any = None
    error: Optional[str] = None
    offline: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


def error_message(response: httpx.Response) -> str:
    """The server's envelope error, or a generic status line."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}: {response.reason_phrase}"


def response_data(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and "success" in body:
        return body.get("data")
    return body


class OfflineAwareClient:
    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        monitor: Optional[NetworkMonitor] = None,
        queue: Optional[OfflineQueue] = None,
    ):
        self.config = config or ClientConfig.from_env()
        headers = {"X-Actor": self.config.actor} if self.config.actor else {}
        self._http = httpx.Client(
            base_url=self.config.base_url,
            timeout=self.config.request_timeout,
            headers=headers,
            transport=transport,
        )
        self.monitor = monitor or NetworkMonitor(
            self._http,
            probe_timeout=self.config.probe_timeout,
            interval=self.config.probe_interval,
        )
        self.queue = queue or OfflineQueue(self.config.queue_path)

    def close(self) -> None:
        self.monitor.stop()
        self._http.close()
        self.queue.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def send(self, method: str, path: str, body: Any = None, *, timeout: Optional[float] = None) -> httpx.Response:
        """Raw request; raises httpx errors. Used for live calls and replays."""
        kwargs = {}
        if timeout is not None:
            kwargs["timeout"] = timeout
        if body is not None and method.upper() != "GET":
            kwargs["json"] = body
        return self._http.request(method.upper(), path, **kwargs)

    def _queue_write(self, method: str, path: str, body: Any) -> ApiResult:
        operation = self.queue.enqueue(method, path, body)
        logger.info("Queued %s %s while offline (id=%s)", method, path, operation.id)
        return ApiResult(data=body, offline=True)

    def dispatch(self, method: str, path: str, body: Any = None, *, offline_fallback: bool = True) -> ApiResult:
        method = method.upper()

        if not self.monitor.is_online:
            if method not in WRITE_METHODS:
                return ApiResult(error=OFFLINE_READ_ERROR, offline=True)
            if not offline_fallback:
                return ApiResult(error=OFFLINE_REQUIRED_ERROR, offline=True)
            return self._queue_write(method, path, body)

        try:
            response = self.send(method, path, body)
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            logger.warning("%s %s could not connect: %s", method, path, exc)
            self.monitor.set_online(False)
            if method in WRITE_METHODS and offline_fallback:
                return self._queue_write(method, path, body)
            return ApiResult(error=OFFLINE_READ_ERROR if method not in WRITE_METHODS else OFFLINE_REQUIRED_ERROR,
                             offline=True)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            return ApiResult(error=f"Request failed: {exc}")

        if not response.is_success:
            return ApiResult(error=error_message(response))
        return ApiResult(data=response_data(response))

    def get(self, path: str) -> ApiResult:
        return self.dispatch("GET", path)

    def post(self, path: str, body: Any = None, *, offline_fallback: bool = True) -> ApiResult:
        return self.dispatch("POST", path, body, offline_fallback=offline_fallback)

    def put(self, path: str, body: Any = None, *, offline_fallback: bool = True) -> ApiResult:
        return self.dispatch("PUT", path, body, offline_fallback=offline_fallback)

    def delete(self, path: str, body: Any = None, *, offline_fallback: bool = True) -> ApiResult:
        return self.dispatch("DELETE", path, body, offline_fallback=offline_fallback)
