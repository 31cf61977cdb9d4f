"""
Offline-aware client tests.

The happy paths drive the real Flask app through httpx.WSGITransport;
failures and timeouts use httpx.MockTransport.
"""

import httpx
import pytest

from garage.client import ApiResult, ClientConfig, NetworkMonitor, OfflineAwareClient, OfflineQueue, SyncService
from garage.client.api_client import OFFLINE_READ_ERROR, OFFLINE_REQUIRED_ERROR
from garage.extensions import db
from garage.models import AuditLogEntry, Client


def _config(tmp_path, **overrides):
    values = {
        "base_url": "http://garage.test",
        "queue_path": str(tmp_path / "queue.sqlite3"),
        "replay_timeout": 0.5,
        "actor": "Front Desk",
    }
    values.update(overrides)
    return ClientConfig(**values)


@pytest.fixture
def api(app, db_session, tmp_path):
    """Client wired straight into the Flask app."""
    client = OfflineAwareClient(_config(tmp_path), transport=httpx.WSGITransport(app=app))
    yield client
    client.close()


def _mock_client(tmp_path, handler):
    return OfflineAwareClient(_config(tmp_path), transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def test_online_calls_return_envelope_data(api):
    result = api.post("/api/clients", {"name": "Ana"})
    assert result.offline is False
    assert result.error is None
    assert result.data["name"] == "Ana"

    result = api.get(f"/api/clients/{result.data['id']}")
    assert result.ok
    assert result.data["name"] == "Ana"

    entry = db.session.query(AuditLogEntry).filter_by(table_name="clients").one()
    assert entry.admin_name == "Front Desk"


def test_http_errors_are_returned_not_raised(api):
    result = api.get("/api/clients/missing")
    assert result.offline is False
    assert result.data is None
    assert result.error == "Client missing not found"

    result = api.post("/api/clients", {"email": "x@example.com"})
    assert result.error == "Missing required fields: name"


def test_offline_write_is_queued_with_optimistic_data(api):
    api.monitor.set_online(False)

    body = {"name": "Queued Client"}
    result = api.post("/api/clients", body)

    assert result.offline is True
    assert result.error is None
    assert result.data == body
    assert api.queue.count() == 1
    head = api.queue.head()
    assert (head.method, head.url, head.data) == ("POST", "/api/clients", body)
    assert db.session.query(Client).count() == 0


def test_offline_read_and_online_only_writes_fail(api):
    api.monitor.set_online(False)

    result = api.get("/api/clients")
    assert result == ApiResult(data=None, error=OFFLINE_READ_ERROR, offline=True)

    result = api.post("/api/backup/restore", {"data": {}}, offline_fallback=False)
    assert result.error == OFFLINE_REQUIRED_ERROR
    assert result.offline is True
    assert api.queue.count() == 0


def test_refused_connection_queues_write_and_flips_offline(tmp_path):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = _mock_client(tmp_path, handler)
    try:
        result = client.put("/api/clients/abc", {"name": "Later"})
        assert result.offline is True
        assert result.data == {"name": "Later"}
        assert client.monitor.is_online is False
        assert client.queue.count() == 1
    finally:
        client.close()


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------

def test_reconnect_replays_edits_in_submission_order(api):
    client_id = api.post("/api/clients", {"name": "Jane Smith"}).data["id"]
    SyncService(api)

    api.monitor.set_online(False)
    api.put(f"/api/clients/{client_id}", {"name": "Jane Doe", "contact": "555-0001"})
    api.put(f"/api/clients/{client_id}", {"contact": "555-0002"})
    assert api.queue.count() == 2

    # offline -> online triggers the drain
    api.monitor.set_online(True)

    assert api.queue.count() == 0
    stored = api.get(f"/api/clients/{client_id}").data
    assert stored["name"] == "Jane Doe"
    assert stored["contact"] == "555-0002"

    updates = (
        db.session.query(AuditLogEntry)
        .filter_by(table_name="clients", action_type="update")
        .order_by(AuditLogEntry.timestamp.asc())
        .all()
    )
    assert [u.after_value["contact"] for u in updates] == ["555-0001", "555-0002"]


def test_sync_stops_at_first_failure(api):
    sync = SyncService(api, auto_sync=False)
    api.monitor.set_online(False)
    api.put("/api/clients/missing", {"name": "Ghost"})
    api.post("/api/clients", {"name": "Depends On Previous"})
    api.monitor.set_online(True)

    result = sync.sync()

    assert (result.skipped, result.synced, result.failed, result.remaining) == (False, 0, 1, 2)
    head = api.queue.head()
    assert head.url == "/api/clients/missing"
    assert head.retry_count == 1
    assert head.last_error == "Client missing not found"
    assert db.session.query(Client).count() == 0

    result = sync.sync()
    assert api.queue.head().retry_count == 2
    assert sync.pending_count() == 2

    # Manual discard unblocks the queue.
    assert sync.clear() == 2
    assert sync.pending_count() == 0


def test_sync_is_skipped_while_offline(api):
    sync = SyncService(api, auto_sync=False)
    api.monitor.set_online(False)
    api.post("/api/clients", {"name": "Later"})

    result = sync.sync()
    assert result.skipped is True
    assert result.remaining == 1


def test_timed_out_replay_counts_as_failure(tmp_path):
    seen = []

    def handler(request):
        seen.append(request.url.path)
        raise httpx.ReadTimeout("too slow", request=request)

    client = _mock_client(tmp_path, handler)
    try:
        client.queue.enqueue("POST", "/api/clients", {"name": "A"})
        client.queue.enqueue("POST", "/api/clients", {"name": "B"})

        result = SyncService(client, auto_sync=False).sync()

        assert (result.synced, result.failed, result.remaining) == (0, 1, 2)
        assert seen == ["/api/clients"]
        assert client.queue.head().last_error.startswith("Replay timed out")
    finally:
        client.close()


def test_connect_timeout_on_replay_marks_client_offline(tmp_path):
    def handler(request):
        raise httpx.ConnectTimeout("no route to host", request=request)

    client = _mock_client(tmp_path, handler)
    try:
        client.queue.enqueue("POST", "/api/clients", {"name": "A"})

        result = SyncService(client, auto_sync=False).sync()

        assert (result.synced, result.failed, result.remaining) == (0, 1, 1)
        assert client.monitor.is_online is False
        assert client.queue.head().last_error.startswith("Connection failed")
    finally:
        client.close()


def test_concurrent_sync_is_a_no_op(tmp_path):
    inner_results = []
    replayed = []

    def handler(request):
        replayed.append(request.url.path)
        # A second drain started while this replay is in flight.
        inner_results.append(sync.sync())
        return httpx.Response(200, json={"success": True, "data": {}})

    client = _mock_client(tmp_path, handler)
    sync = SyncService(client, auto_sync=False)
    try:
        client.queue.enqueue("POST", "/api/clients", {"name": "A"})
        client.queue.enqueue("PUT", "/api/clients/1", {"name": "B"})

        result = sync.sync()

        assert result.synced == 2
        assert replayed == ["/api/clients", "/api/clients/1"]
        assert all(inner.skipped for inner in inner_results)
        assert client.queue.count() == 0
    finally:
        client.close()


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

def test_monitor_probe_and_transitions(app, db_session):
    http = httpx.Client(base_url="http://garage.test", transport=httpx.WSGITransport(app=app))
    monitor = NetworkMonitor(http, initially_online=False)
    transitions = []
    monitor.add_listener(transitions.append)

    assert monitor.probe() is True
    assert monitor.probe() is True
    monitor.set_online(False)
    assert transitions == [True, False]
    http.close()

    def refuse(request):
        raise httpx.ConnectError("down", request=request)

    http = httpx.Client(base_url="http://garage.test", transport=httpx.MockTransport(refuse))
    monitor = NetworkMonitor(http)
    assert monitor.probe() is False
    assert monitor.is_online is False
    http.close()


def test_queue_is_durable_and_fifo(tmp_path):
    path = str(tmp_path / "queue.sqlite3")
    queue = OfflineQueue(path)
    first = queue.enqueue("post", "/api/clients", {"name": "A"})
    second = queue.enqueue("DELETE", "/api/clients/1")
    queue.close()

    reopened = OfflineQueue(path)
    try:
        operations = reopened.operations()
        assert [op.id for op in operations] == [first.id, second.id]
        assert operations[0].method == "POST"
        assert operations[1].data is None
        assert first.seq < second.seq

        reopened.mark_failed(first.id, "boom")
        assert reopened.head().last_error == "boom"
        assert reopened.remove(first.id) is True
        assert reopened.head().id == second.id
    finally:
        reopened.close()


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("GARAGE_BASE_URL", "http://shop.local:8080/")
    monkeypatch.setenv("GARAGE_REPLAY_TIMEOUT", "3")
    monkeypatch.setenv("GARAGE_ACTOR", "Tablet 2")

    config = ClientConfig.from_env()
    assert config.base_url == "http://shop.local:8080"
    assert config.replay_timeout == 3.0
    assert config.actor == "Tablet 2"
