import copy

import pytest

from conftest import ACTOR, maintenance_payload
from garage.errors import ValidationError
from garage.extensions import db
from garage.models import AuditLogEntry, Client, MaintenanceRequest, Product
from garage.services import backup_service, client_service, maintenance_service


def test_export_shape(garage):
    backup = backup_service.export_backup()

    assert backup["version"] == "1.0"
    assert backup["timestamp"].endswith("Z")
    assert set(backup["data"]) == {
        "clients", "cars", "insurance", "services", "products", "suppliers", "maintenance", "logs",
    }
    assert [c["name"] for c in backup["data"]["clients"]] == ["John Doe"]
    assert backup["data"]["cars"][0]["uin"] == "CAR001"


def test_restore_replaces_collections_without_stock_side_effects(garage):
    product_id = garage["product"].id
    request_id = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR).id
    backup = backup_service.export_backup()

    # Diverge from the backup.
    client_service.create_client(data={"name": "Walk-in"}, actor=ACTOR)
    maintenance_service.delete_request(maintenance_id=request_id, actor=ACTOR)

    counts = backup_service.import_backup(copy.deepcopy(backup), actor=ACTOR)

    assert counts["clients"] == 1
    assert counts["maintenance"] == 1
    db.session.expire_all()
    assert [c.name for c in db.session.query(Client).all()] == ["John Doe"]

    restored = db.session.get(MaintenanceRequest, request_id)
    assert restored.total_cost_cents == 15500
    assert [(line.quantity, line.stock_source) for line in restored.product_lines] == [(3, "shop")]

    # Stock comes back exactly as exported (7), not re-deducted (4).
    product = db.session.get(Product, product_id)
    assert product.shop_stock == 7


def test_restore_merges_logs_and_appends_system_entry(garage):
    backup = backup_service.export_backup()
    exported_ids = {entry["id"] for entry in backup["data"]["logs"]}

    foreign = dict(backup["data"]["logs"][0], id="imported-log-1")
    backup["data"]["logs"].append(foreign)

    counts = backup_service.import_backup(backup, actor=ACTOR)

    # Existing ids are skipped, the unknown one is appended.
    assert counts["logs"] == 1
    ids = {entry_id for (entry_id,) in db.session.query(AuditLogEntry.id).all()}
    assert exported_ids | {"imported-log-1"} <= ids

    system_entries = db.session.query(AuditLogEntry).filter_by(table_name="system").all()
    assert len(system_entries) == 1
    assert system_entries[0].action_type == "create"
    assert system_entries[0].after_value["message"] == "Database restored from backup"


@pytest.mark.parametrize("missing", ["clients", "cars", "services", "products", "maintenance"])
def test_restore_requires_core_collections(garage, missing):
    backup = backup_service.export_backup()
    del backup["data"][missing]

    with pytest.raises(ValidationError):
        backup_service.import_backup(backup, actor=ACTOR)
    assert db.session.query(Client).count() == 1


def test_restore_rejects_malformed_rows_before_deleting(garage):
    backup = backup_service.export_backup()
    backup["data"]["maintenance"] = [{"id": "m1", "client_id": garage["owner"].id, "car_uin": "CAR001",
                                      "services_used": []}]

    with pytest.raises(ValidationError):
        backup_service.import_backup(backup, actor=ACTOR)
    assert db.session.query(Client).count() == 1

    with pytest.raises(ValidationError):
        backup_service.import_backup({"version": "1.0"}, actor=ACTOR)
