import json

from conftest import ACTOR, maintenance_payload
from garage.extensions import db
from garage.models import Car, Client, Product, Service
from garage.services import finance_service, maintenance_service


def test_seed_loads_demo_data_once(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=['garage', 'seed'])
    assert result.exit_code == 0
    assert 'PASS Demo data loaded' in result.output
    assert db.session.query(Client).count() == 2
    assert db.session.query(Car).count() == 2
    assert db.session.query(Service).count() == 2
    oil_filter = db.session.query(Product).filter_by(name='Oil Filter').one()
    assert (oil_filter.warehouse_stock, oil_filter.shop_stock) == (50, 10)

    result = runner.invoke(args=['garage', 'seed'])
    assert 'SKIP' in result.output
    assert db.session.query(Client).count() == 2


def test_finance_retry_pending(app, garage, monkeypatch):
    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)

    def broken_booking(entry):
        raise RuntimeError("offline ledger")

    monkeypatch.setitem(finance_service._OUTBOX_HANDLERS, finance_service.OUTBOX_MAINTENANCE_PAYMENT, broken_booking)
    maintenance_service.make_payment(maintenance_id=request.id, amount_cents=500, actor=ACTOR)

    runner = app.test_cli_runner()
    result = runner.invoke(args=['finance', 'pending'])
    assert 'maintenance_payment attempts=1' in result.output
    assert 'offline ledger' in result.output

    result = runner.invoke(args=['finance', 'retry-pending'])
    assert result.exit_code == 1

    monkeypatch.undo()
    result = runner.invoke(args=['finance', 'retry-pending'])
    assert result.exit_code == 0
    assert 'PASS Booked 1 pending entry' in result.output


def test_backup_export_and_import(app, garage, tmp_path):
    runner = app.test_cli_runner()
    path = tmp_path / 'backup.json'

    result = runner.invoke(args=['backup', 'export', '--output', str(path)])
    assert result.exit_code == 0
    assert json.loads(path.read_text())['version'] == '1.0'

    result = runner.invoke(args=['backup', 'import', str(path), '--yes', '--actor', ACTOR])
    assert result.exit_code == 0
    assert 'PASS Database restored from backup' in result.output

    path.write_text(json.dumps({'version': '1.0', 'data': {'clients': []}}))
    result = runner.invoke(args=['backup', 'import', str(path), '--yes'])
    assert result.exit_code != 0
    assert 'missing or invalid collections' in result.output
