"""
HTTP-level tests: response envelope, status codes, X-Actor and CSV exports.
"""

from conftest import maintenance_payload
from garage.extensions import db
from garage.models import AuditLogEntry


def test_ping_and_health(client, db_session):
    response = client.get('/api/ping')
    assert response.status_code == 200
    assert response.json['success'] is True
    assert response.json['data']['status'] == 'ok'

    assert client.head('/api/ping').status_code == 200

    response = client.get('/api/health')
    assert response.status_code == 200
    assert response.json['data']['database']['status'] == 'healthy'


def test_create_returns_201_and_envelope(client, db_session):
    response = client.post('/api/clients', json={'name': 'Ana'}, headers={'X-Actor': 'Maria'})
    assert response.status_code == 201
    assert response.json['success'] is True
    client_id = response.json['data']['id']

    response = client.get(f'/api/clients/{client_id}')
    assert response.json['data']['name'] == 'Ana'

    entry = db.session.query(AuditLogEntry).filter_by(table_name='clients').one()
    assert entry.admin_name == 'Maria'


def test_error_statuses(client, garage):
    response = client.get('/api/clients/missing')
    assert response.status_code == 404
    assert response.json == {'success': False, 'error': 'Client missing not found'}

    response = client.post('/api/clients', json={'email': 'nobody@example.com'})
    assert response.status_code == 400
    assert response.json['success'] is False

    response = client.delete(f"/api/clients/{garage['owner'].id}")
    assert response.status_code == 409

    response = client.post('/api/maintenance', json=maintenance_payload(garage, product_qty=20))
    assert response.status_code == 409
    assert 'Oil Filter' in response.json['error']


def test_maintenance_flow_over_http(client, garage):
    response = client.post('/api/maintenance', json=maintenance_payload(garage), headers={'X-Actor': 'Maria'})
    assert response.status_code == 201
    data = response.json['data']
    assert data['total_cost_cents'] == 15500
    assert data['client_name'] == 'John Doe'
    maintenance_id = data['id']

    response = client.post(f'/api/maintenance/{maintenance_id}/payments', json={'amount_cents': 10000})
    assert response.status_code == 200
    assert response.json['data']['payment_status'] == 'partial'

    response = client.get(f'/api/maintenance/{maintenance_id}/payments')
    assert [p['amount_cents'] for p in response.json['data']] == [10000]

    response = client.put(f'/api/maintenance/{maintenance_id}', json={'status': 'completed'})
    assert response.status_code == 400

    response = client.get('/api/cars/CAR001/maintenance')
    assert [m['id'] for m in response.json['data']] == [maintenance_id]

    response = client.get(f"/api/logs?maintenance_id={maintenance_id}&table_name=maintenance")
    assert len(response.json['data']) == 2
    assert {entry['admin_name'] for entry in response.json['data']} == {'Maria', 'System'}


def test_date_range_requires_start(client, db_session):
    response = client.get('/api/maintenance/by-date-range')
    assert response.status_code == 400
    response = client.get('/api/cars/by-date-range?start=2026-01-01&granularity=century')
    assert response.status_code == 400


def test_product_stock_routes(client, oil_filter):
    response = client.post(
        f'/api/products/{oil_filter.id}/transfer', json={'quantity': 8, 'from': 'shop', 'to': 'warehouse'}
    )
    assert response.status_code == 200
    assert response.json['data']['shop_stock'] == 2

    response = client.get('/api/products/low-stock')
    assert [p['id'] for p in response.json['data']] == []

    response = client.post(
        f'/api/products/{oil_filter.id}/transfer', json={'quantity': 5, 'from': 'shop', 'to': 'warehouse'}
    )
    assert response.status_code == 409

    client.post(f'/api/products/{oil_filter.id}/adjust', json={'warehouse_adjustment': -26, 'reason': 'Audit'})
    response = client.get('/api/products/low-stock')
    assert [p['id'] for p in response.json['data']] == [oil_filter.id]


def test_finance_summary_and_csv_export(client, oil_filter):
    response = client.get('/api/finance/summary')
    assert response.status_code == 200
    assert response.json['data']['total_expense_cents'] == 24000

    response = client.get('/api/finance/records/export.csv')
    assert response.status_code == 200
    assert response.mimetype == 'text/csv'
    lines = response.get_data(as_text=True).strip().split('\n')
    assert lines[0] == 'Date,Category,Type,Description,Amount,Payment Method,Reference Number,Related Entity,Notes'
    assert len(lines) == 3
    assert ',Inventory Purchases,expense,' in lines[1]
    assert 'attachment; filename=finance_records_' in response.headers['Content-Disposition']


def test_employee_csv_export(client, db_session):
    client.post('/api/employees', json={
        'name': 'Sam Carter', 'position': 'Mechanic', 'hire_date': '2024-05-01', 'base_salary_cents': 312550,
    })

    response = client.get('/api/employees/export.csv')
    lines = response.get_data(as_text=True).strip().split('\n')
    assert lines[0] == 'Name,Position,Hire Date,Contact,Email,Base Salary,Status'
    assert lines[1] == 'Sam Carter,Mechanic,2024-05-01,,,3125.50,Active'


def test_backup_round_trip_over_http(client, garage):
    backup = client.get('/api/backup').json['data']
    response = client.post('/api/backup/restore', json=backup)
    assert response.status_code == 200
    assert response.json['data']['counts']['clients'] == 1

    response = client.post('/api/backup/restore', json={'version': '1.0', 'data': {}})
    assert response.status_code == 400
