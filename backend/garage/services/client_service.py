# Overview: Service-layer operations for clients; encapsulates business logic and database work.

"""
Client Service

Clients own cars. A client cannot be deleted while any car (or any
maintenance request) still references it; callers must delete or reassign
those first.
"""

from __future__ import annotations

from ..errors import NotFoundError, ReferentialIntegrityError
from ..extensions import db
from ..models import Car, Client, MaintenanceRequest
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, split_expected_version, validate_payload
from .audit_service import record_audit
from .concurrency import check_version, lock_for_update, run_in_transaction

CLIENT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact", "email", "address"},
    required_on_create={"name"},
)


def list_clients() -> list[Client]:
    return db.session.query(Client).order_by(Client.created_at.desc()).all()


def get_client(client_id: str) -> Client:
    client = db.session.get(Client, client_id)
    if client is None:
        raise NotFoundError(f"Client {client_id} not found")
    return client


def find_client(client_id: str | None) -> Client | None:
    """Lenient lookup for display paths; never raises for a missing id."""
    if not client_id:
        return None
    return db.session.get(Client, client_id)


def create_client(*, data: dict, actor: str | None) -> Client:
    patch = validate_payload(model=Client, payload=data, policy=CLIENT_POLICY, partial=False)

    def _op():
        client = Client(**patch)
        db.session.add(client)
        db.session.flush()
        record_audit(
            action_type="create",
            table_name="clients",
            actor=actor,
            after=client.to_dict(),
            client_id=client.id,
        )
        return client

    return run_in_transaction(_op)


def update_client(*, client_id: str, data: dict, actor: str | None) -> Client:
    payload, expected_version = split_expected_version(data)
    patch = validate_payload(model=Client, payload=payload, policy=CLIENT_POLICY, partial=True)

    def _op():
        client = lock_for_update(db.session.query(Client).filter_by(id=client_id)).first()
        if client is None:
            raise NotFoundError(f"Client {client_id} not found")
        check_version(client, expected_version)

        before = client.to_dict()
        for key, value in patch.items():
            setattr(client, key, value)
        client.updated_at = utcnow()
        db.session.flush()

        record_audit(
            action_type="update",
            table_name="clients",
            actor=actor,
            before=before,
            after=client.to_dict(),
            client_id=client.id,
        )
        return client

    return run_in_transaction(_op)


def delete_client(*, client_id: str, actor: str | None) -> Client:
    def _op():
        client = lock_for_update(db.session.query(Client).filter_by(id=client_id)).first()
        if client is None:
            raise NotFoundError(f"Client {client_id} not found")

        car_count = db.session.query(Car).filter_by(client_id=client_id).count()
        if car_count:
            raise ReferentialIntegrityError(
                f"Cannot delete client {client.name}: {car_count} car(s) still belong to this client"
            )
        request_count = db.session.query(MaintenanceRequest).filter_by(client_id=client_id).count()
        if request_count:
            raise ReferentialIntegrityError(
                f"Cannot delete client {client.name}: {request_count} maintenance request(s) reference this client"
            )

        record_audit(
            action_type="delete",
            table_name="clients",
            actor=actor,
            before=client.to_dict(),
            client_id=client.id,
        )
        db.session.delete(client)
        db.session.flush()
        return client

    return run_in_transaction(_op)
