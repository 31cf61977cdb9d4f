from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date, utcnow
from .common import new_id


class Client(db.Model):
    """
    A garage customer.

    Owns zero or more cars. Deletion is refused while any car still
    references the client (see client_service.delete_client).
    """
    __tablename__ = "clients"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(200), nullable=False)
    contact = db.Column(db.String(64), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    cars = db.relationship("Car", back_populates="client", lazy=True)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact": self.contact,
            "email": self.email,
            "address": self.address,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class Insurance(db.Model):
    """Insurance company that may cover one or more cars."""
    __tablename__ = "insurance_companies"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(200), nullable=False)
    contact_person = db.Column(db.String(200), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.String(500), nullable=True)
    policy_number = db.Column(db.String(100), nullable=True)
    coverage_type = db.Column(db.String(100), nullable=True)
    expiry_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_person": self.contact_person,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "policy_number": self.policy_number,
            "coverage_type": self.coverage_type,
            "expiry_date": to_iso_date(self.expiry_date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class Car(db.Model):
    """
    A vehicle, keyed by the caller-supplied UIN.

    WHY natural key: the garage identifies cars by the number painted on the
    job card, so the UIN is the identity the staff actually type.
    """
    __tablename__ = "cars"
    __table_args__ = (
        db.CheckConstraint("year IS NULL OR year >= 1886", name="ck_cars_year_valid"),
    )

    uin = db.Column(db.String(64), primary_key=True)
    license_plate = db.Column(db.String(32), nullable=False)
    make = db.Column(db.String(100), nullable=False)
    model = db.Column(db.String(100), nullable=False)
    year = db.Column(db.Integer, nullable=True)
    vin = db.Column(db.String(32), nullable=True)
    color = db.Column(db.String(50), nullable=True)

    client_id = db.Column(db.String(36), db.ForeignKey("clients.id"), nullable=False, index=True)
    insurance_id = db.Column(db.String(36), db.ForeignKey("insurance_companies.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    client = db.relationship("Client", back_populates="cars")
    insurance = db.relationship("Insurance", backref=db.backref("cars", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def display_name(self) -> str:
        return f"{self.make} {self.model} ({self.license_plate})"

    def to_dict(self) -> dict:
        return {
            "uin": self.uin,
            "license_plate": self.license_plate,
            "make": self.make,
            "model": self.model,
            "year": self.year,
            "vin": self.vin,
            "color": self.color,
            "client_id": self.client_id,
            "insurance_id": self.insurance_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
