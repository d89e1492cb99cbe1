from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z
from .catalog import AuditMixin, SoftDeleteMixin


class Customer(AuditMixin, SoftDeleteMixin, db.Model):
    """
    Customer master data.

    first_sale_date is stamped by the first recorded sale and never moved afterwards.
    """
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=True, unique=True)
    phone = db.Column(db.String(32), nullable=True)
    tin = db.Column(db.String(32), nullable=True, unique=True)

    first_sale_date = db.Column(db.Date, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "tin": self.tin,
            "first_sale_date": to_iso_date(self.first_sale_date),
            "is_active": self.is_active,
            "deleted_at": to_utc_z(self.deleted_at),
            **self.audit_dict(),
        }


class Location(AuditMixin, SoftDeleteMixin, db.Model):
    """Where a sale happened (shop, fair, online ...)."""
    __tablename__ = "locations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "is_active": self.is_active,
            "deleted_at": to_utc_z(self.deleted_at),
            **self.audit_dict(),
        }
