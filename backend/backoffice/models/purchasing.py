from __future__ import annotations

from ..extensions import db
from ..money import money_str
from ..time_utils import to_iso_date, to_utc_z
from .catalog import AuditMixin, SoftDeleteMixin


class Supplier(AuditMixin, SoftDeleteMixin, db.Model):
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    tin = db.Column(db.String(32), nullable=True, unique=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "tin": self.tin,
            "email": self.email,
            "phone": self.phone,
            "is_active": self.is_active,
            "deleted_at": to_utc_z(self.deleted_at),
            **self.audit_dict(),
        }


class Purchase(AuditMixin, db.Model):
    """
    Material purchase from a supplier.

    Purchases are always hard-deleted; they own their lines.
    """
    __tablename__ = "purchases"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    purchase_date = db.Column(db.Date, nullable=False)
    total_cost = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    lines = db.relationship(
        "PurchaseLine",
        cascade="all, delete-orphan",
        order_by="PurchaseLine.id",
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "purchase_date": to_iso_date(self.purchase_date),
            "total_cost": money_str(self.total_cost),
            "lines": [line.to_dict() for line in self.lines],
            **self.audit_dict(),
        }


class PurchaseLine(db.Model):
    __tablename__ = "purchase_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    material_id = db.Column(db.Integer, db.ForeignKey("materials.id"), nullable=False, index=True)
    material_name_snapshot = db.Column(db.String(255), nullable=True)
    quantity = db.Column(db.Numeric(8, 2), nullable=False)
    price_at_the_time = db.Column(db.Numeric(10, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "material_id": self.material_id,
            "material_name": self.material_name_snapshot,
            "quantity": str(self.quantity) if self.quantity is not None else None,
            "price_at_the_time": money_str(self.price_at_the_time),
        }
