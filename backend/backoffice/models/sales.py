from __future__ import annotations

from typing import Literal

from ..extensions import db
from ..money import money_str, percent_str
from ..time_utils import to_iso_date
from .catalog import AuditMixin

PaymentMethod = Literal["CASH", "CARD", "BANK_TRANSFER", "OTHER"]
PAYMENT_METHODS: tuple[str, ...] = ("CASH", "CARD", "BANK_TRANSFER", "OTHER")

PAYMENT_METHOD_LABELS = {
    "CASH": "Cash",
    "CARD": "Card",
    "BANK_TRANSFER": "Bank transfer",
    "OTHER": "Other",
}


class Sale(AuditMixin, db.Model):
    """
    Sale aggregate: header plus its owned lines.

    PRICING INVARIANT:
    - suggested_total_price = sum(line undiscounted unit price x quantity) + packaging_price
    - discount_percentage is fully determined by suggested and final totals
    - every line's price_at_the_time is that discount applied to its own unit price
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_sale_date", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False, index=True)

    sale_date = db.Column(db.Date, nullable=False)
    is_wholesale = db.Column(db.Boolean, nullable=False, default=False)

    packaging_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    suggested_total_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    final_total_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    discount_percentage = db.Column(db.Numeric(9, 4), nullable=False, default=0)

    payment_method = db.Column(db.String(16), nullable=False, default="CASH")

    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "SaleLine",
        cascade="all, delete-orphan",
        order_by="SaleLine.id",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def discount_amount(self):
        return (self.suggested_total_price or 0) - (self.final_total_price or 0)

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "customer_id": self.customer_id,
            "location_id": self.location_id,
            "sale_date": to_iso_date(self.sale_date),
            "is_wholesale": self.is_wholesale,
            "packaging_price": money_str(self.packaging_price),
            "suggested_total_price": money_str(self.suggested_total_price),
            "final_total_price": money_str(self.final_total_price),
            "discount_amount": money_str(self.discount_amount),
            "discount_percentage": percent_str(self.discount_percentage),
            "payment_method": self.payment_method,
            "version_id": self.version_id,
            **self.audit_dict(),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    """One product on a sale, with both its undiscounted and discounted unit price."""
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name_snapshot = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    suggested_price_at_the_time = db.Column(db.Numeric(10, 2), nullable=False)
    price_at_the_time = db.Column(db.Numeric(10, 2), nullable=False)

    @property
    def line_total(self):
        return (self.price_at_the_time or 0) * (self.quantity or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name_snapshot,
            "quantity": self.quantity,
            "suggested_price_at_the_time": money_str(self.suggested_price_at_the_time),
            "price_at_the_time": money_str(self.price_at_the_time),
            "line_total": money_str(self.line_total),
        }
