from __future__ import annotations

from ..extensions import db
from ..money import money_str
from ..time_utils import to_utc_z


class AuditMixin:
    """Creation/update timestamps plus the acting user of each."""
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    created_by_user_id = db.Column(db.Integer, nullable=True)
    updated_by_user_id = db.Column(db.Integer, nullable=True)

    def audit_dict(self) -> dict:
        return {
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "created_by_user_id": self.created_by_user_id,
            "updated_by_user_id": self.updated_by_user_id,
        }


class SoftDeleteMixin:
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)


class Category(AuditMixin, SoftDeleteMixin, db.Model):
    __tablename__ = "categories"
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


class Material(AuditMixin, SoftDeleteMixin, db.Model):
    """
    Raw material bought from suppliers and consumed by products.

    current_unit_cost feeds every dependent product's suggested prices.
    """
    __tablename__ = "materials"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    current_unit_cost = db.Column(db.Numeric(10, 2), nullable=True)
    unit_of_measure = db.Column(db.String(32), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "current_unit_cost": money_str(self.current_unit_cost),
            "unit_of_measure": self.unit_of_measure,
            "is_active": self.is_active,
            "deleted_at": to_utc_z(self.deleted_at),
            **self.audit_dict(),
        }


class Procedure(AuditMixin, SoftDeleteMixin, db.Model):
    """Workshop procedure (plating, engraving, ...). The cost lives on the product line."""
    __tablename__ = "procedures"
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


class Product(AuditMixin, SoftDeleteMixin, db.Model):
    """
    Product master data.

    PRICING:
    - final_selling_price_*: what the business actually charges (user-entered)
    - suggested_*_selling_price: derived from material, labor and procedure
      costs; recomputed by cost_service whenever one of those inputs changes

    STOCK:
    - stock is NULL for products that are not stock-tracked
    - stock may go negative (sold before restocking); that is reported, not blocked
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_active", "category_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    code = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)

    minutes_to_make = db.Column(db.Integer, nullable=True)

    stock = db.Column(db.Integer, nullable=True)
    low_stock_alert = db.Column(db.Integer, nullable=True)

    final_selling_price_retail = db.Column(db.Numeric(10, 2), nullable=True)
    final_selling_price_wholesale = db.Column(db.Numeric(10, 2), nullable=True)
    suggested_retail_selling_price = db.Column(db.Numeric(10, 2), nullable=True)
    suggested_wholesale_selling_price = db.Column(db.Numeric(10, 2), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "category_id": self.category_id,
            "minutes_to_make": self.minutes_to_make,
            "stock": self.stock,
            "low_stock_alert": self.low_stock_alert,
            "final_selling_price_retail": money_str(self.final_selling_price_retail),
            "final_selling_price_wholesale": money_str(self.final_selling_price_wholesale),
            "suggested_retail_selling_price": money_str(self.suggested_retail_selling_price),
            "suggested_wholesale_selling_price": money_str(self.suggested_wholesale_selling_price),
            "is_active": self.is_active,
            "deleted_at": to_utc_z(self.deleted_at),
            "version_id": self.version_id,
            **self.audit_dict(),
        }


class ProductMaterial(db.Model):
    """Quantity of a material consumed by one unit of a product."""
    __tablename__ = "product_materials"
    __table_args__ = (
        db.UniqueConstraint("product_id", "material_id", name="uq_product_materials_product_material"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    material_id = db.Column(db.Integer, db.ForeignKey("materials.id"), nullable=False, index=True)
    quantity = db.Column(db.Numeric(6, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "material_id": self.material_id,
            "quantity": str(self.quantity) if self.quantity is not None else None,
        }


class ProductProcedure(db.Model):
    """Cost of one procedure applied to one unit of a product."""
    __tablename__ = "product_procedures"
    __table_args__ = (
        db.UniqueConstraint("product_id", "procedure_id", name="uq_product_procedures_product_procedure"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    procedure_id = db.Column(db.Integer, db.ForeignKey("procedures.id"), nullable=False, index=True)
    cost = db.Column(db.Numeric(8, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "procedure_id": self.procedure_id,
            "cost": money_str(self.cost),
        }
