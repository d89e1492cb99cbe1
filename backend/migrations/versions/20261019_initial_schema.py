"""Initial schema: catalog, costing, sales, stock and purchasing

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration creates:
1. users
2. Reference data: categories, materials, procedures, locations, customers, suppliers
3. products with material and procedure lines (suggested/final prices, stock)
4. sales and sale_lines
5. purchases and purchase_lines
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def _audit_columns():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('updated_by_user_id', sa.Integer(), nullable=True),
    ]


def _soft_delete_columns():
    return [
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
    ]


def _index_is_active(table):
    with op.batch_alter_table(table, schema=None) as batch_op:
        batch_op.create_index(batch_op.f(f'ix_{table}_is_active'), ['is_active'], unique=False)


def upgrade():
    # ==========================================================================
    # 1. USERS
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_users_username'), ['username'], unique=True)

    # ==========================================================================
    # 2. REFERENCE DATA
    # ==========================================================================
    op.create_table('categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        *_soft_delete_columns(),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )
    _index_is_active('categories')

    op.create_table('materials',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('current_unit_cost', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('unit_of_measure', sa.String(length=32), nullable=True),
        *_soft_delete_columns(),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )
    _index_is_active('materials')

    op.create_table('procedures',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        *_soft_delete_columns(),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )
    _index_is_active('procedures')

    op.create_table('locations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        *_soft_delete_columns(),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )
    _index_is_active('locations')

    op.create_table('customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(length=128), nullable=False),
        sa.Column('last_name', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('tin', sa.String(length=32), nullable=True),
        sa.Column('first_sale_date', sa.Date(), nullable=True),
        *_soft_delete_columns(),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('tin'),
        sqlite_autoincrement=True
    )
    _index_is_active('customers')

    op.create_table('suppliers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('tin', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        *_soft_delete_columns(),
        *_audit_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tin'),
        sqlite_autoincrement=True
    )
    _index_is_active('suppliers')

    # ==========================================================================
    # 3. PRODUCTS AND COST LINES
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('minutes_to_make', sa.Integer(), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=True),
        sa.Column('low_stock_alert', sa.Integer(), nullable=True),
        sa.Column('final_selling_price_retail', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('final_selling_price_wholesale', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('suggested_retail_selling_price', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('suggested_wholesale_selling_price', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_soft_delete_columns(),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_products_category_id'), ['category_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_products_is_active'), ['is_active'], unique=False)
        batch_op.create_index('ix_products_category_active', ['category_id', 'is_active'], unique=False)

    op.create_table('product_materials',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=6, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'material_id', name='uq_product_materials_product_material'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('product_materials', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_product_materials_product_id'), ['product_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_product_materials_material_id'), ['material_id'], unique=False)

    op.create_table('product_procedures',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('procedure_id', sa.Integer(), nullable=False),
        sa.Column('cost', sa.Numeric(precision=8, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['procedure_id'], ['procedures.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'procedure_id', name='uq_product_procedures_product_procedure'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('product_procedures', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_product_procedures_product_id'), ['product_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_product_procedures_procedure_id'), ['procedure_id'], unique=False)

    # ==========================================================================
    # 4. SALES
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('sale_date', sa.Date(), nullable=False),
        sa.Column('is_wholesale', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('packaging_price', sa.Numeric(precision=10, scale=2), nullable=False, server_default='0'),
        sa.Column('suggested_total_price', sa.Numeric(precision=10, scale=2), nullable=False, server_default='0'),
        sa.Column('final_total_price', sa.Numeric(precision=10, scale=2), nullable=False, server_default='0'),
        sa.Column('discount_percentage', sa.Numeric(precision=9, scale=4), nullable=False, server_default='0'),
        sa.Column('payment_method', sa.String(length=16), nullable=False, server_default='CASH'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sales_customer_id'), ['customer_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sales_location_id'), ['location_id'], unique=False)
        batch_op.create_index('ix_sales_sale_date', ['sale_date'], unique=False)

    op.create_table('sale_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name_snapshot', sa.String(length=255), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('suggested_price_at_the_time', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('price_at_the_time', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sale_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_sale_lines_sale_id'), ['sale_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_sale_lines_product_id'), ['product_id'], unique=False)

    # ==========================================================================
    # 5. PURCHASES
    # ==========================================================================
    op.create_table('purchases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('purchase_date', sa.Date(), nullable=False),
        sa.Column('total_cost', sa.Numeric(precision=10, scale=2), nullable=False, server_default='0'),
        *_audit_columns(),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('purchases', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_purchases_supplier_id'), ['supplier_id'], unique=False)

    op.create_table('purchase_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('material_name_snapshot', sa.String(length=255), nullable=True),
        sa.Column('quantity', sa.Numeric(precision=8, scale=2), nullable=False),
        sa.Column('price_at_the_time', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id'], ),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('purchase_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_purchase_lines_purchase_id'), ['purchase_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_purchase_lines_material_id'), ['material_id'], unique=False)


def downgrade():
    op.drop_table('purchase_lines')
    op.drop_table('purchases')
    op.drop_table('sale_lines')
    op.drop_table('sales')
    op.drop_table('product_procedures')
    op.drop_table('product_materials')
    op.drop_table('products')
    op.drop_table('suppliers')
    op.drop_table('customers')
    op.drop_table('locations')
    op.drop_table('procedures')
    op.drop_table('materials')
    op.drop_table('categories')
    op.drop_table('users')
