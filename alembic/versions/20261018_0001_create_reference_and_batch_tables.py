"""create reference data, batch and landed cost tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sku", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=False),
        sa.Column("min_stock_level", sa.Numeric(14, 4), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("min_stock_level >= 0", name="ck_products_min_stock_non_negative"),
        sa.CheckConstraint("status IN ('active', 'inactive')", name="ck_products_status"),
    )
    op.create_index("ix_products_id", "products", ["id"], unique=False)
    op.create_index("ix_products_sku", "products", ["sku"], unique=True)

    op.create_table(
        "warehouses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_warehouses_id", "warehouses", ["id"], unique=False)
    op.create_index("ix_warehouses_code", "warehouses", ["code"], unique=True)

    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_suppliers_id", "suppliers", ["id"], unique=False)
    op.create_index("ix_suppliers_code", "suppliers", ["code"], unique=True)

    op.create_table(
        "cost_item_types",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=30), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_cost_item_types_id", "cost_item_types", ["id"], unique=False)
    op.create_index("ix_cost_item_types_code", "cost_item_types", ["code"], unique=True)

    op.create_table(
        "batches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("batch_number", sa.String(length=40), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("supplier_id", sa.Integer(), nullable=True),
        sa.Column("warehouse_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Numeric(14, 4), nullable=False),
        sa.Column("unit_purchase_cost", sa.Numeric(18, 4), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("total_purchase_cost", sa.Numeric(18, 2), nullable=False),
        sa.Column("total_landed_cost", sa.Numeric(18, 2), nullable=False),
        sa.Column("total_cost", sa.Numeric(18, 2), nullable=False),
        sa.Column("cost_per_unit", sa.Numeric(18, 4), nullable=False),
        sa.Column("received_date", sa.DateTime(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(), nullable=True),
        sa.Column("confirmed_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["supplier_id"], ["suppliers.id"]),
        sa.ForeignKeyConstraint(["warehouse_id"], ["warehouses.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("quantity >= 0", name="ck_batches_quantity_non_negative"),
        sa.CheckConstraint("unit_purchase_cost >= 0", name="ck_batches_unit_cost_non_negative"),
        sa.CheckConstraint("total_landed_cost >= 0", name="ck_batches_landed_cost_non_negative"),
        sa.CheckConstraint(
            "status IN ('DRAFT', 'CONFIRMED', 'CANCELLED')",
            name="ck_batches_status",
        ),
    )
    op.create_index("ix_batches_id", "batches", ["id"], unique=False)
    op.create_index("ix_batches_batch_number", "batches", ["batch_number"], unique=True)
    op.create_index("ix_batches_product_id", "batches", ["product_id"], unique=False)
    op.create_index("ix_batches_supplier_id", "batches", ["supplier_id"], unique=False)
    op.create_index("ix_batches_warehouse_id", "batches", ["warehouse_id"], unique=False)
    op.create_index("ix_batches_product_received", "batches", ["product_id", "received_date"], unique=False)
    op.create_index("ix_batches_status_warehouse", "batches", ["status", "warehouse_id"], unique=False)

    op.create_table(
        "landed_cost_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("batch_id", sa.Integer(), nullable=False),
        sa.Column("cost_type_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("exchange_rate", sa.Numeric(18, 6), nullable=False),
        sa.Column("amount_in_batch_currency", sa.Numeric(18, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("reference_number", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["batch_id"], ["batches.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["cost_type_id"], ["cost_item_types.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("amount >= 0", name="ck_landed_cost_items_amount_non_negative"),
        sa.CheckConstraint("exchange_rate > 0", name="ck_landed_cost_items_rate_positive"),
    )
    op.create_index("ix_landed_cost_items_id", "landed_cost_items", ["id"], unique=False)
    op.create_index("ix_landed_cost_items_batch_id", "landed_cost_items", ["batch_id"], unique=False)
    op.create_index("ix_landed_cost_items_cost_type_id", "landed_cost_items", ["cost_type_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_landed_cost_items_cost_type_id", table_name="landed_cost_items")
    op.drop_index("ix_landed_cost_items_batch_id", table_name="landed_cost_items")
    op.drop_index("ix_landed_cost_items_id", table_name="landed_cost_items")
    op.drop_table("landed_cost_items")
    op.drop_index("ix_batches_status_warehouse", table_name="batches")
    op.drop_index("ix_batches_product_received", table_name="batches")
    op.drop_index("ix_batches_warehouse_id", table_name="batches")
    op.drop_index("ix_batches_supplier_id", table_name="batches")
    op.drop_index("ix_batches_product_id", table_name="batches")
    op.drop_index("ix_batches_batch_number", table_name="batches")
    op.drop_index("ix_batches_id", table_name="batches")
    op.drop_table("batches")
    op.drop_index("ix_cost_item_types_code", table_name="cost_item_types")
    op.drop_index("ix_cost_item_types_id", table_name="cost_item_types")
    op.drop_table("cost_item_types")
    op.drop_index("ix_suppliers_code", table_name="suppliers")
    op.drop_index("ix_suppliers_id", table_name="suppliers")
    op.drop_table("suppliers")
    op.drop_index("ix_warehouses_code", table_name="warehouses")
    op.drop_index("ix_warehouses_id", table_name="warehouses")
    op.drop_table("warehouses")
    op.drop_index("ix_products_sku", table_name="products")
    op.drop_index("ix_products_id", table_name="products")
    op.drop_table("products")
