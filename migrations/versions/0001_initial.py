"""initial stock-in and stock-out schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


class GUID(sa.TypeDecorator):
    impl = sa.CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(sa.CHAR(36))


def _timestamps(updated: bool = False) -> list[sa.Column]:
    columns = [sa.Column("created_at", sa.DateTime(), nullable=False)]
    if updated:
        columns.append(sa.Column("updated_at", sa.DateTime(), nullable=True))
    return columns


def upgrade() -> None:
    op.create_table(
        "products",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("sku", sa.String(length=100), nullable=True, unique=True),
        sa.Column("category", sa.String(length=100), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "warehouses",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        *_timestamps(),
    )
    op.create_table(
        "warehouse_locations",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("warehouse_id", GUID(), sa.ForeignKey("warehouses.id"), nullable=False, index=True),
        sa.Column("floor", sa.String(length=50), nullable=False),
        sa.Column("zone", sa.String(length=50), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "stock_in",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("product_id", GUID(), sa.ForeignKey("products.id"), nullable=False, index=True),
        sa.Column("boxes", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False, index=True),
        sa.Column("source", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("submitted_by", sa.String(length=64), nullable=False, index=True),
        sa.Column("processed_by", sa.String(length=64), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("processing_started_at", sa.DateTime(), nullable=True),
        sa.Column("processing_completed_at", sa.DateTime(), nullable=True),
        *_timestamps(updated=True),
    )
    op.create_table(
        "stock_in_details",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("stock_in_id", GUID(), sa.ForeignKey("stock_in.id"), nullable=False, index=True),
        sa.Column("barcode", sa.String(length=255), nullable=False, index=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("color", sa.String(length=100), nullable=True),
        sa.Column("size", sa.String(length=100), nullable=True),
        sa.Column("product_id", GUID(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("warehouse_id", GUID(), sa.ForeignKey("warehouses.id"), nullable=False),
        sa.Column("location_id", GUID(), sa.ForeignKey("warehouse_locations.id"), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "inventory",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("product_id", GUID(), sa.ForeignKey("products.id"), nullable=False, index=True),
        sa.Column("warehouse_id", GUID(), sa.ForeignKey("warehouses.id"), nullable=False, index=True),
        sa.Column("location_id", GUID(), sa.ForeignKey("warehouse_locations.id"), nullable=False, index=True),
        sa.Column("barcode", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("color", sa.String(length=100), nullable=True),
        sa.Column("size", sa.String(length=100), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False, index=True),
        sa.Column("batch_id", GUID(), sa.ForeignKey("stock_in.id"), nullable=True, index=True),
        sa.Column("stock_in_detail_id", GUID(), sa.ForeignKey("stock_in_details.id"), nullable=True),
        *_timestamps(updated=True),
        sa.UniqueConstraint("barcode", name="uq_inventory_barcode"),
    )
    op.create_index("ix_inventory_product_status", "inventory", ["product_id", "status"], unique=False)
    op.create_table(
        "batch_inventory_items",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("batch_id", GUID(), sa.ForeignKey("stock_in.id"), nullable=False, index=True),
        sa.Column("inventory_id", GUID(), sa.ForeignKey("inventory.id"), nullable=False, index=True),
        sa.Column("barcode", sa.String(length=255), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "barcode_logs",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("barcode", sa.String(length=255), nullable=False, index=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("batch_id", GUID(), nullable=True, index=True),
        sa.Column("details", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_barcode_logs_barcode_created", "barcode_logs", ["barcode", "created_at"], unique=False)
    op.create_table(
        "barcodes",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("barcode", sa.String(length=255), nullable=False, unique=True),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "stock_out",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("reference_number", sa.String(length=100), nullable=True, index=True),
        sa.Column("status", sa.String(length=50), nullable=False, index=True),
        sa.Column("requested_by", sa.String(length=64), nullable=False),
        sa.Column("processed_by", sa.String(length=64), nullable=True),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(updated=True),
    )
    op.create_table(
        "stock_out_lines",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("stock_out_id", GUID(), sa.ForeignKey("stock_out.id"), nullable=False, index=True),
        sa.Column("product_id", GUID(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("requested_quantity", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "stock_out_details",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("stock_out_id", GUID(), sa.ForeignKey("stock_out.id"), nullable=False, index=True),
        sa.Column("product_id", GUID(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("barcode", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("processed_by", sa.String(length=64), nullable=False),
        sa.Column("processed_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "stock_out_processed_items",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("stock_out_id", GUID(), sa.ForeignKey("stock_out.id"), nullable=False, index=True),
        sa.Column("inventory_id", GUID(), sa.ForeignKey("inventory.id"), nullable=False),
        sa.Column("product_id", GUID(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("barcode", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("processed_by", sa.String(length=64), nullable=False),
        sa.Column("processed_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "customer_inquiries",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("reference_number", sa.String(length=100), nullable=False, index=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False),
        *_timestamps(updated=True),
    )
    op.create_table(
        "idempotency_records",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("endpoint", sa.String(length=255), nullable=False),
        sa.Column("method", sa.String(length=10), nullable=False),
        sa.Column("idempotency_key", sa.String(length=255), nullable=False),
        sa.Column("request_hash", sa.String(length=64), nullable=False),
        sa.Column("state", sa.String(length=20), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=True),
        sa.Column("response_body", sa.Text(), nullable=True),
        *_timestamps(updated=True),
        sa.UniqueConstraint("endpoint", "method", "idempotency_key", name="uq_idempotency"),
    )


def downgrade() -> None:
    op.drop_table("idempotency_records")
    op.drop_table("customer_inquiries")
    op.drop_table("stock_out_processed_items")
    op.drop_table("stock_out_details")
    op.drop_table("stock_out_lines")
    op.drop_table("stock_out")
    op.drop_table("barcodes")
    op.drop_index("ix_barcode_logs_barcode_created", table_name="barcode_logs")
    op.drop_table("barcode_logs")
    op.drop_table("batch_inventory_items")
    op.drop_index("ix_inventory_product_status", table_name="inventory")
    op.drop_table("inventory")
    op.drop_table("stock_in_details")
    op.drop_table("stock_in")
    op.drop_table("warehouse_locations")
    op.drop_table("warehouses")
    op.drop_table("products")
