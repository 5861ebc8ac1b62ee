"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 00:00:00.000001

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "customers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("first_name", sa.Text(), nullable=True),
        sa.Column("last_name", sa.Text(), nullable=True),
        sa.Column("phone_number", sa.Text(), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("shopify_customer_id", sa.Text(), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("hobbies", sa.Text(), nullable=True),
        sa.Column("occupation", sa.Text(), nullable=True),
        sa.Column("usual_size", sa.Text(), nullable=True),
        sa.Column("custom_fields", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "photos",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("customer_email", sa.Text(), nullable=False),
        sa.Column("photo_url", sa.Text(), nullable=False),
        sa.Column("original_name", sa.Text(), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("mime_type", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("is_virtual_fitting_photo", sa.Boolean(), nullable=False),
        sa.Column("webhook_sent", sa.Boolean(), nullable=False),
        sa.Column("webhook_retries", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["customer_email"], ["customers.email"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_photos_customer_email", "photos", ["customer_email"])
    op.create_index("ix_photos_status", "photos", ["status"])

    op.create_table(
        "body_measurements",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("customer_email", sa.Text(), nullable=False),
        sa.Column("chest_width", sa.Float(), nullable=True),
        sa.Column("overall_width", sa.Float(), nullable=True),
        sa.Column("sleeve_width", sa.Float(), nullable=True),
        sa.Column("top_length", sa.Float(), nullable=True),
        sa.Column("waist", sa.Float(), nullable=True),
        sa.Column("hip", sa.Float(), nullable=True),
        sa.Column("rise", sa.Float(), nullable=True),
        sa.Column("thigh_width", sa.Float(), nullable=True),
        sa.Column("bottom_length", sa.Float(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["customer_email"], ["customers.email"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("customer_email"),
    )

    op.create_table(
        "size_charts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("brand", sa.Text(), nullable=False),
        sa.Column("collection", sa.Text(), nullable=True),
        sa.Column("product_type", sa.Text(), nullable=False),
        sa.Column("sizes", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_size_charts_product_type", "size_charts", ["product_type"])

    op.create_table(
        "size_recommendations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("customer_email", sa.Text(), nullable=False),
        sa.Column("size_chart_id", sa.Uuid(), nullable=False),
        sa.Column("recommended_size", sa.Text(), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("product_type", sa.Text(), nullable=False),
        sa.Column("measurement_data", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["size_chart_id"], ["size_charts.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_size_recommendations_customer_email", "size_recommendations", ["customer_email"])

    op.create_table(
        "shopify_orders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("shopify_order_id", sa.Text(), nullable=False),
        sa.Column("customer_email", sa.Text(), nullable=False),
        sa.Column("order_number", sa.Text(), nullable=False),
        sa.Column("total_price", sa.Float(), nullable=False),
        sa.Column("currency", sa.Text(), nullable=False),
        sa.Column("order_status", sa.Text(), nullable=False),
        sa.Column("fulfillment_status", sa.Text(), nullable=True),
        sa.Column("order_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("order_data", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["customer_email"], ["customers.email"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("shopify_order_id"),
    )
    op.create_index("ix_shopify_orders_customer_email", "shopify_orders", ["customer_email"])


def downgrade() -> None:
    op.drop_index("ix_shopify_orders_customer_email", table_name="shopify_orders")
    op.drop_table("shopify_orders")
    op.drop_index("ix_size_recommendations_customer_email", table_name="size_recommendations")
    op.drop_table("size_recommendations")
    op.drop_index("ix_size_charts_product_type", table_name="size_charts")
    op.drop_table("size_charts")
    op.drop_table("body_measurements")
    op.drop_index("ix_photos_status", table_name="photos")
    op.drop_index("ix_photos_customer_email", table_name="photos")
    op.drop_table("photos")
    op.drop_table("customers")
