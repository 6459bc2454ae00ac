"""initial_realty_schema

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-18 09:12:44.201377

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "3f1c9a7d2b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TIMESTAMPED_TABLES = ("users", "properties", "favorites")


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # pgcrypto provides gen_random_uuid() on older PostgreSQL
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto";')

    op.create_table(
        "users",
        sa.Column(
            "id", sa.UUID(), nullable=False, server_default=sa.text("gen_random_uuid()")
        ),
        sa.Column("username", sa.String(length=30), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_username"), "users", ["username"], unique=True)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "properties",
        sa.Column(
            "id", sa.UUID(), nullable=False, server_default=sa.text("gen_random_uuid()")
        ),
        sa.Column("listing_id", sa.String(length=50), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("type", sa.String(length=100), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("state", sa.String(length=100), nullable=False),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("area_sq_ft", sa.Integer(), nullable=False),
        sa.Column("bedrooms", sa.Integer(), nullable=False),
        sa.Column("bathrooms", sa.Integer(), nullable=False),
        sa.Column("amenities", sa.Text(), nullable=False),
        sa.Column("furnished", sa.String(length=20), nullable=False),
        sa.Column("available_from", sa.Date(), nullable=False),
        sa.Column("listed_by", sa.String(length=100), nullable=False),
        sa.Column("tags", sa.Text(), nullable=False),
        sa.Column("color_theme", sa.String(length=7), nullable=False),
        sa.Column("rating", sa.Float(), nullable=False),
        sa.Column(
            "is_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column("listing_type", sa.String(length=10), nullable=False),
        sa.Column("created_by", sa.UUID(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("price >= 0", name="check_price_non_negative"),
        sa.CheckConstraint("area_sq_ft >= 1", name="check_area_positive"),
        sa.CheckConstraint("bedrooms >= 0", name="check_bedrooms_non_negative"),
        sa.CheckConstraint("bathrooms >= 0", name="check_bathrooms_non_negative"),
        sa.CheckConstraint("rating BETWEEN 0 AND 5", name="check_rating_range"),
        sa.CheckConstraint(
            "furnished IN ('Furnished', 'Semi-Furnished', 'Unfurnished')",
            name="check_furnished_values",
        ),
        sa.CheckConstraint(
            "listing_type IN ('rent', 'sale')", name="check_listing_type_values"
        ),
    )
    op.create_index(
        op.f("ix_properties_listing_id"), "properties", ["listing_id"], unique=True
    )
    op.create_index(op.f("ix_properties_type"), "properties", ["type"], unique=False)
    op.create_index(op.f("ix_properties_price"), "properties", ["price"], unique=False)
    op.create_index(
        op.f("ix_properties_listing_type"), "properties", ["listing_type"], unique=False
    )
    op.create_index(
        op.f("ix_properties_created_by"), "properties", ["created_by"], unique=False
    )
    op.create_index(
        "idx_properties_state_city", "properties", ["state", "city"], unique=False
    )

    op.create_table(
        "favorites",
        sa.Column(
            "id", sa.UUID(), nullable=False, server_default=sa.text("gen_random_uuid()")
        ),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("property_id", sa.UUID(), nullable=False),
        sa.Column("notes", sa.String(length=500), nullable=True),
        sa.Column(
            "tags",
            postgresql.ARRAY(sa.String(length=50)),
            nullable=False,
            server_default="{}",
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "property_id", name="uq_favorites_user_property"),
    )
    op.create_index(op.f("ix_favorites_user_id"), "favorites", ["user_id"], unique=False)
    op.create_index(
        op.f("ix_favorites_property_id"), "favorites", ["property_id"], unique=False
    )
    op.create_index(
        "idx_favorites_created_at", "favorites", ["created_at"], unique=False
    )

    op.execute("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ language 'plpgsql';
    """)

    for table in TIMESTAMPED_TABLES:
        op.execute(f"""
            CREATE TRIGGER update_{table}_updated_at BEFORE UPDATE ON {table}
                FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();
        """)


def downgrade() -> None:
    for table in TIMESTAMPED_TABLES:
        op.execute(f"DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table}")
    op.execute("DROP FUNCTION IF EXISTS update_updated_at_column()")

    op.drop_index("idx_favorites_created_at", table_name="favorites")
    op.drop_index(op.f("ix_favorites_property_id"), table_name="favorites")
    op.drop_index(op.f("ix_favorites_user_id"), table_name="favorites")
    op.drop_table("favorites")

    op.drop_index("idx_properties_state_city", table_name="properties")
    op.drop_index(op.f("ix_properties_created_by"), table_name="properties")
    op.drop_index(op.f("ix_properties_listing_type"), table_name="properties")
    op.drop_index(op.f("ix_properties_price"), table_name="properties")
    op.drop_index(op.f("ix_properties_type"), table_name="properties")
    op.drop_index(op.f("ix_properties_listing_id"), table_name="properties")
    op.drop_table("properties")

    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_index(op.f("ix_users_username"), table_name="users")
    op.drop_table("users")
