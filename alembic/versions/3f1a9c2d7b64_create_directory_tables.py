"""create users, subscriptions, directory_settings and business_listings

Revision ID: 3f1a9c2d7b64
Revises: 
Create Date: 2026-10-18 09:12:44.301822

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3f1a9c2d7b64'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("username", sa.String(60), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column(
            "role",
            sa.Enum("ADMIN", "MODERATOR", "MEMBER", name="userrole"),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_created_at", "users", ["created_at"])

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "user_id", sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("plan_id", sa.String(100), nullable=False),
        sa.Column(
            "status",
            sa.Enum("ACTIVE", "TRIALING", "PAST_DUE", "CANCELED", name="subscriptionstatus"),
            nullable=False,
        ),
        *_timestamps(),
    )
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])
    op.create_index("ix_subscriptions_plan_id", "subscriptions", ["plan_id"])
    op.create_index("ix_subscriptions_created_at", "subscriptions", ["created_at"])

    op.create_table(
        "directory_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("subscription_plan_id", sa.String(100), nullable=False),
        sa.Column("auto_approve", sa.Boolean(), nullable=False),
        sa.Column("max_images", sa.Integer(), nullable=False),
        sa.Column("show_in_sitemap", sa.Boolean(), nullable=False),
        sa.Column("featured_limit", sa.Integer(), nullable=False),
        sa.Column("locations", sa.Text(), nullable=False, server_default=""),
        sa.Column("categories", sa.Text(), nullable=False, server_default=""),
        sa.Column("send_expiry_notifications", sa.Boolean(), nullable=False),
        sa.Column("send_reactivation_notifications", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_directory_settings_created_at", "directory_settings", ["created_at"])

    op.create_table(
        "business_listings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "user_id", sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("business_name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(150), nullable=False),
        sa.Column("website", sa.String(500), nullable=True),
        sa.Column("instagram", sa.String(500), nullable=True),
        sa.Column("facebook", sa.String(500), nullable=True),
        sa.Column("tiktok", sa.String(500), nullable=True),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("images", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("packages", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("approved", sa.Boolean(), nullable=False),
        sa.Column("featured", sa.Boolean(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("views_count", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_business_listings_user_id", "business_listings", ["user_id"])
    op.create_index("ix_business_listings_slug", "business_listings", ["slug"], unique=True)
    op.create_index("ix_business_listings_is_active", "business_listings", ["is_active"])
    op.create_index("ix_business_listings_approved", "business_listings", ["approved"])
    op.create_index("ix_business_listings_featured", "business_listings", ["featured"])
    op.create_index("ix_business_listings_created_at", "business_listings", ["created_at"])
    op.create_index(
        "ix_business_listings_city_category", "business_listings", ["city", "category"],
    )
    op.create_index(
        "ix_business_listings_display_order",
        "business_listings",
        ["featured", "priority", "created_at"],
    )
    # At most one active listing per owner
    op.create_index(
        "uq_business_listings_user_active",
        "business_listings",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )


def downgrade() -> None:
    op.drop_table("business_listings")
    op.drop_table("directory_settings")
    op.drop_table("subscriptions")
    op.drop_table("users")
    sa.Enum(name="subscriptionstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="userrole").drop(op.get_bind(), checkfirst=True)
