"""Initial database schema

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

UUID = postgresql.UUID(as_uuid=True)
MONEY = sa.Numeric(10, 2)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def _tenant_fk() -> sa.Column:
    return sa.Column(
        "patissier_id",
        UUID,
        sa.ForeignKey("patissier_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    # Accounts
    op.create_table(
        "users",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("email", sa.String(254), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(200), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="client"),
        sa.Column("suspended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("suspended_reason", sa.String(500), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "access_tokens",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("token_hash", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(100), nullable=False, server_default="login"),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_access_tokens_user_id", "access_tokens", ["user_id"])

    # Tenants
    op.create_table(
        "patissier_profiles",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "user_id",
            UUID,
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("business_name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("address_street", sa.String(255), nullable=True),
        sa.Column("address_city", sa.String(100), nullable=True),
        sa.Column("address_zip", sa.String(20), nullable=True),
        sa.Column("address_country", sa.String(2), nullable=True),
        sa.Column("social_links", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("operating_hours", postgresql.JSONB, nullable=True),
        sa.Column("logo_url", sa.String(500), nullable=True),
        sa.Column("primary_color", sa.String(7), nullable=False, server_default="#D4A574"),
        sa.Column("secondary_color", sa.String(7), nullable=False, server_default="#2C1810"),
        sa.Column(
            "font_family", sa.String(100), nullable=False, server_default="Playfair Display"
        ),
        sa.Column("hero_image_url", sa.String(500), nullable=True),
        sa.Column("story_image_url", sa.String(500), nullable=True),
        sa.Column("page_hero_images", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("site_config", postgresql.JSONB, nullable=True),
        sa.Column("custom_domain", sa.String(253), nullable=True, unique=True),
        sa.Column(
            "custom_domain_verified", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("stripe_account_id", sa.String(255), nullable=True),
        sa.Column(
            "stripe_onboarding_complete", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("plan", sa.String(20), nullable=False, server_default="starter"),
        sa.Column("orders_enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("workshops_enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("accepts_custom_orders", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("default_deposit_percent", sa.Integer, nullable=False, server_default="30"),
        sa.Column(
            "allow_support_access", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("instagram_access_token", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_patissier_profiles_slug", "patissier_profiles", ["slug"], unique=True)
    op.create_index(
        "ix_patissier_profiles_stripe_account_id", "patissier_profiles", ["stripe_account_id"]
    )

    # Catalogue
    op.create_table(
        "categories",
        sa.Column("id", UUID, primary_key=True),
        _tenant_fk(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(120), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("patissier_id", "slug", name="uq_category_slug"),
    )
    op.create_index("ix_categories_patissier_id", "categories", ["patissier_id"])

    op.create_table(
        "creations",
        sa.Column("id", UUID, primary_key=True),
        _tenant_fk(),
        sa.Column(
            "category_id", UUID, sa.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(220), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("images", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("price", MONEY, nullable=True),
        sa.Column("is_visible", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_featured", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("tags", postgresql.JSONB, nullable=False, server_default="[]"),
        *_timestamps(),
        sa.UniqueConstraint("patissier_id", "slug", name="uq_creation_slug"),
    )
    op.create_index("ix_creations_patissier_id", "creations", ["patissier_id"])

    op.create_table(
        "products",
        sa.Column("id", UUID, primary_key=True),
        _tenant_fk(),
        sa.Column(
            "category_id", UUID, sa.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("images", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("price", MONEY, nullable=False),
        sa.Column("unit", sa.String(30), nullable=False, server_default="piece"),
        sa.Column("min_quantity", sa.Integer, nullable=False, server_default="1"),
        sa.Column("max_quantity", sa.Integer, nullable=True),
        sa.Column("preparation_days", sa.Integer, nullable=False, server_default="1"),
        sa.Column("allergens", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("is_available", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_visible", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_products_patissier_id", "products", ["patissier_id"])

    # Workshops
    op.create_table(
        "workshops",
        sa.Column("id", UUID, primary_key=True),
        _tenant_fk(),
        sa.Column(
            "category_id", UUID, sa.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(220), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("images", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("price", MONEY, nullable=False),
        sa.Column("deposit_percent", sa.Integer, nullable=False, server_default="30"),
        sa.Column("capacity", sa.Integer, nullable=False),
        sa.Column("duration_minutes", sa.Integer, nullable=False, server_default="120"),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("start_time", sa.Time, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("what_included", sa.Text, nullable=True),
        sa.Column("level", sa.String(20), nullable=False, server_default="tous_niveaux"),
        sa.Column("is_visible", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("patissier_id", "slug", name="uq_workshop_slug"),
        sa.CheckConstraint("capacity > 0", name="ck_workshop_capacity_positive"),
        sa.CheckConstraint(
            "deposit_percent >= 0 AND deposit_percent <= 100", name="ck_workshop_deposit_percent"
        ),
    )
    op.create_index("ix_workshops_patissier_id", "workshops", ["patissier_id"])
    op.create_index("ix_workshops_status", "workshops", ["status"])

    op.create_table(
        "workshop_bookings",
        sa.Column("id", UUID, primary_key=True),
        _tenant_fk(),
        sa.Column(
            "workshop_id", UUID, sa.ForeignKey("workshops.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("client_name", sa.String(200), nullable=False),
        sa.Column("client_email", sa.String(254), nullable=False),
        sa.Column("client_phone", sa.String(30), nullable=True),
        sa.Column("nb_participants", sa.Integer, nullable=False),
        sa.Column("message", sa.Text, nullable=True),
        sa.Column("total_price", MONEY, nullable=False),
        sa.Column("deposit_amount", MONEY, nullable=False),
        sa.Column("remaining_amount", MONEY, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending_payment"),
        sa.Column("stripe_checkout_session_id", sa.String(255), nullable=True),
        sa.Column("stripe_payment_intent_id", sa.String(255), nullable=True),
        sa.Column(
            "deposit_payment_status", sa.String(20), nullable=False, server_default="pending"
        ),
        sa.Column("deposit_paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "remaining_payment_status", sa.String(20), nullable=False, server_default="pending"
        ),
        sa.Column("cancellation_reason", sa.Text, nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("nb_participants > 0", name="ck_booking_participants_positive"),
    )
    op.create_index("ix_workshop_bookings_patissier_id", "workshop_bookings", ["patissier_id"])
    op.create_index("ix_workshop_bookings_workshop_id", "workshop_bookings", ["workshop_id"])
    op.create_index("ix_workshop_bookings_client_email", "workshop_bookings", ["client_email"])
    op.create_index("ix_workshop_bookings_status", "workshop_bookings", ["status"])

    # Orders
    op.create_table(
        "orders",
        sa.Column("id", UUID, primary_key=True),
        _tenant_fk(),
        sa.Column("order_number", sa.String(20), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("client_name", sa.String(200), nullable=False),
        sa.Column("client_email", sa.String(254), nullable=False),
        sa.Column("client_phone", sa.String(30), nullable=True),
        sa.Column("delivery_method", sa.String(20), nullable=False, server_default="pickup"),
        sa.Column("requested_date", sa.Date, nullable=True),
        sa.Column("confirmed_date", sa.Date, nullable=True),
        sa.Column("delivery_address", sa.Text, nullable=True),
        sa.Column("delivery_notes", sa.Text, nullable=True),
        sa.Column("subtotal", MONEY, nullable=True),
        sa.Column("total", MONEY, nullable=True),
        sa.Column("quoted_price", MONEY, nullable=True),
        sa.Column("response_message", sa.Text, nullable=True),
        sa.Column("custom_type", sa.String(100), nullable=True),
        sa.Column("custom_nb_personnes", sa.Integer, nullable=True),
        sa.Column("custom_date_souhaitee", sa.Date, nullable=True),
        sa.Column("custom_theme", sa.String(200), nullable=True),
        sa.Column("custom_allergies", sa.Text, nullable=True),
        sa.Column("custom_photo_inspiration_url", sa.String(500), nullable=True),
        sa.Column("custom_message", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("stripe_payment_intent_id", sa.String(255), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_orders_patissier_id", "orders", ["patissier_id"])
    op.create_index("ix_orders_order_number", "orders", ["order_number"], unique=True)
    op.create_index("ix_orders_client_email", "orders", ["client_email"])
    op.create_index("ix_orders_status", "orders", ["status"])

    op.create_table(
        "order_items",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "order_id", UUID, sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "product_id", UUID, sa.ForeignKey("products.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("product_name", sa.String(200), nullable=False),
        sa.Column("unit_price", MONEY, nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("total", MONEY, nullable=False),
        sa.Column("special_instructions", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])

    op.create_table(
        "order_messages",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "order_id", UUID, sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("sender_type", sa.String(20), nullable=False),
        sa.Column("sender_id", UUID, nullable=True),
        sa.Column("message", sa.Text, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_order_messages_order_id", "order_messages", ["order_id"])

    # Billing and notifications
    op.create_table(
        "subscriptions",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("plan", sa.String(20), nullable=False),
        sa.Column("billing_interval", sa.String(10), nullable=False, server_default="monthly"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("stripe_customer_id", sa.String(255), nullable=True),
        sa.Column("stripe_subscription_id", sa.String(255), nullable=True, unique=True),
        sa.Column("current_period_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "cancel_at_period_end", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("canceled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])

    op.create_table(
        "notifications",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text, nullable=True),
        sa.Column("data", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("action_url", sa.String(500), nullable=True),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("subscriptions")
    op.drop_table("order_messages")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("workshop_bookings")
    op.drop_table("workshops")
    op.drop_table("products")
    op.drop_table("creations")
    op.drop_table("categories")
    op.drop_table("patissier_profiles")
    op.drop_table("access_tokens")
    op.drop_table("users")
