"""Initial marketplace tables: users, loads, offers, chat, activity log.

Revision ID: 0001
Revises:
Create Date: 2026-10-17
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("company_name", sa.String(255)),
        sa.Column("phone", sa.String(20)),
        sa.Column("mc_number", sa.String(20)),
        sa.Column("carrier_id", sa.String(36), sa.ForeignKey("users.id")),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "loads",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("load_number", sa.String(20), nullable=False),
        sa.Column("reference_number", sa.String(100)),
        sa.Column("shipper_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("carrier_id", sa.String(36), sa.ForeignKey("users.id")),
        sa.Column("origin", sa.JSON(), nullable=False),
        sa.Column("destination", sa.JSON(), nullable=False),
        sa.Column("distance_miles", sa.Float()),
        sa.Column("load_type", sa.String(50), nullable=False),
        sa.Column("equipment_type", sa.String(50), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("pickup_date", sa.Date(), nullable=False),
        sa.Column("delivery_date", sa.Date(), nullable=False),
        sa.Column("pickup_time", sa.String(50)),
        sa.Column("delivery_time", sa.String(50)),
        sa.Column("rate", sa.Float(), nullable=False),
        sa.Column("rate_per_mile", sa.Float()),
        sa.Column("currency", sa.String(3), server_default="USD"),
        sa.Column("contact_info", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(30), nullable=False, server_default="posted"),
        sa.Column("posted_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("assigned_at", sa.DateTime()),
        sa.Column("picked_up_at", sa.DateTime()),
        sa.Column("delivered_at", sa.DateTime()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_loads_load_number", "loads", ["load_number"], unique=True)
    op.create_index("ix_loads_reference_number", "loads", ["reference_number"])
    op.create_index("ix_loads_shipper_id", "loads", ["shipper_id"])
    op.create_index("ix_loads_carrier_id", "loads", ["carrier_id"])
    op.create_index("ix_loads_equipment_type", "loads", ["equipment_type"])
    op.create_index("ix_loads_pickup_date", "loads", ["pickup_date"])
    op.create_index("ix_loads_status", "loads", ["status"])
    op.create_index("ix_loads_posted_at", "loads", ["posted_at"])
    op.create_index(
        "ix_loads_shipper_status_posted", "loads",
        ["shipper_id", "status", "posted_at"],
    )

    op.create_table(
        "offers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "load_id", sa.String(36),
            sa.ForeignKey("loads.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("carrier_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("message", sa.Text()),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint("load_id", "carrier_id", name="uq_offers_load_carrier"),
    )
    op.create_index("ix_offers_load_id", "offers", ["load_id"])
    op.create_index("ix_offers_carrier_id", "offers", ["carrier_id"])
    op.create_index("ix_offers_status", "offers", ["status"])
    op.create_index("ix_offers_created_at", "offers", ["created_at"])

    op.create_table(
        "chat_messages",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "load_id", sa.String(36),
            sa.ForeignKey("loads.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("sender_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_chat_messages_load_created", "chat_messages", ["load_id", "created_at"],
    )

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(36)),
        sa.Column("entity_code", sa.String(100)),
        sa.Column("summary", sa.Text()),
        sa.Column("details", sa.JSON()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_user_id", "activity_logs", ["user_id"])
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])
    op.create_index("ix_activity_logs_entity_type", "activity_logs", ["entity_type"])
    op.create_index("ix_activity_logs_created_at", "activity_logs", ["created_at"])


def downgrade() -> None:
    op.drop_table("activity_logs")
    op.drop_table("chat_messages")
    op.drop_table("offers")
    op.drop_table("loads")
    op.drop_table("users")
