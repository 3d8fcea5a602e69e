"""Initial schema — auth_accounts, users, drivers, rides, messages"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "auth_accounts",
        sa.Column("id", sa.String, primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_auth_accounts_email", "auth_accounts", ["email"])

    op.create_table(
        "users",
        sa.Column("id", sa.String, primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(30), nullable=True, server_default=""),
        sa.Column("user_type", sa.String(20), nullable=False, server_default="passenger"),
        sa.Column("status", sa.String(20), nullable=True),
        sa.Column("rating", sa.Float, server_default="5.0"),
        sa.Column("total_reviews", sa.Integer, server_default="0"),
        sa.Column("profile_picture_url", sa.String, nullable=True),
        sa.Column("payment_method", sa.String(30), nullable=True),
        sa.Column("notifications_enabled", sa.Boolean, server_default=sa.true()),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_users_email", "users", ["email"])
    op.create_index("idx_users_type", "users", ["user_type"])
    op.create_index("idx_users_status", "users", ["status"])

    op.create_table(
        "drivers",
        sa.Column("id", sa.String, primary_key=True),
        sa.Column("user_id", sa.String, sa.ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False),
        sa.Column("vehicle_type", sa.String(50), nullable=False),
        sa.Column("vehicle_plate", sa.String(20), nullable=False),
        sa.Column("current_latitude", sa.Float, nullable=True),
        sa.Column("current_longitude", sa.Float, nullable=True),
        sa.Column("is_online", sa.Boolean, nullable=False, server_default=sa.false()),
    )
    op.create_index("idx_drivers_user", "drivers", ["user_id"])
    op.create_index("idx_drivers_online", "drivers", ["is_online"])

    op.create_table(
        "rides",
        sa.Column("id", sa.String, primary_key=True),
        sa.Column("passenger_id", sa.String, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("driver_id", sa.String, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("pickup_location", sa.String, nullable=False),
        sa.Column("dropoff_location", sa.String, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="requested"),
        sa.Column("fare", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("payment_method", sa.String(30), nullable=True),
        sa.Column("distance", sa.Float, nullable=True),
        sa.Column("vehicle_type", sa.String(50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_rides_status", "rides", ["status"])
    op.create_index("idx_rides_passenger", "rides", ["passenger_id"])
    op.create_index("idx_rides_driver", "rides", ["driver_id"])
    op.create_index("idx_rides_created", "rides", ["created_at"])
    # Open requests: driver_id IS NULL AND status IN ('requested', 'pending')
    op.create_index(
        "idx_rides_open_requests", "rides", ["status", "created_at"],
        postgresql_where=sa.text("driver_id IS NULL"),
    )

    op.create_table(
        "messages",
        sa.Column("id", sa.String, primary_key=True),
        sa.Column("user_id", sa.String, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False, server_default="Driver message"),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("idx_messages_user", "messages", ["user_id"])


def downgrade() -> None:
    op.drop_table("messages")
    op.drop_table("rides")
    op.drop_table("drivers")
    op.drop_table("users")
    op.drop_table("auth_accounts")
