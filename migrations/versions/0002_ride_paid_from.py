"""Track the status a ride was paid from"""
from alembic import op
import sqlalchemy as sa

revision = "0002_ride_paid_from"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("rides", sa.Column("paid_from", sa.String(20), nullable=True))


def downgrade() -> None:
    op.drop_column("rides", "paid_from")
