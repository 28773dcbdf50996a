"""Store the entered discount rate on sale lines

Revision ID: 20261020_line_rate
Revises: 20261019_initial
Create Date: 2026-10-20

sales_items.discount_rate_bp holds the rate in basis points (1234 = 0.1234).
Existing lines are backfilled from discount_cents / gross, which is the best
estimate available for rows written before the column existed.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261020_line_rate"
down_revision = "20261019_initial"
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table("sales_items", schema=None) as batch_op:
        batch_op.add_column(
            sa.Column("discount_rate_bp", sa.Integer(), nullable=False, server_default="0")
        )

    op.execute(
        """
        UPDATE sales_items
        SET discount_rate_bp = CAST(
            ROUND(discount_cents * 10000.0 / (price_cents * quantity_sold)) AS INTEGER
        )
        WHERE discount_cents > 0 AND price_cents * quantity_sold > 0
        """
    )


def downgrade():
    with op.batch_alter_table("sales_items", schema=None) as batch_op:
        batch_op.drop_column("discount_rate_bp")
