"""Add due-date reminder columns to tasks"""

from alembic import op
import sqlalchemy as sa


revision = "202502030001"
down_revision = "202501100001"
branch_labels = None
depends_on = None


def _existing_columns(table_name):
    inspector = sa.inspect(op.get_bind())
    return {column["name"] for column in inspector.get_columns(table_name)}


def upgrade():
    bind = op.get_bind()
    dialect = bind.dialect.name
    existing = _existing_columns("tasks")

    columns = [
        sa.Column("notification_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_notified_at", sa.DateTime(), nullable=True),
        sa.Column("reminder_interval_min", sa.Integer(), nullable=False, server_default="60"),
    ]
    missing = [column for column in columns if column.name not in existing]
    if not missing:
        return

    if dialect == "sqlite":
        with op.batch_alter_table("tasks") as batch_op:
            for column in missing:
                batch_op.add_column(column)
    else:
        for column in missing:
            op.add_column("tasks", column)


def downgrade():
    existing = _existing_columns("tasks")
    with op.batch_alter_table("tasks") as batch_op:
        for name in ("reminder_interval_min", "last_notified_at", "notification_enabled"):
            if name in existing:
                batch_op.drop_column(name)
