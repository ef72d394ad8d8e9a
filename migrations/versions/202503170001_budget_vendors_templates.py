"""Add vendors, budgets and checklist templates; template descriptions and ordering"""

from alembic import op
import sqlalchemy as sa


revision = "202503170001"
down_revision = "202502030001"
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def _existing_tables():
    return set(sa.inspect(op.get_bind()).get_table_names())


def _existing_columns(table_name):
    inspector = sa.inspect(op.get_bind())
    return {column["name"] for column in inspector.get_columns(table_name)}


def _add_missing_columns(table_name, columns):
    existing = _existing_columns(table_name)
    missing = [column for column in columns if column.name not in existing]
    if not missing:
        return
    with op.batch_alter_table(table_name) as batch_op:
        for column in missing:
            batch_op.add_column(column)


def upgrade():
    tables = _existing_tables()

    if "vendors" not in tables:
        op.create_table(
            "vendors",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("company_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("contact", sa.String(length=120), nullable=True),
            sa.Column("biz_no", sa.String(length=40), nullable=True),
            sa.Column("bank_account", sa.String(length=120), nullable=True),
            sa.Column("address", sa.String(length=255), nullable=True),
            sa.Column("memo", sa.Text(), nullable=True),
            sa.Column("deleted_at", sa.DateTime(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_vendors_company_id", "vendors", ["company_id"])
        op.create_index("ix_vendors_deleted_at", "vendors", ["deleted_at"])

    if "project_vendors" not in tables:
        op.create_table(
            "project_vendors",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("vendor_id", sa.Integer(), nullable=False),
            sa.Column("role", sa.String(length=30), nullable=False),
            sa.Column("contact_name", sa.String(length=80), nullable=True),
            sa.Column("contact_phone", sa.String(length=40), nullable=True),
            sa.Column("memo", sa.Text(), nullable=True),
            sa.Column("deleted_at", sa.DateTime(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"]),
            sa.ForeignKeyConstraint(["vendor_id"], ["vendors.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_project_vendors_project_id", "project_vendors", ["project_id"])
        op.create_index("ix_project_vendors_vendor_id", "project_vendors", ["vendor_id"])
        op.create_index("ix_project_vendors_deleted_at", "project_vendors", ["deleted_at"])

    if "budget_categories" not in tables:
        op.create_table(
            "budget_categories",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("company_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=120), nullable=False),
            sa.Column("vendor_role", sa.String(length=30), nullable=True),
            sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("order", sa.Integer(), nullable=False),
            sa.Column("deleted_at", sa.DateTime(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_budget_categories_company_id", "budget_categories", ["company_id"])
        op.create_index("ix_budget_categories_deleted_at", "budget_categories", ["deleted_at"])

    if "project_budget_items" not in tables:
        op.create_table(
            "project_budget_items",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("category_id", sa.Integer(), nullable=False),
            sa.Column("contract_amount", sa.Numeric(15, 2), nullable=False, server_default="0"),
            sa.Column("planned_amount", sa.Numeric(15, 2), nullable=False, server_default="0"),
            sa.Column("actual_amount", sa.Numeric(15, 2), nullable=False, server_default="0"),
            sa.Column("vendor_override_id", sa.Integer(), nullable=True),
            sa.Column("deleted_at", sa.DateTime(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"]),
            sa.ForeignKeyConstraint(["category_id"], ["budget_categories.id"]),
            sa.ForeignKeyConstraint(["vendor_override_id"], ["vendors.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_project_budget_items_project_id", "project_budget_items", ["project_id"])
        op.create_index("ix_project_budget_items_category_id", "project_budget_items", ["category_id"])
        op.create_index("ix_project_budget_items_deleted_at", "project_budget_items", ["deleted_at"])

    if "checklist_templates" not in tables:
        op.create_table(
            "checklist_templates",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("company_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_checklist_templates_company_id", "checklist_templates", ["company_id"])

    if "checklist_template_items" not in tables:
        op.create_table(
            "checklist_template_items",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("template_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("order", sa.Integer(), nullable=False),
            sa.Column("has_expiry", sa.Boolean(), nullable=False, server_default=sa.false()),
            *_timestamps(),
            sa.ForeignKeyConstraint(["template_id"], ["checklist_templates.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_checklist_template_items_template_id", "checklist_template_items", ["template_id"]
        )

    _add_missing_columns(
        "stage_templates",
        [sa.Column("description", sa.Text(), nullable=True)],
    )
    _add_missing_columns(
        "task_templates",
        [
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column(
                "checklist_template_id",
                sa.Integer(),
                sa.ForeignKey(
                    "checklist_templates.id",
                    name="fk_task_templates_checklist_template_id",
                    ondelete="SET NULL",
                ),
                nullable=True,
            ),
        ],
    )


def downgrade():
    existing = _existing_columns("task_templates")
    with op.batch_alter_table("task_templates") as batch_op:
        if "checklist_template_id" in existing:
            batch_op.drop_constraint("fk_task_templates_checklist_template_id", type_="foreignkey")
            batch_op.drop_column("checklist_template_id")
        for name in ("order", "description"):
            if name in existing:
                batch_op.drop_column(name)
    if "description" in _existing_columns("stage_templates"):
        with op.batch_alter_table("stage_templates") as batch_op:
            batch_op.drop_column("description")

    tables = _existing_tables()
    for table_name in (
        "checklist_template_items",
        "checklist_templates",
        "project_budget_items",
        "budget_categories",
        "project_vendors",
        "vendors",
    ):
        if table_name in tables:
            op.drop_table(table_name)
