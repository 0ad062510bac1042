"""initial schema: users, categories, wallets, incomes, expenses

Revision ID: 202610190900
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202610190900"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column(
            "type", sa.Enum("income", "expense", name="categorytype"), nullable=False
        ),
        sa.Column(
            "parent_id", sa.String(length=36), sa.ForeignKey("categories.id")
        ),
        *_timestamps(),
        sa.UniqueConstraint(
            "user_id", "parent_id", "name", name="uq_category_user_parent_name"
        ),
    )
    op.create_index("ix_categories_user_type", "categories", ["user_id", "type"])

    op.create_table(
        "wallets",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column(
            "balance_cents", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "included_in_total", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column("icon", sa.String(length=16), nullable=False),
        sa.Column("color", sa.String(length=9), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "name", name="uq_wallet_user_name"),
    )
    op.create_index("ix_wallets_user_order", "wallets", ["user_id", "order"])

    for table, wallet_ondelete in (("incomes", "SET NULL"), ("expenses", None)):
        op.create_table(
            table,
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column(
                "user_id",
                sa.String(length=36),
                sa.ForeignKey("users.id"),
                nullable=False,
            ),
            sa.Column(
                "category_id",
                sa.String(length=36),
                sa.ForeignKey("categories.id"),
                nullable=False,
            ),
            sa.Column(
                "wallet_id",
                sa.String(length=36),
                sa.ForeignKey("wallets.id", ondelete=wallet_ondelete),
            ),
            sa.Column("amount_cents", sa.Integer(), nullable=False),
            sa.Column("description", sa.Text()),
            sa.Column("date", sa.Date(), nullable=False),
            *_timestamps(),
            sa.CheckConstraint("amount_cents > 0", name=f"ck_{table}_amount_positive"),
        )
        op.create_index(f"ix_{table}_user_date", table, ["user_id", "date"])
        op.create_index(f"ix_{table}_user_category", table, ["user_id", "category_id"])
        op.create_index(f"ix_{table}_user_wallet", table, ["user_id", "wallet_id"])


def downgrade():
    for table in ("expenses", "incomes"):
        op.drop_index(f"ix_{table}_user_wallet", table_name=table)
        op.drop_index(f"ix_{table}_user_category", table_name=table)
        op.drop_index(f"ix_{table}_user_date", table_name=table)
        op.drop_table(table)
    op.drop_index("ix_wallets_user_order", table_name="wallets")
    op.drop_table("wallets")
    op.drop_index("ix_categories_user_type", table_name="categories")
    op.drop_table("categories")
    op.drop_table("users")
