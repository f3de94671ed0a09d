"""baseline schema

Revision ID: 5a1c0e7d9b42
Revises:
Create Date: 2026-10-19 09:12:44.118203

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5a1c0e7d9b42"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "plans",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("settings", _JSON, nullable=False),
    sa.Column("shopping_list", _JSON, nullable=False),
    sa.Column("share_id", sa.String(), nullable=True),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("share_id"),
  )
  op.create_table(
    "recipes",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("title", sa.String(), nullable=False),
    sa.Column("ingredients", _JSON, nullable=False),
    sa.Column("instructions", _JSON, nullable=False),
    sa.Column("total_calories", sa.Float(), nullable=False),
    sa.Column("protein", sa.Float(), nullable=True),
    sa.Column("carbs", sa.Float(), nullable=True),
    sa.Column("fat", sa.Float(), nullable=True),
    sa.Column("category", sa.String(), nullable=False),
    sa.Column("dietary_preference", sa.String(), nullable=True),
    sa.Column("diet_type", sa.String(), nullable=True),
    sa.Column("dish_complexity", sa.String(), nullable=True),
    sa.Column("is_gluten_free", sa.Boolean(), nullable=False),
    sa.Column("is_lactose_free", sa.Boolean(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.PrimaryKeyConstraint("id"),
    sa.UniqueConstraint("title"),
  )
  op.create_index(op.f("ix_recipes_category"), "recipes", ["category"], unique=False)
  op.create_table(
    "plan_recipes",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("plan_id", sa.Integer(), nullable=False),
    sa.Column("recipe_id", sa.Integer(), nullable=False),
    sa.Column("day_of_week", sa.String(), nullable=False),
    sa.Column("meal_type", sa.String(), nullable=False),
    sa.Column("note", sa.Text(), nullable=True),
    sa.ForeignKeyConstraint(["plan_id"], ["plans.id"], ondelete="CASCADE"),
    sa.ForeignKeyConstraint(["recipe_id"], ["recipes.id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_plan_recipes_plan_id"), "plan_recipes", ["plan_id"], unique=False)
  op.create_index(op.f("ix_plan_recipes_recipe_id"), "plan_recipes", ["recipe_id"], unique=False)
  op.create_table(
    "jobs",
    sa.Column("job_id", sa.String(), nullable=False),
    sa.Column("job_type", sa.String(), nullable=False),
    sa.Column("status", sa.String(), server_default=sa.text("'pending'"), nullable=False),
    sa.Column("phase", sa.String(), nullable=True),
    sa.Column("progress_text", sa.Text(), nullable=True),
    sa.Column("payload_json", _JSON, nullable=False),
    sa.Column("result_json", _JSON, nullable=True),
    sa.Column("error_message", sa.Text(), nullable=True),
    sa.Column("related_plan_id", sa.Integer(), nullable=True),
    sa.Column("created_at", sa.String(), nullable=False),
    sa.Column("updated_at", sa.String(), nullable=False),
    sa.Column("completed_at", sa.String(), nullable=True),
    sa.ForeignKeyConstraint(["related_plan_id"], ["plans.id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("job_id"),
  )
  op.create_index(op.f("ix_jobs_job_type"), "jobs", ["job_type"], unique=False)
  op.create_index(op.f("ix_jobs_related_plan_id"), "jobs", ["related_plan_id"], unique=False)
  op.create_index("ix_jobs_status_created_at", "jobs", ["status", "created_at"], unique=False)


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index("ix_jobs_status_created_at", table_name="jobs")
  op.drop_index(op.f("ix_jobs_related_plan_id"), table_name="jobs")
  op.drop_index(op.f("ix_jobs_job_type"), table_name="jobs")
  op.drop_table("jobs")
  op.drop_index(op.f("ix_plan_recipes_recipe_id"), table_name="plan_recipes")
  op.drop_index(op.f("ix_plan_recipes_plan_id"), table_name="plan_recipes")
  op.drop_table("plan_recipes")
  op.drop_index(op.f("ix_recipes_category"), table_name="recipes")
  op.drop_table("recipes")
  op.drop_table("plans")
