"""Initial schema: projects, version policies, version history and lock rows

Revision ID: a1c4e2f90b11
Revises:

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import Column, Integer, String, DateTime

# revision identifiers, used by Alembic.
revision = "a1c4e2f90b11"
down_revision = None
branch_labels = None
depends_on = None

HISTORY_INDEXED_COLUMNS = [
    "project_id",
    "project_name",
    "project_config_id",
    "project_config_name",
    "date",
    "build_number",
    "version",
    "semantic_version",
    "product_version",
    "release_type",
    "build_definition_name",
    "requested_by",
    "team_project_name",
]


def upgrade():
    op.create_table(
        "project",
        Column("id", Integer, primary_key=True),
        Column("name", String(100), nullable=False, unique=True),
        Column("description", String(400)),
        Column("build_number", Integer, nullable=False, server_default=sa.text("0")),
        Column("date_build_number_updated", DateTime, nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_project_date_build_number_updated", "project", ["date_build_number_updated"])

    op.create_table(
        "project_config",
        Column("id", Integer, primary_key=True),
        Column("project_id", Integer, sa.ForeignKey("project.id"), nullable=False),
        Column("name", String(100), nullable=False),
        Column("description", String(400)),
        Column("generated_build_number_position", Integer, nullable=False),
        Column("generated_version_part1", Integer, nullable=False),
        Column("generated_version_part2", Integer, nullable=False),
        Column("generated_version_part3", Integer, nullable=False),
        Column("generated_version_part4", Integer, nullable=False),
        Column("product_version_part1", Integer, nullable=False),
        Column("product_version_part2", Integer, nullable=False),
        Column("product_version_part3", Integer, nullable=False),
        Column("product_version_part4", Integer, nullable=False),
        Column("release_type", String(100), nullable=False),
        sa.UniqueConstraint("project_id", "name", name="ux_project_config_project_id_name"),
    )
    op.create_index("ix_project_config_release_type", "project_config", ["release_type"])

    # No foreign keys: history must survive deleted projects and configs
    op.create_table(
        "version_history",
        Column("id", Integer, primary_key=True),
        Column("project_id", Integer, nullable=False),
        Column("project_name", String(100), nullable=False),
        Column("project_config_id", Integer, nullable=False),
        Column("project_config_name", String(100), nullable=False),
        Column("date", DateTime, nullable=False),
        Column("build_number", Integer, nullable=False),
        Column("version", String(100), nullable=False),
        Column("semantic_version", String(100), nullable=False),
        Column("semantic_version_suffix", String(100), nullable=False),
        Column("product_version", String(100), nullable=False),
        Column("release_type", String(100), nullable=False),
        Column("build_definition_name", String(100), nullable=False),
        Column("requested_by", String(100), nullable=False),
        Column("team_project_name", String(100), nullable=False),
        Column("generated_build_number_position", Integer, nullable=False),
        Column("generated_version_part1", Integer, nullable=False),
        Column("generated_version_part2", Integer, nullable=False),
        Column("generated_version_part3", Integer, nullable=False),
        Column("generated_version_part4", Integer, nullable=False),
        Column("product_version_part1", Integer, nullable=False),
        Column("product_version_part2", Integer, nullable=False),
        Column("product_version_part3", Integer, nullable=False),
        Column("product_version_part4", Integer, nullable=False),
    )
    for column in HISTORY_INDEXED_COLUMNS:
        op.create_index(f"ix_version_history_{column}", "version_history", [column])

    op.create_table(
        "version_lock",
        Column("resource", String(255), primary_key=True),
        Column("acquired_at", DateTime),
    )


def downgrade():
    # Drop tables in reverse order
    op.drop_table("version_lock")
    for column in reversed(HISTORY_INDEXED_COLUMNS):
        op.drop_index(f"ix_version_history_{column}", table_name="version_history")
    op.drop_table("version_history")
    op.drop_index("ix_project_config_release_type", table_name="project_config")
    op.drop_table("project_config")
    op.drop_index("ix_project_date_build_number_updated", table_name="project")
    op.drop_table("project")
