"""Initial schema: users, diagrams, diagram_versions

Revision ID: 0001
Revises:
Create Date: 2026-10-19 12:00:00
"""
from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("oidc_subject", sa.String(255), nullable=True),
        sa.Column("oidc_issuer", sa.String(512), nullable=True),
        sa.Column("auth_provider", sa.String(20), nullable=False),
        sa.Column("current_token", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("oidc_subject"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "diagrams",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("diagram_id", sa.String(255), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("database_type", sa.Text(), nullable=False),
        sa.Column("database_edition", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_diagrams_diagram_id", "diagrams", ["diagram_id"])
    op.create_index("ix_diagrams_user_id", "diagrams", ["user_id"])
    op.create_index("ix_diagrams_deleted_at", "diagrams", ["deleted_at"])
    op.create_index("ix_diagrams_owner_updated", "diagrams", ["user_id", "updated_at"])
    op.create_index(
        "uq_diagrams_owner_diagram_live",
        "diagrams",
        ["user_id", "diagram_id"],
        unique=True,
        sqlite_where=sa.text("deleted_at IS NULL"),
        postgresql_where=sa.text("deleted_at IS NULL"),
    )

    op.create_table(
        "diagram_versions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("diagram_id", sa.Integer(), sa.ForeignKey("diagrams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("data", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.UniqueConstraint("diagram_id", "version", name="uq_diagram_versions_diagram_version"),
    )
    op.create_index("ix_diagram_versions_diagram_id", "diagram_versions", ["diagram_id"])


def downgrade():
    op.drop_table("diagram_versions")
    op.drop_table("diagrams")
    op.drop_table("users")
