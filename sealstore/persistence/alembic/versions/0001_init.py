"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _signed_columns() -> list[sa.Column]:
    # Every signed table records its signature and the canonical form generation used.
    return [
        sa.Column("signature", sa.Text(), nullable=True),
        sa.Column("canonical_form_version", sa.Integer(), nullable=False, server_default="0"),
    ]


def upgrade() -> None:
    op.create_table(
        "application",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.BigInteger(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("icon", sa.Text(), nullable=False, server_default=""),
        sa.Column("repo_fullname", sa.String(), nullable=False, server_default=""),
        sa.Column("vcs_server", sa.String(), nullable=False, server_default=""),
        sa.Column("vcs_connection_type", sa.String(), nullable=False, server_default="https"),
        sa.Column("vcs_user", sa.String(), nullable=False, server_default=""),
        sa.Column("vcs_ssh_key", sa.String(), nullable=False, server_default=""),
        sa.Column("vcs_pgp_key", sa.String(), nullable=False, server_default=""),
        sa.Column("vcs_branch", sa.String(), nullable=False, server_default=""),
        sa.Column("vcs_cipher_password", sa.Text(), nullable=True),
        sa.Column("from_repository", sa.String(), nullable=False, server_default=""),
        sa.Column("metadata_json", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("last_modified", sa.DateTime(timezone=True), server_default=sa.func.now()),
        *_signed_columns(),
        sa.UniqueConstraint("project_id", "name", name="uq_application_project_name"),
    )
    op.create_index("ix_application_project_id", "application", ["project_id"])
    op.create_index("ix_application_project_repository", "application", ["project_id", "from_repository"])

    op.create_table(
        "application_variable",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("application_id", sa.BigInteger(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=False, server_default="string"),
        sa.Column("clear_value", sa.Text(), nullable=False, server_default=""),
        sa.Column("cipher_value", sa.Text(), nullable=True),
        *_signed_columns(),
        sa.UniqueConstraint("application_id", "name", name="uq_application_variable_name"),
    )
    op.create_index("ix_application_variable_application_id", "application_variable", ["application_id"])

    op.create_table(
        "application_key",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("application_id", sa.BigInteger(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("public", sa.Text(), nullable=False, server_default=""),
        sa.Column("key_id", sa.String(), nullable=False, server_default=""),
        sa.Column("cipher_private", sa.Text(), nullable=True),
        *_signed_columns(),
        sa.UniqueConstraint("application_id", "name", name="uq_application_key_name"),
    )
    op.create_index("ix_application_key_application_id", "application_key", ["application_id"])

    op.create_table(
        "application_deployment_strategy",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("application_id", sa.BigInteger(), nullable=False),
        sa.Column("integration_name", sa.String(), nullable=False),
        sa.Column("config", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("cipher_config", sa.Text(), nullable=True),
        *_signed_columns(),
        sa.UniqueConstraint(
            "application_id",
            "integration_name",
            name="uq_application_deployment_strategy_integration",
        ),
    )
    op.create_index(
        "ix_application_deployment_strategy_application_id",
        "application_deployment_strategy",
        ["application_id"],
    )

    # No foreign keys: audit history outlives the variable and the application.
    op.create_table(
        "application_variable_audit",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("application_id", sa.BigInteger(), nullable=False),
        sa.Column("variable_id", sa.BigInteger(), nullable=True),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("author", sa.String(), nullable=False),
        sa.Column("variable_before", postgresql.JSONB(), nullable=True),
        sa.Column("variable_after", postgresql.JSONB(), nullable=True),
        sa.Column("versioned_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_application_variable_audit_app_var",
        "application_variable_audit",
        ["application_id", "variable_id"],
    )
    op.create_index(
        "ix_application_variable_audit_versioned_at",
        "application_variable_audit",
        ["versioned_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_application_variable_audit_versioned_at", table_name="application_variable_audit")
    op.drop_index("ix_application_variable_audit_app_var", table_name="application_variable_audit")
    op.drop_table("application_variable_audit")
    op.drop_index(
        "ix_application_deployment_strategy_application_id",
        table_name="application_deployment_strategy",
    )
    op.drop_table("application_deployment_strategy")
    op.drop_index("ix_application_key_application_id", table_name="application_key")
    op.drop_table("application_key")
    op.drop_index("ix_application_variable_application_id", table_name="application_variable")
    op.drop_table("application_variable")
    op.drop_index("ix_application_project_repository", table_name="application")
    op.drop_index("ix_application_project_id", table_name="application")
    op.drop_table("application")
