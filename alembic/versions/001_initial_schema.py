"""Initial schema.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-16

Creates the StudyHub schema:
- Extensions: uuid-ossp
- Tables: users, auth_identities, folders, documents, study_plans,
  lesson_contents, user_progress
- Triggers: updated_at auto-update on users and user_progress
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UUID = postgresql.UUID(as_uuid=True)
TIMESTAMPTZ = postgresql.TIMESTAMP(timezone=True)


def _id_column() -> sa.Column:
    return sa.Column("id", UUID, server_default=sa.text("uuid_generate_v4()"), nullable=False)


def _created_at_column() -> sa.Column:
    return sa.Column("created_at", TIMESTAMPTZ, server_default=sa.text("NOW()"), nullable=False)


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ==========================================================================
    # USERS & AUTH
    # ==========================================================================
    op.create_table(
        "users",
        _id_column(),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        _created_at_column(),
        sa.Column("updated_at", TIMESTAMPTZ, server_default=sa.text("NOW()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "auth_identities",
        _id_column(),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("provider_user_id", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        _created_at_column(),
        sa.Column("last_login_at", TIMESTAMPTZ, server_default=sa.text("NOW()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("provider", "provider_user_id", name="unique_provider_identity"),
    )
    op.create_index("ix_auth_identities_user_id", "auth_identities", ["user_id"])
    op.create_index(
        "idx_auth_identities_provider_lookup", "auth_identities", ["provider", "provider_user_id"]
    )

    # ==========================================================================
    # FOLDERS & DOCUMENTS
    # ==========================================================================
    op.create_table(
        "folders",
        _id_column(),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        _created_at_column(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_folders_user_id", "folders", ["user_id"])

    op.create_table(
        "documents",
        _id_column(),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("folder_id", UUID, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("size", sa.BigInteger(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("path", sa.Text(), nullable=False),
        sa.Column("content_type", sa.Text(), nullable=True),
        _created_at_column(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["folder_id"], ["folders.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("path"),
    )
    op.create_index("idx_documents_folder_id", "documents", ["folder_id"])
    op.create_index("idx_documents_user_id", "documents", ["user_id"])

    # ==========================================================================
    # GENERATED CONTENT
    # ==========================================================================
    op.create_table(
        "study_plans",
        _id_column(),
        sa.Column("folder_id", UUID, nullable=False),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at_column(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["folder_id"], ["folders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("folder_id", "user_id", name="unique_folder_user_study_plan"),
    )

    op.create_table(
        "lesson_contents",
        _id_column(),
        sa.Column("folder_id", UUID, nullable=False),
        sa.Column("lesson_id", sa.Text(), nullable=False),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at_column(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["folder_id"], ["folders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "folder_id", "lesson_id", "user_id", name="unique_folder_lesson_user_content"
        ),
    )

    # ==========================================================================
    # PROGRESS
    # ==========================================================================
    op.create_table(
        "user_progress",
        _id_column(),
        sa.Column("user_id", UUID, nullable=False),
        sa.Column("folder_id", UUID, nullable=False),
        sa.Column("chapter_title", sa.Text(), nullable=False),
        sa.Column("lesson_title", sa.Text(), nullable=False),
        sa.Column("lesson_id", sa.Text(), nullable=False),
        sa.Column("completed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("updated_at", TIMESTAMPTZ, server_default=sa.text("NOW()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["folder_id"], ["folders.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "user_id", "folder_id", "chapter_title", "lesson_title",
            name="unique_user_folder_lesson_progress",
        ),
    )
    op.create_index("idx_user_progress_folder", "user_progress", ["user_id", "folder_id"])

    # ==========================================================================
    # UPDATED_AT TRIGGER FUNCTION
    # ==========================================================================
    op.execute("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)

    for table in ["users", "user_progress"]:
        op.execute(f"""
            CREATE TRIGGER update_{table}_updated_at
                BEFORE UPDATE ON {table}
                FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();
        """)


def downgrade() -> None:
    for table in ["users", "user_progress"]:
        op.execute(f"DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table}")

    op.execute("DROP FUNCTION IF EXISTS update_updated_at_column()")

    # Drop tables in reverse dependency order
    op.drop_table("user_progress")
    op.drop_table("lesson_contents")
    op.drop_table("study_plans")
    op.drop_table("documents")
    op.drop_table("folders")
    op.drop_table("auth_identities")
    op.drop_table("users")
