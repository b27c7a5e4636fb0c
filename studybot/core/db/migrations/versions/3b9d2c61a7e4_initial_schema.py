"""initial schema: users, profiles, subjects, flashcard sets, daily usage

Revision ID: 3b9d2c61a7e4
Revises:
Create Date: 2026-10-18 10:12:41.508311

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3b9d2c61a7e4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


plan_type = sa.Enum("freemium", "premium", name="plantype")
generation_status = sa.Enum("pending", "completed", "failed", name="generationstatus")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("hashed_password", sa.String(length=1024), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_superuser", sa.Boolean(), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)

    op.create_table(
        "user_profiles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column("plan_type", plan_type, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_user_profiles_created_at"), "user_profiles", ["created_at"], unique=False
    )
    op.create_index(op.f("ix_user_profiles_id"), "user_profiles", ["id"], unique=False)
    op.create_index(
        op.f("ix_user_profiles_user_id"), "user_profiles", ["user_id"], unique=True
    )

    op.create_table(
        "subjects",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_subjects_created_at"), "subjects", ["created_at"], unique=False)
    op.create_index(op.f("ix_subjects_id"), "subjects", ["id"], unique=False)
    op.create_index(op.f("ix_subjects_user_id"), "subjects", ["user_id"], unique=False)

    op.create_table(
        "flashcard_sets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("subject_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("subject_label", sa.String(), nullable=True),
        sa.Column("original_notes", sa.Text(), nullable=False),
        sa.Column("cards", sa.JSON(), server_default=sa.text("'[]'"), nullable=False),
        sa.Column("status", generation_status, nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_flashcard_sets_created_at"), "flashcard_sets", ["created_at"], unique=False
    )
    op.create_index(op.f("ix_flashcard_sets_id"), "flashcard_sets", ["id"], unique=False)
    op.create_index(
        op.f("ix_flashcard_sets_status"), "flashcard_sets", ["status"], unique=False
    )
    op.create_index(
        op.f("ix_flashcard_sets_subject_id"), "flashcard_sets", ["subject_id"], unique=False
    )
    op.create_index(
        op.f("ix_flashcard_sets_user_id"), "flashcard_sets", ["user_id"], unique=False
    )

    op.create_table(
        "generation_usage",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("usage_date", sa.Date(), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "usage_date", name="uq_generation_usage_user_day"),
    )
    op.create_index(
        op.f("ix_generation_usage_user_id"), "generation_usage", ["user_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_generation_usage_user_id"), table_name="generation_usage")
    op.drop_table("generation_usage")
    op.drop_index(op.f("ix_flashcard_sets_user_id"), table_name="flashcard_sets")
    op.drop_index(op.f("ix_flashcard_sets_subject_id"), table_name="flashcard_sets")
    op.drop_index(op.f("ix_flashcard_sets_status"), table_name="flashcard_sets")
    op.drop_index(op.f("ix_flashcard_sets_id"), table_name="flashcard_sets")
    op.drop_index(op.f("ix_flashcard_sets_created_at"), table_name="flashcard_sets")
    op.drop_table("flashcard_sets")
    op.drop_index(op.f("ix_subjects_user_id"), table_name="subjects")
    op.drop_index(op.f("ix_subjects_id"), table_name="subjects")
    op.drop_index(op.f("ix_subjects_created_at"), table_name="subjects")
    op.drop_table("subjects")
    op.drop_index(op.f("ix_user_profiles_user_id"), table_name="user_profiles")
    op.drop_index(op.f("ix_user_profiles_id"), table_name="user_profiles")
    op.drop_index(op.f("ix_user_profiles_created_at"), table_name="user_profiles")
    op.drop_table("user_profiles")
    op.drop_index(op.f("ix_users_id"), table_name="users")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
    generation_status.drop(op.get_bind(), checkfirst=True)
    plan_type.drop(op.get_bind(), checkfirst=True)
