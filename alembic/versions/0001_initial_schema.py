"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("avatar", sa.String(length=255)),
        sa.Column("bio", sa.String(length=500)),
        sa.Column("is_active", sa.Boolean()),
        sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP()),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "chats",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("participant_a_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("participant_b_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("last_message_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(), server_default=sa.func.now()),
        sa.CheckConstraint("participant_a_id < participant_b_id", name="ck_chats_participant_order"),
    )
    op.create_index("ix_chats_id", "chats", ["id"])
    op.create_index("ix_chats_participant_a_id", "chats", ["participant_a_id"])
    op.create_index("ix_chats_participant_b_id", "chats", ["participant_b_id"])
    op.create_index("ix_chats_updated_at", "chats", ["updated_at"])
    op.create_index(
        "uq_chats_active_pair",
        "chats",
        ["participant_a_id", "participant_b_id"],
        unique=True,
        sqlite_where=sa.text("is_active = 1"),
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("chat_id", sa.Integer(), sa.ForeignKey("chats.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sender_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.String(length=1000), nullable=False),
        sa.Column("message_type", sa.String(length=20), nullable=False),
        sa.Column("file_url", sa.String(length=500)),
        sa.Column("is_delivered", sa.Boolean(), nullable=False),
        sa.Column("is_seen", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(), server_default=sa.func.now()),
    )
    op.create_index("ix_messages_id", "messages", ["id"])
    op.create_index("ix_messages_chat_id", "messages", ["chat_id"])
    op.create_index("ix_messages_sender_id", "messages", ["sender_id"])
    op.create_index("ix_messages_is_delivered", "messages", ["is_delivered"])

    with op.batch_alter_table("chats") as batch_op:
        batch_op.create_foreign_key(
            "fk_chats_last_message",
            "messages",
            ["last_message_id"],
            ["id"],
            ondelete="SET NULL",
        )

    op.create_table(
        "message_reads",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("message_id", sa.Integer(), sa.ForeignKey("messages.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("read_at", sa.TIMESTAMP(), nullable=False),
        sa.UniqueConstraint("message_id", "user_id", name="uq_message_reads_message_user"),
    )
    op.create_index("ix_message_reads_id", "message_reads", ["id"])
    op.create_index("ix_message_reads_message_id", "message_reads", ["message_id"])
    op.create_index("ix_message_reads_user_id", "message_reads", ["user_id"])

    op.create_table(
        "sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("mentor_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("mentee_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("session_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=10), nullable=False),
        sa.Column("end_time", sa.String(length=10), nullable=False),
        sa.Column("session_type", sa.String(length=100), nullable=False),
        sa.Column("price", sa.Float()),
        sa.Column("duration", sa.Integer()),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("verification_status", sa.String(length=30), nullable=False),
        sa.Column("notes", sa.Text()),
        sa.Column("meet_link", sa.String(length=500)),
        sa.Column("rating", sa.Integer()),
        sa.Column("feedback", sa.Text()),
        sa.Column("cancellation_reason", sa.String(length=500)),
        sa.Column("mentor_approved", sa.Boolean(), nullable=False),
        sa.Column("mentor_approved_at", sa.TIMESTAMP()),
        sa.Column("mentor_approval_notes", sa.Text()),
        sa.Column("mentee_approved", sa.Boolean(), nullable=False),
        sa.Column("mentee_approved_at", sa.TIMESTAMP()),
        sa.Column("mentee_approval_notes", sa.Text()),
        sa.Column("skill_claims", sa.JSON()),
        sa.Column("actual_duration", sa.Integer()),
        sa.Column("completed_at", sa.TIMESTAMP()),
        sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(), server_default=sa.func.now()),
    )
    op.create_index("ix_sessions_id", "sessions", ["id"])
    op.create_index("ix_sessions_mentor_id", "sessions", ["mentor_id"])
    op.create_index("ix_sessions_mentee_id", "sessions", ["mentee_id"])
    op.create_index("ix_sessions_status", "sessions", ["status"])

    op.create_table(
        "skills",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("name_key", sa.String(length=100), nullable=False),
        sa.Column("category", sa.String(length=50)),
        sa.Column("proficiency", sa.String(length=20)),
        sa.Column("description", sa.Text()),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("acquired_at", sa.TIMESTAMP()),
        sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "name_key", name="uq_skills_user_name"),
    )
    op.create_index("ix_skills_id", "skills", ["id"])
    op.create_index("ix_skills_user_id", "skills", ["user_id"])

    op.create_table(
        "goals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=30)),
        sa.Column("priority", sa.String(length=10)),
        sa.Column("target_date", sa.Date(), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("skills", sa.JSON()),
        sa.Column("estimated_hours", sa.Float()),
        sa.Column("actual_hours", sa.Float()),
        sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP(), server_default=sa.func.now()),
    )
    op.create_index("ix_goals_id", "goals", ["id"])
    op.create_index("ix_goals_user_id", "goals", ["user_id"])

    op.create_table(
        "skill_sessions",
        sa.Column("skill_id", sa.Integer(), sa.ForeignKey("skills.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("sessions.id", ondelete="CASCADE"), primary_key=True),
    )
    op.create_table(
        "skill_goals",
        sa.Column("skill_id", sa.Integer(), sa.ForeignKey("skills.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("goal_id", sa.Integer(), sa.ForeignKey("goals.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "progress_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(length=30), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("value", sa.Integer()),
        sa.Column("metrics", sa.JSON()),
        sa.Column("skills", sa.JSON()),
        sa.Column("related_session_id", sa.Integer(), sa.ForeignKey("sessions.id", ondelete="SET NULL")),
        sa.Column("related_goal_id", sa.Integer(), sa.ForeignKey("goals.id", ondelete="SET NULL")),
        sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.func.now()),
    )
    op.create_index("ix_progress_entries_id", "progress_entries", ["id"])
    op.create_index("ix_progress_entries_user_id", "progress_entries", ["user_id"])
    op.create_index("ix_progress_entries_type", "progress_entries", ["type"])


def downgrade() -> None:
    op.drop_table("progress_entries")
    op.drop_table("skill_goals")
    op.drop_table("skill_sessions")
    op.drop_table("goals")
    op.drop_table("skills")
    op.drop_table("sessions")
    op.drop_table("message_reads")
    with op.batch_alter_table("chats") as batch_op:
        batch_op.drop_constraint("fk_chats_last_message", type_="foreignkey")
    op.drop_table("messages")
    op.drop_table("chats")
    op.drop_table("users")
