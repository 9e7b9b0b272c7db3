"""identity matching and reward claim tables"""

from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261018_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


GRADES = ("STAFF", "VVIP", "VIP", "MEMBER", "NEW")
MEMBER_STATUSES = ("ACTIVE", "WATCH", "WARNING", "BLOCKED")
SURVEY_STATUSES = ("draft", "recruiting", "in_progress", "completed", "closed")
CLAIM_STATUSES = ("pending_approval", "approved", "paid", "rejected")
APPLICATION_STATUSES = ("PENDING", "APPROVED", "WAITLIST", "REJECTED", "CANCELLED")


def _timestamp(name: str, *, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()"))


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="member"),
        _timestamp("created_at"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "members",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("member_code", sa.String(length=16), nullable=True, unique=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True, unique=True),
        sa.Column("phone", sa.String(length=32), nullable=True, unique=True),
        sa.Column("birth_year", sa.Integer(), nullable=True),
        sa.Column("hometown", sa.Text(), nullable=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
            unique=True,
        ),
        sa.Column("grade", sa.Enum(*GRADES, name="member_grade_enum"), nullable=False, server_default="NEW"),
        sa.Column(
            "status",
            sa.Enum(*MEMBER_STATUSES, name="member_status_enum"),
            nullable=False,
            server_default="ACTIVE",
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_members_name", "members", ["name"])

    op.create_table(
        "member_stats",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "member_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("members.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("attendance_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_programs", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("no_show_count", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "lab_surveys",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*SURVEY_STATUSES, name="lab_survey_status_enum"),
            nullable=False,
            server_default="draft",
        ),
        sa.Column("reward_amount", sa.Integer(), nullable=True),
        _timestamp("created_at"),
    )

    op.create_table(
        "reward_claims",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "survey_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("lab_surveys.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("real_name", sa.String(), nullable=False),
        sa.Column("phone_number", sa.String(length=32), nullable=False),
        sa.Column("bank_code", sa.String(length=16), nullable=False),
        sa.Column("bank_name", sa.String(), nullable=False),
        sa.Column("account_number", sa.String(length=64), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=False),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("flagged", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("flag_reason", sa.Text(), nullable=True),
        sa.Column("flag_codes", sa.JSON(), nullable=True),
        sa.Column("risk_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "status",
            sa.Enum(*CLAIM_STATUSES, name="reward_claim_status_enum"),
            nullable=False,
            server_default="pending_approval",
        ),
        _timestamp("created_at"),
        _timestamp("paid_at", nullable=True),
        sa.UniqueConstraint("survey_id", "user_id", name="uq_reward_claims_survey_user"),
    )
    op.create_index(
        "ix_reward_claims_survey_ip_created",
        "reward_claims",
        ["survey_id", "ip_address", "created_at"],
    )
    op.create_index("ix_reward_claims_account_number", "reward_claims", ["account_number"])
    op.create_index("ix_reward_claims_phone_number", "reward_claims", ["phone_number"])
    op.create_index("ix_reward_claims_ip_created", "reward_claims", ["ip_address", "created_at"])

    op.create_table(
        "programs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("application_open", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("max_participants", sa.Integer(), nullable=True),
        sa.Column("auto_reject_blocked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("auto_approve_vip", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("auto_approve_vvip", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("created_at"),
    )

    op.create_table(
        "program_applications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "program_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("programs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=False),
        sa.Column("birth_year", sa.Integer(), nullable=True),
        sa.Column("hometown", sa.Text(), nullable=True),
        sa.Column("motivation", sa.Text(), nullable=True),
        sa.Column(
            "matched_member_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("members.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("matched_member_code", sa.String(length=16), nullable=True),
        sa.Column(
            "member_grade",
            postgresql.ENUM(*GRADES, name="member_grade_enum", create_type=False),
            nullable=True,
        ),
        sa.Column(
            "member_status",
            postgresql.ENUM(*MEMBER_STATUSES, name="member_status_enum", create_type=False),
            nullable=True,
        ),
        sa.Column("match_type", sa.String(length=16), nullable=True),
        sa.Column("alert_level", sa.String(length=16), nullable=False, server_default="NONE"),
        sa.Column(
            "status",
            sa.Enum(*APPLICATION_STATUSES, name="application_status_enum"),
            nullable=False,
            server_default="PENDING",
        ),
        _timestamp("created_at"),
    )
    op.create_index("ix_program_applications_program_id", "program_applications", ["program_id"])

    op.create_table(
        "admin_notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        _timestamp("created_at"),
        _timestamp("read_at", nullable=True),
    )
    op.create_index("ix_admin_notifications_type", "admin_notifications", ["type"])


def downgrade() -> None:
    op.drop_index("ix_admin_notifications_type", table_name="admin_notifications")
    op.drop_table("admin_notifications")
    op.drop_index("ix_program_applications_program_id", table_name="program_applications")
    op.drop_table("program_applications")
    op.drop_table("programs")
    op.drop_index("ix_reward_claims_ip_created", table_name="reward_claims")
    op.drop_index("ix_reward_claims_phone_number", table_name="reward_claims")
    op.drop_index("ix_reward_claims_account_number", table_name="reward_claims")
    op.drop_index("ix_reward_claims_survey_ip_created", table_name="reward_claims")
    op.drop_table("reward_claims")
    op.drop_table("lab_surveys")
    op.drop_table("member_stats")
    op.drop_index("ix_members_name", table_name="members")
    op.drop_table("members")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_name in (
        "application_status_enum",
        "reward_claim_status_enum",
        "lab_survey_status_enum",
        "member_status_enum",
        "member_grade_enum",
    ):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
