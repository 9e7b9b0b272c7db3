"""Lab survey rewards and the claims filed against them."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID

from unipivot_api.db.base import Base, utcnow


class LabSurveyStatusEnum(str, Enum):
    DRAFT = "draft"
    RECRUITING = "recruiting"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CLOSED = "closed"


class LabSurvey(Base):
    """Research survey that pays a fixed reward to each participant."""

    __tablename__ = "lab_surveys"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    title = Column(String, nullable=False)
    status = Column(
        SqlEnum(
            LabSurveyStatusEnum,
            name="lab_survey_status_enum",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=LabSurveyStatusEnum.DRAFT,
        server_default=LabSurveyStatusEnum.DRAFT.value,
    )
    reward_amount = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    @property
    def accepts_claims(self) -> bool:
        return self.status in {LabSurveyStatusEnum.COMPLETED, LabSurveyStatusEnum.CLOSED}


class RewardClaimStatusEnum(str, Enum):
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    PAID = "paid"
    REJECTED = "rejected"


class RewardClaim(Base):
    """Immutable record of an accepted claim, including its risk assessment."""

    __tablename__ = "reward_claims"
    __table_args__ = (
        UniqueConstraint("survey_id", "user_id", name="uq_reward_claims_survey_user"),
        Index("ix_reward_claims_survey_ip_created", "survey_id", "ip_address", "created_at"),
        Index("ix_reward_claims_account_number", "account_number"),
        Index("ix_reward_claims_phone_number", "phone_number"),
        Index("ix_reward_claims_ip_created", "ip_address", "created_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    survey_id = Column(UUID(as_uuid=True), ForeignKey("lab_surveys.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    real_name = Column(String, nullable=False)
    phone_number = Column(String(32), nullable=False)
    bank_code = Column(String(16), nullable=False)
    bank_name = Column(String, nullable=False)
    account_number = Column(String(64), nullable=False)
    amount = Column(Integer, nullable=False)
    ip_address = Column(String(64), nullable=False)
    user_agent = Column(Text, nullable=True)
    flagged = Column(Boolean, nullable=False, default=False, server_default="0")
    flag_reason = Column(Text, nullable=True)
    flag_codes = Column(JSON, nullable=True)
    risk_score = Column(Integer, nullable=False, default=0, server_default="0")
    status = Column(
        SqlEnum(
            RewardClaimStatusEnum,
            name="reward_claim_status_enum",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=RewardClaimStatusEnum.PENDING_APPROVAL,
        server_default=RewardClaimStatusEnum.PENDING_APPROVAL.value,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)
