"""Programs and the applications submitted to them."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from unipivot_api.db.base import Base, utcnow
from unipivot_api.models.member import MemberGradeEnum, MemberStatusEnum


class Program(Base):
    """A bookclub, seminar or workshop that accepts applications."""

    __tablename__ = "programs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    title = Column(String, nullable=False)
    application_open = Column(Boolean, nullable=False, default=True, server_default="1")
    max_participants = Column(Integer, nullable=True)
    auto_reject_blocked = Column(Boolean, nullable=False, default=False, server_default="0")
    auto_approve_vip = Column(Boolean, nullable=False, default=False, server_default="0")
    auto_approve_vvip = Column(Boolean, nullable=False, default=False, server_default="0")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    applications = relationship("ProgramApplication", back_populates="program")


class ApplicationStatusEnum(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    WAITLIST = "WAITLIST"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class ProgramApplication(Base):
    """Application record; carries the identity match outcome for audit."""

    __tablename__ = "program_applications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    program_id = Column(UUID(as_uuid=True), ForeignKey("programs.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String(32), nullable=False)
    birth_year = Column(Integer, nullable=True)
    hometown = Column(Text, nullable=True)
    motivation = Column(Text, nullable=True)

    matched_member_id = Column(UUID(as_uuid=True), ForeignKey("members.id", ondelete="SET NULL"), nullable=True)
    matched_member_code = Column(String(16), nullable=True)
    member_grade = Column(SqlEnum(MemberGradeEnum, name="member_grade_enum"), nullable=True)
    member_status = Column(SqlEnum(MemberStatusEnum, name="member_status_enum"), nullable=True)
    match_type = Column(String(16), nullable=True)
    alert_level = Column(String(16), nullable=False, default="NONE", server_default="NONE")

    status = Column(
        SqlEnum(ApplicationStatusEnum, name="application_status_enum"),
        nullable=False,
        default=ApplicationStatusEnum.PENDING,
        server_default=ApplicationStatusEnum.PENDING.value,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    program = relationship("Program", back_populates="applications")
