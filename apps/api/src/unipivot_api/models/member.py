"""Member registry consulted by the identity resolver."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    Column,
    DateTime,
    Enum as SqlEnum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from unipivot_api.db.base import Base, utcnow


class MemberGradeEnum(str, Enum):
    """Ranked member tiers, highest first."""

    STAFF = "STAFF"
    VVIP = "VVIP"
    VIP = "VIP"
    MEMBER = "MEMBER"
    NEW = "NEW"

    @property
    def priority(self) -> int:
        return _GRADE_PRIORITY[self]


_GRADE_PRIORITY = {
    MemberGradeEnum.STAFF: 1,
    MemberGradeEnum.VVIP: 2,
    MemberGradeEnum.VIP: 3,
    MemberGradeEnum.MEMBER: 4,
    MemberGradeEnum.NEW: 5,
}


class MemberStatusEnum(str, Enum):
    """Moderator-assigned standing of a member."""

    ACTIVE = "ACTIVE"
    WATCH = "WATCH"
    WARNING = "WARNING"
    BLOCKED = "BLOCKED"


class Member(Base):
    """Verified individual. Email and phone are unique lookup keys."""

    __tablename__ = "members"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    member_code = Column(String(16), nullable=True, unique=True)
    name = Column(String, nullable=False, index=True)
    email = Column(String, nullable=True, unique=True)
    phone = Column(String(32), nullable=True, unique=True)
    birth_year = Column(Integer, nullable=True)
    hometown = Column(Text, nullable=True)
    # Account the member signed up with, if any
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True
    )
    grade = Column(
        SqlEnum(MemberGradeEnum, name="member_grade_enum"),
        nullable=False,
        default=MemberGradeEnum.NEW,
        server_default=MemberGradeEnum.NEW.value,
    )
    status = Column(
        SqlEnum(MemberStatusEnum, name="member_status_enum"),
        nullable=False,
        default=MemberStatusEnum.ACTIVE,
        server_default=MemberStatusEnum.ACTIVE.value,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    stats = relationship("MemberStats", back_populates="member", uselist=False, lazy="selectin")


class MemberStats(Base):
    """Aggregate participation statistics maintained by attendance imports."""

    __tablename__ = "member_stats"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    member_id = Column(
        UUID(as_uuid=True),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    attendance_rate = Column(Float, nullable=False, default=0.0, server_default="0")
    total_programs = Column(Integer, nullable=False, default=0, server_default="0")
    no_show_count = Column(Integer, nullable=False, default=0, server_default="0")

    member = relationship("Member", back_populates="stats")
