from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID

from unipivot_api.db.base import Base, utcnow


class UserRoleEnum(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    email = Column(String, nullable=False, unique=True, index=True)
    display_name = Column(String, nullable=True)
    phone_number = Column(String(32), nullable=True)
    role = Column(String(length=16), nullable=False, default=UserRoleEnum.MEMBER.value, server_default=UserRoleEnum.MEMBER.value)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
