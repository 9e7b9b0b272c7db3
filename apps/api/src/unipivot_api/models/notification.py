from enum import Enum
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, String, Text, func
from sqlalchemy.dialects.postgresql import UUID

from unipivot_api.db.base import Base, utcnow


class AdminNotificationTypeEnum(str, Enum):
    REWARD_CLAIM_FLAGGED = "REWARD_CLAIM_FLAGGED"
    ALERT_APPLICATION = "ALERT_APPLICATION"


class AdminNotification(Base):
    __tablename__ = "admin_notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    type = Column(String(32), nullable=False, index=True)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
