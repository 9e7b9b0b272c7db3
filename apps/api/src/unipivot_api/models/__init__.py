"""SQLAlchemy models package."""

from .user import User, UserRoleEnum  # noqa: F401
from .member import Member, MemberGradeEnum, MemberStats, MemberStatusEnum  # noqa: F401
from .notification import AdminNotification, AdminNotificationTypeEnum  # noqa: F401
from .program import ApplicationStatusEnum, Program, ProgramApplication  # noqa: F401
from .reward_claim import (  # noqa: F401
    LabSurvey,
    LabSurveyStatusEnum,
    RewardClaim,
    RewardClaimStatusEnum,
)
