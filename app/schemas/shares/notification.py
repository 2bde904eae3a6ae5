from datetime import datetime
from typing import List, Optional

from pydantic import Field

from app.core.enum import NotificationType, UserRole
from app.schemas.base import RequestModel


class NotificationCreateSchema(RequestModel):
    type: NotificationType
    message: str = Field(min_length=1)
    target_roles: List[UserRole]
    expires_at: Optional[datetime] = None
