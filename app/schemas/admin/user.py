from typing import Annotated, Optional

from pydantic import EmailStr, Field

from app.core.enum import UserRole
from app.schemas.base import RequestModel


class CreateUser(RequestModel):
    name: Annotated[str, Field(min_length=1)]
    email: EmailStr
    # falls back to the default password when omitted
    password: Optional[Annotated[str, Field(min_length=1, max_length=72)]] = None
    role: UserRole
    department: Optional[str] = None
    can_switch_to_learner_view: Optional[bool] = None


class UpdateUser(RequestModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[Annotated[str, Field(max_length=72)]] = None
    role: Optional[UserRole] = None
    department: Optional[str] = None
    can_switch_to_learner_view: Optional[bool] = None


class AssignLearner(RequestModel):
    manager_id: str
    learner_id: str


class AssignCourse(RequestModel):
    learner_id: str
    course_id: str
