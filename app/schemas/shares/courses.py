from typing import List, Optional

from pydantic import Field

from app.core.enum import CourseLevel, ModuleType
from app.schemas.base import RequestModel


class QuizQuestionIn(RequestModel):
    id: Optional[str] = None
    question: str
    options: List[str]
    correct_answer: int = Field(ge=0)


class ModuleIn(RequestModel):
    # ids are kept when a course's modules are rewritten
    id: Optional[str] = None
    title: str
    type: ModuleType
    content: str = ""
    slides_url: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0)
    questions: Optional[List[QuizQuestionIn]] = None
    completed: Optional[bool] = None


class CreateCourse(RequestModel):
    title: str = Field(min_length=1)
    description: str = ""
    thumbnail: str = ""
    instructor: str = ""
    category: str = "General"
    duration: str = ""
    cpd_points: int = Field(default=0, ge=0)
    rating: float = Field(default=0, ge=0)
    enrolled_count: int = Field(default=0, ge=0)
    level: CourseLevel = CourseLevel.BEGINNER
    assigned_manager_id: Optional[str] = None
    modules: List[ModuleIn] = []


class UpdateCourse(RequestModel):
    """Partial update; only keys present in the body are applied."""

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    instructor: Optional[str] = None
    category: Optional[str] = None
    duration: Optional[str] = None
    cpd_points: Optional[int] = Field(default=None, ge=0)
    rating: Optional[float] = Field(default=None, ge=0)
    enrolled_count: Optional[int] = Field(default=None, ge=0)
    level: Optional[CourseLevel] = None
    assigned_manager_id: Optional[str] = None
    modules: Optional[List[ModuleIn]] = None


class ImportCourseText(RequestModel):
    text: str
