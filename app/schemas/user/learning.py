from datetime import datetime
from typing import Annotated, Dict, Optional, Union

from pydantic import Field

from app.schemas.base import RequestModel


class UpdateProgress(RequestModel):
    """Every field is optional; only the keys sent are written."""

    progress: Optional[Annotated[int, Field(ge=0, le=100)]] = None
    last_module_index: Optional[Annotated[int, Field(ge=0)]] = None
    last_video_time: Optional[Annotated[int, Field(ge=0)]] = None
    started_at: Optional[datetime] = None
    # explicit null clears the completion
    completed_at: Optional[datetime] = None
    quiz_scores: Optional[Dict[str, Union[int, float]]] = None


class CompleteCourse(RequestModel):
    course_id: str
    course_name: str
    cpd_points: Annotated[int, Field(ge=0)]


class SubmitAssignment(RequestModel):
    course_id: str
    module_id: str
    content: str
