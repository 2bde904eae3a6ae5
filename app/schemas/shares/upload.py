from pydantic import Field

from app.schemas.base import RequestModel


class WordToSlides(RequestModel):
    file_url: str = Field(..., min_length=1)
