from typing import Annotated, Optional

from pydantic import Field

from app.schemas.base import RequestModel


class ProfileUpdate(RequestModel):
    name: Optional[Annotated[str, Field(min_length=2)]] = None
    department: Optional[str] = None
    avatar: Optional[str] = None
