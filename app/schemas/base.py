from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class RequestModel(BaseModel):
    """Request body read in the client's camelCase; unknown keys are rejected."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "forbid"
