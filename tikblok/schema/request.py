from pydantic import BaseModel, Field
from typing import Any


class VideoSearchRequest(BaseModel):
    # Type is checked by the controller so that a non-string query is an invalid-argument error
    query: Any = Field(default=None, description="Free-text query")
    limit: int = Field(default=10, ge=1, le=100)
