from beanie import Document, Indexed
from typing import Annotated
from datetime import datetime, timezone
from pydantic import Field


class Comment(Document):
    video_id: Annotated[str, Indexed()]
    text: str = ""
    author_id: str = ""
    like_count: int = 0
    reply_count: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "comments"
        indexes = [
            [("video_id", 1), ("like_count", -1)],
        ]
