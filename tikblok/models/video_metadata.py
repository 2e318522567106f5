from beanie import Document
from typing import Optional
from datetime import datetime
from pydantic import Field
from pymongo import ASCENDING, IndexModel

COMMENT_SUMMARY_KEY = "commentSummary"


class VideoMetadataEntry(Document):
    """Per-video derived metadata, one document per (video_id, key)"""

    video_id: str
    key: str = COMMENT_SUMMARY_KEY

    summary: str = ""
    # Assigned by the server with $currentDate on every write
    updated_at: Optional[datetime] = None
    comment_count: int = 0
    stats: dict = Field(default_factory=dict)

    class Settings:
        name = "video_metadata"
        indexes = [
            IndexModel([("video_id", ASCENDING), ("key", ASCENDING)], unique=True),
        ]
