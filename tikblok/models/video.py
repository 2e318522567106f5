from beanie import Document
from typing import List, Optional
from datetime import datetime, timezone
from pydantic import Field


class Video(Document):
    """Video document written by the app; read-only for indexing"""

    # The document id is the video id and doubles as the vector entry id
    id: str = Field(..., description="Video id")

    title: str = ""
    description: str = ""
    tags: List[str] = Field(default_factory=list)

    # Media (filled in as thumbnails/captions get generated)
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    captions_url: Optional[str] = None
    duration_ms: int = 0

    creator_id: str = ""
    creator_username: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Engagement counters, mutated by the app
    like_count: int = 0
    comment_count: int = 0
    view_count: int = 0

    class Settings:
        name = "videos"
        indexes = [
            [("creator_id", 1), ("created_at", -1)],
        ]

    class Config:
        json_schema_extra = {
            "example": {
                "id": "v1",
                "title": "Diamond Find",
                "description": "Mining adventure",
                "tags": ["mining", "diamonds"],
                "video_url": "https://storage.example.com/videos/v1.mp4",
                "thumbnail_url": "https://storage.example.com/thumbnails/v1.jpg",
                "duration_ms": 31000,
                "creator_id": "u42",
                "creator_username": "steve",
                "like_count": 12,
                "comment_count": 3,
                "view_count": 400
            }
        }
