from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


def to_epoch_millis(value: datetime | int | float | None) -> int:
    """Convert a stored timestamp to epoch milliseconds (naive datetimes are UTC)."""
    if value is None:
        return 0
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    return int(value)


class VideoInterface(BaseModel):
    id: str = Field(..., description="Video id, also the vector entry id")
    title: str = ""
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    captions_url: Optional[str] = None
    duration_ms: int = 0
    creator_id: str = ""
    creator_username: str = ""
    created_at: Optional[datetime] = None
    like_count: int = 0
    comment_count: int = 0
    view_count: int = 0

    @classmethod
    def from_document(cls, document: Dict[str, Any], video_id: str | None = None) -> "VideoInterface":
        """Build from a raw MongoDB document (``_id`` is the video id)."""
        data = {k: v for k, v in document.items() if k not in ("_id", "revision_id") and v is not None}
        data["id"] = str(video_id if video_id is not None else document["_id"])
        return cls(**data)


class VideoIndexMetadata(BaseModel):
    """Denormalized payload stored next to each video vector"""
    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: str
    thumbnail_url: str = Field("", alias="thumbnailUrl")
    creator_id: str = Field("", alias="creatorId")
    creator_username: str = Field("", alias="creatorUsername")
    created_at: int = Field(0, alias="createdAt", description="Epoch milliseconds")
    tags: List[str] = Field(default_factory=list)
    view_count: int = Field(0, alias="viewCount")
    like_count: int = Field(0, alias="likeCount")
    comment_count: int = Field(0, alias="commentCount")


class VectorEntry(BaseModel):
    id: str = Field(..., description="Entry id (video id)")
    embedding: List[float] = Field(..., description="Embedding vector")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Payload stored with the vector")


class MilvusSearchRequest(BaseModel):
    embedding: List[float] = Field(..., description="Query embedding vector")
    top_k: int = Field(default=10, ge=1, le=1000, description="Number of top results to return")
    namespace: Optional[str] = Field(default=None, description="Partition to search, defaults to the repository namespace")


class MilvusSearchResult(BaseModel):
    """Individual search result"""
    id_: str = Field(..., description="Primary key of the result")
    distance: float = Field(..., description="Similarity score")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Stored payload")


class MilvusSearchResponse(BaseModel):
    """Response model for vector search"""
    results: List[MilvusSearchResult] = Field(..., description="Search results")
    total_found: int = Field(..., description="Total number of results found")
    search_time_ms: Optional[float] = Field(default=None, description="Search execution time in milliseconds")


class CommentInterface(BaseModel):
    id: str = ""
    video_id: str
    text: str = ""
    like_count: int = 0
    reply_count: int = 0


class CommentStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_likes: int = Field(0, alias="totalLikes")
    avg_length: int = Field(0, alias="avgLength")
    with_replies: int = Field(0, alias="withReplies")
    max_likes: int = Field(0, alias="maxLikes")


class CommentSummaryInterface(BaseModel):
    video_id: str
    summary: str
    updated_at: Optional[datetime] = None
    comment_count: int = 0
    stats: CommentStats = Field(default_factory=CommentStats)
