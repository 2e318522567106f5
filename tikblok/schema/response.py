from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class VideoSearchResult(BaseModel):
    id: str = Field(..., description="Video id")
    score: float = Field(..., description="Similarity score")
    metadata: Dict[str, Any] = Field(default_factory=dict)


class VideoSearchResponse(BaseModel):
    results: List[VideoSearchResult]


class ReindexResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_processed: int = Field(..., alias="totalProcessed")
    message: str


class VideoReindexResponse(BaseModel):
    id: str
    message: str


class CommentSummaryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    video_id: str = Field(..., alias="videoId")
    summary: str
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")
    comment_count: int = Field(0, alias="commentCount")
    stats: Dict[str, int] = Field(default_factory=dict)
