from pydantic import BaseModel, Field
from typing import Annotated, Dict, Literal, Optional, Union

from tikblok.schema.interface import CommentStats


class SummarySkipped(BaseModel):
    status: Literal["skipped"] = "skipped"
    video_id: str
    reason: str
    elapsed_seconds: Optional[float] = None


class SummaryUpdated(BaseModel):
    status: Literal["updated"] = "updated"
    video_id: str
    comment_count: int
    summary_length: int
    stats: CommentStats
    token_usage: Dict[str, int] = Field(default_factory=dict)
    processing_time_ms: float = 0.0


class SummaryRemoved(BaseModel):
    status: Literal["removed"] = "removed"
    video_id: str


class SummaryFailed(BaseModel):
    status: Literal["failed"] = "failed"
    video_id: str
    error: str
    error_type: str


SummaryOutcome = Annotated[
    Union[SummarySkipped, SummaryUpdated, SummaryRemoved, SummaryFailed],
    Field(discriminator="status"),
]
