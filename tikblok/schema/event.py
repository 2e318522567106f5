from pydantic import BaseModel, Field
from typing import Any, Dict, Literal, Optional, Union

from tikblok.schema.interface import VideoInterface


class DocumentWriteEvent(BaseModel):
    """A document write as seen by a trigger: snapshots around the write plus path params"""
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    params: Dict[str, str] = Field(default_factory=dict)
    operation: Optional[str] = None


class UpsertVideo(BaseModel):
    kind: Literal["upsert"] = "upsert"
    video: VideoInterface


class DeleteVideo(BaseModel):
    kind: Literal["delete"] = "delete"
    video_id: str


class NoOp(BaseModel):
    kind: Literal["noop"] = "noop"


VideoEffect = Union[UpsertVideo, DeleteVideo, NoOp]
