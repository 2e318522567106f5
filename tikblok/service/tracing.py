"""
Optional Langfuse tracing of comment summaries.

With both Langfuse keys configured every summarization is recorded as one
trace: video context and cooldown state as metadata, a span for the comment
fetch, a generation for the model call, and the final status as output.
Without keys the service gets ``NO_TRACE``, whose methods do nothing.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from langfuse import Langfuse

from tikblok.core.logger import SimpleLogger
from tikblok.core.settings import AppSettings
from tikblok.schema.interface import VideoInterface

logger = SimpleLogger(__name__)

TRACE_NAME = "Comment Summary Generation"
FETCH_SPAN_NAME = "Fetch Comments"
GENERATION_NAME = "Comment Summary"


def build_langfuse(settings: AppSettings) -> Optional[Langfuse]:
    if not (settings.LANGFUSE_PUBLIC_KEY and settings.LANGFUSE_SECRET_KEY):
        logger.info("Langfuse keys not configured, comment summary tracing disabled")
        return None
    logger.info("Langfuse tracing enabled for comment summaries")
    return Langfuse(
        public_key=settings.LANGFUSE_PUBLIC_KEY,
        secret_key=settings.LANGFUSE_SECRET_KEY,
        host=settings.LANGFUSE_HOST,
    )


class NoOpObservation:
    """Stands in for a Langfuse trace, span or generation when tracing is off"""

    def update(self, **kwargs: Any) -> "NoOpObservation":
        return self

    def end(self, **kwargs: Any) -> "NoOpObservation":
        return self

    def span(self, **kwargs: Any) -> "NoOpObservation":
        return self

    def generation(self, **kwargs: Any) -> "NoOpObservation":
        return self


NO_TRACE = NoOpObservation()


def start_summary_trace(
    client: Optional[Langfuse],
    video_id: str,
    comment_id: Optional[str] = None,
    operation: Optional[str] = None,
    video: Optional[VideoInterface] = None,
    now: Optional[datetime] = None,
):
    if client is None:
        return NO_TRACE

    now = now or datetime.now(timezone.utc)
    tags = ["function:comment_summary", f"video:{video_id}"]
    if operation:
        tags.append(operation)

    return client.trace(
        id=f"comment-summary-{video_id}-{int(now.timestamp() * 1000)}",
        name=TRACE_NAME,
        metadata={
            "videoId": video_id,
            "triggerCommentId": comment_id,
            "videoTitle": video.title if video else None,
            "creatorId": video.creator_id if video else None,
            "creatorUsername": video.creator_username if video else None,
            "eventType": operation,
        },
        tags=tags,
    )


def generation_context(video: Optional[VideoInterface]) -> Dict[str, Any]:
    if video is None:
        return {}
    return {
        "title": video.title,
        "description": video.description[:100],
        "tags": list(video.tags),
    }


def langfuse_usage(token_usage: Dict[str, int]) -> Dict[str, int]:
    """Token counters in the input/output/total form Langfuse expects"""
    usage = {
        "input": token_usage.get("prompt_tokens"),
        "output": token_usage.get("completion_tokens"),
        "total": token_usage.get("total_tokens"),
    }
    return {key: value for key, value in usage.items() if value is not None}
