"""
Reactions to document writes.

The decision of what a video write means for the index is a pure function of the
snapshots around the write; the reactors apply that decision through the
services. Comment reactions absorb every failure into a logged outcome: nothing
waits on them, and the next comment write retries the work anyway.
"""

from typing import Any, Dict, Optional

from tikblok.core.logger import SimpleLogger
from tikblok.schema.event import (
    DocumentWriteEvent,
    VideoEffect,
    UpsertVideo,
    DeleteVideo,
    NoOp,
)
from tikblok.schema.interface import VideoInterface
from tikblok.schema.summary import SummaryOutcome, SummaryFailed
from tikblok.service.comment_summary_service import CommentSummaryService
from tikblok.service.video_index_service import VideoIndexService

logger = SimpleLogger(__name__)


def decide_video_effect(
    video_id: str,
    before: Optional[Dict[str, Any]],
    after: Optional[Dict[str, Any]],
) -> VideoEffect:
    if after is not None:
        return UpsertVideo(video=VideoInterface.from_document(after, video_id=video_id))
    if before is not None:
        return DeleteVideo(video_id=video_id)
    return NoOp()


class VideoWriteReactor:
    def __init__(self, video_index_service: VideoIndexService):
        self.video_index_service = video_index_service

    async def handle(self, event: DocumentWriteEvent) -> VideoEffect:
        video_id = event.params.get("videoId", "")
        effect = decide_video_effect(video_id, event.before, event.after)

        if isinstance(effect, UpsertVideo):
            await self.video_index_service.upsert_video(video_id, effect.video)
        elif isinstance(effect, DeleteVideo):
            await self.video_index_service.delete_video(effect.video_id)
        else:
            logger.debug(f"Ignoring video event without snapshots: {event.operation}")
        return effect


class CommentWriteReactor:
    def __init__(self, comment_summary_service: CommentSummaryService):
        self.comment_summary_service = comment_summary_service

    async def handle(self, event: DocumentWriteEvent) -> SummaryOutcome:
        video_id = event.params.get("videoId")
        comment_id = event.params.get("commentId", "")
        if not video_id:
            logger.warning(f"Comment event {comment_id} has no parent video id, ignoring")
            return SummaryFailed(video_id="", error="Missing parent video id", error_type="ValueError")

        logger.info(f"Processing comment update for video {video_id}, comment {comment_id}")
        outcome = await self.comment_summary_service.summarize(video_id, comment_id=comment_id, operation=event.operation)

        if isinstance(outcome, SummaryFailed):
            logger.error(
                f"Comment summary failed for video {video_id} ({outcome.error_type}): {outcome.error}"
            )
        else:
            logger.info(f"Comment summary for video {video_id}: {outcome.status}")
        return outcome
