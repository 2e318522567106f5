from typing import Any

from tikblok.core.exceptions import InvalidArgumentError, InternalError, NotFoundError
from tikblok.core.logger import SimpleLogger
from tikblok.repository.mongo import CommentSummaryRepository
from tikblok.schema.response import (
    VideoSearchResult,
    VideoSearchResponse,
    CommentSummaryResponse,
)
from tikblok.service.video_index_service import VideoIndexService

logger = SimpleLogger(__name__)


class SearchController:

    def __init__(
        self,
        video_index_service: VideoIndexService,
        comment_summary_repo: CommentSummaryRepository | None = None
    ):
        self.video_index_service = video_index_service
        self.comment_summary_repo = comment_summary_repo

    async def search(self, query: Any, limit: int = 10) -> VideoSearchResponse:
        if not isinstance(query, str) or not query.strip():
            raise InvalidArgumentError("Query must be a non-empty string")

        try:
            matches = await self.video_index_service.query_similar_videos(query, limit)
        except Exception as e:
            logger.error(f"Error searching videos: {e}")
            raise InternalError("Failed to search videos") from e

        # Index order is already by descending similarity
        return VideoSearchResponse(
            results=[
                VideoSearchResult(id=match.id_, score=match.distance, metadata=match.metadata)
                for match in matches
            ]
        )

    async def get_comment_summary(self, video_id: str) -> CommentSummaryResponse:
        try:
            summary = await self.comment_summary_repo.get_comment_summary(video_id)
        except Exception as e:
            logger.error(f"Error reading comment summary for video {video_id}: {e}")
            raise InternalError("Failed to read comment summary") from e

        if summary is None:
            raise NotFoundError(f"No comment summary for video {video_id}")

        return CommentSummaryResponse(
            video_id=summary.video_id,
            summary=summary.summary,
            updated_at=summary.updated_at,
            comment_count=summary.comment_count,
            stats=summary.stats.model_dump(by_alias=True)
        )
