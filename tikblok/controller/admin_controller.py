import secrets

from tikblok.core.exceptions import UnauthenticatedError
from tikblok.core.logger import SimpleLogger
from tikblok.schema.response import ReindexResponse, VideoReindexResponse
from tikblok.service.reindex_service import ReindexService
from tikblok.service.video_index_service import VideoIndexService

logger = SimpleLogger(__name__)


def verify_api_key(provided_key: str | None, expected_key: str | None) -> None:
    """An unset server key rejects every request"""
    if not expected_key or not provided_key:
        raise UnauthenticatedError("Invalid API key")
    if not secrets.compare_digest(provided_key.encode(), expected_key.encode()):
        logger.warning("Rejected admin request with a wrong API key")
        raise UnauthenticatedError("Invalid API key")


class AdminController:

    def __init__(
        self,
        reindex_service: ReindexService,
        video_index_service: VideoIndexService
    ):
        self.reindex_service = reindex_service
        self.video_index_service = video_index_service

    async def reindex_all(self) -> ReindexResponse:
        result = await self.reindex_service.reset_and_reindex_all()
        return ReindexResponse(total_processed=result.total_processed, message=result.message)

    async def reindex_video(self, video_id: str) -> VideoReindexResponse:
        entry = await self.video_index_service.reindex_video(video_id)
        return VideoReindexResponse(id=entry.id, message="Video reindexed successfully")
