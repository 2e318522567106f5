from typing import List

from tikblok.core.exceptions import NotFoundError
from tikblok.core.logger import SimpleLogger
from tikblok.repository.milvus import VideoVectorRepository
from tikblok.repository.mongo import VideoRepository
from tikblok.schema.interface import (
    VideoInterface,
    VideoIndexMetadata,
    VectorEntry,
    MilvusSearchRequest,
    MilvusSearchResult,
    to_epoch_millis,
)
from tikblok.service.model_service import ModelService

logger = SimpleLogger(__name__)


def build_video_text(video: VideoInterface) -> str:
    """Canonical text that gets embedded for a video"""
    parts = [
        video.title,
        video.description,
        ' '.join(video.tags),
    ]
    return ' '.join(parts).lower()


def build_index_metadata(video: VideoInterface) -> dict:
    return VideoIndexMetadata(
        title=video.title,
        description=video.description,
        thumbnail_url=video.thumbnail_url or "",
        creator_id=video.creator_id,
        creator_username=video.creator_username,
        created_at=to_epoch_millis(video.created_at),
        tags=list(video.tags),
        view_count=video.view_count,
        like_count=video.like_count,
        comment_count=video.comment_count,
    ).model_dump(by_alias=True)


class VideoIndexService:
    """Keeps one vector per video in the index, keyed by video id"""

    def __init__(
        self,
        model_service: ModelService,
        video_vector_repo: VideoVectorRepository,
        video_repo: VideoRepository | None = None,
    ):
        self.model_service = model_service
        self.video_vector_repo = video_vector_repo
        self.video_repo = video_repo

    async def build_entry(self, video: VideoInterface) -> VectorEntry:
        text = build_video_text(video)
        embedding = await self.model_service.aembedding(text)
        return VectorEntry(
            id=video.id,
            embedding=embedding,
            metadata=build_index_metadata(video),
        )

    async def upsert_video(self, video_id: str, video: VideoInterface) -> VectorEntry:
        logger.info(f"Upserting video to index: {video_id}")
        try:
            if video.id != video_id:
                video = video.model_copy(update={"id": video_id})
            logger.debug(
                f"Prepared text for embedding: video_id={video_id}, "
                f"text_length={len(build_video_text(video))}, title={video.title!r}, tags={video.tags}"
            )
            entry = await self.build_entry(video)
            await self.video_vector_repo.upsert([entry])
        except Exception as e:
            logger.error(f"Error upserting video {video_id} to index: {e}")
            raise
        logger.info(f"Successfully upserted video to index: {video_id}")
        return entry

    async def delete_video(self, video_id: str) -> None:
        logger.info(f"Deleting video from index: {video_id}")
        try:
            await self.video_vector_repo.delete([video_id])
        except Exception as e:
            logger.error(f"Error deleting video {video_id} from index: {e}")
            raise
        logger.info(f"Successfully deleted video from index: {video_id}")

    async def reindex_video(self, video_id: str) -> VectorEntry:
        """Re-embed a single stored video"""
        if self.video_repo is None:
            raise RuntimeError("VideoIndexService was built without a video repository")
        video = await self.video_repo.get_by_id(video_id)
        if video is None:
            raise NotFoundError(f"Video {video_id} not found")
        return await self.upsert_video(video_id, video)

    async def query_similar_videos(self, query_text: str, limit: int = 10) -> List[MilvusSearchResult]:
        logger.info(f"Searching similar videos: query={query_text!r}, limit={limit}")
        try:
            query_embedding = await self.model_service.aembedding(query_text)
            response = await self.video_vector_repo.search_by_embedding(
                MilvusSearchRequest(embedding=query_embedding, top_k=limit)
            )
        except Exception as e:
            logger.error(f"Error searching videos for query {query_text!r}: {e}")
            raise

        logger.info(
            f"Search results: query={query_text!r}, num_results={response.total_found}, "
            f"scores={[round(r.distance, 4) for r in response.results]}"
        )
        return response.results
