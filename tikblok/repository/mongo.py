"""
MongoDB repositories for videos, their comments and the per-video comment summary
"""

from typing import List, Optional

from tikblok.common.repository import MongoBaseRepository
from tikblok.models import Video, Comment, VideoMetadataEntry, COMMENT_SUMMARY_KEY
from tikblok.schema.interface import (
    VideoInterface,
    CommentInterface,
    CommentStats,
    CommentSummaryInterface,
)


def _video_to_interface(video: Video) -> VideoInterface:
    return VideoInterface(
        id=str(video.id),
        title=video.title,
        description=video.description,
        tags=list(video.tags or []),
        video_url=video.video_url,
        thumbnail_url=video.thumbnail_url,
        captions_url=video.captions_url,
        duration_ms=video.duration_ms,
        creator_id=video.creator_id,
        creator_username=video.creator_username,
        created_at=video.created_at,
        like_count=video.like_count,
        comment_count=video.comment_count,
        view_count=video.view_count,
    )


class VideoRepository(MongoBaseRepository[Video]):
    def __init__(self, collection=Video):
        super().__init__(collection)

    async def get_by_id(self, video_id: str) -> Optional[VideoInterface]:
        video = await self.collection.get(video_id)
        if video is None:
            return None
        return _video_to_interface(video)

    async def get_all_videos(self) -> List[VideoInterface]:
        videos = await self.find_all()
        return [_video_to_interface(video) for video in videos]


class CommentRepository(MongoBaseRepository[Comment]):
    def __init__(self, collection=Comment):
        super().__init__(collection)

    async def get_top_comments(self, video_id: str, limit: int = 50) -> List[CommentInterface]:
        """Comments of a video ordered by like count, most liked first"""
        result = await self.find({"video_id": video_id}, sort="-like_count", limit=limit)
        return [
            CommentInterface(
                id=str(comment.id),
                video_id=comment.video_id,
                text=comment.text or "",
                like_count=comment.like_count or 0,
                reply_count=comment.reply_count or 0,
            ) for comment in result
        ]


class CommentSummaryRepository(MongoBaseRepository[VideoMetadataEntry]):
    def __init__(self, collection=VideoMetadataEntry):
        super().__init__(collection)

    @staticmethod
    def _key(video_id: str) -> dict:
        return {"video_id": video_id, "key": COMMENT_SUMMARY_KEY}

    async def get_comment_summary(self, video_id: str) -> Optional[CommentSummaryInterface]:
        entry = await self.collection.find_one(self._key(video_id))
        if entry is None:
            return None
        return CommentSummaryInterface(
            video_id=entry.video_id,
            summary=entry.summary,
            updated_at=entry.updated_at,
            comment_count=entry.comment_count,
            stats=CommentStats(**(entry.stats or {})),
        )

    async def save_comment_summary(
        self,
        video_id: str,
        summary: str,
        comment_count: int,
        stats: CommentStats
    ) -> None:
        """Replace the summary; updated_at is assigned by the server"""
        await self.raw_collection().update_one(
            self._key(video_id),
            {
                "$set": {
                    "summary": summary,
                    "comment_count": comment_count,
                    "stats": stats.model_dump(by_alias=True),
                },
                "$currentDate": {"updated_at": True},
            },
            upsert=True,
        )

    async def delete_comment_summary(self, video_id: str) -> int:
        result = await self.raw_collection().delete_many(self._key(video_id))
        return result.deleted_count
