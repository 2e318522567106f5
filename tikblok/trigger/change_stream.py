"""
MongoDB change stream watcher feeding document writes to the reactors.

Requires a replica set. Pre-images are used when the collections have
``changeStreamPreAndPostImages`` enabled; deletes work without them for videos
(the document key is the video id). Comment deletes without a pre-image cannot
be attributed to a video and are skipped.

Run standalone with ``python -m tikblok.trigger.change_stream``.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from tikblok.core.logger import SimpleLogger
from tikblok.core.settings import DEFAULT_COMMENT_SUMMARY_MAX_CONCURRENCY
from tikblok.schema.event import DocumentWriteEvent
from tikblok.trigger.reactor import VideoWriteReactor, CommentWriteReactor

logger = SimpleLogger(__name__)

WRITE_OPERATIONS = {"insert", "update", "replace", "delete"}
RECONNECT_DELAY_SECONDS = 5.0


def _snapshots(change: Dict[str, Any]) -> tuple[Optional[dict], Optional[dict]]:
    operation = change.get("operationType")
    after = change.get("fullDocument") if operation != "delete" else None
    before = change.get("fullDocumentBeforeChange")
    if before is None and operation == "delete":
        before = {"_id": change["documentKey"]["_id"]}
    return before, after


def video_change_to_event(change: Dict[str, Any]) -> Optional[DocumentWriteEvent]:
    operation = change.get("operationType")
    if operation not in WRITE_OPERATIONS:
        return None
    before, after = _snapshots(change)
    return DocumentWriteEvent(
        before=before,
        after=after,
        params={"videoId": str(change["documentKey"]["_id"])},
        operation=operation,
    )


def comment_change_to_event(change: Dict[str, Any]) -> Optional[DocumentWriteEvent]:
    operation = change.get("operationType")
    if operation not in WRITE_OPERATIONS:
        return None
    before, after = _snapshots(change)
    video_id = (after or {}).get("video_id") or (before or {}).get("video_id")
    comment_id = str(change["documentKey"]["_id"])
    if not video_id:
        logger.warning(f"Cannot resolve video for comment {comment_id} ({operation}), skipping")
        return None
    return DocumentWriteEvent(
        before=before,
        after=after,
        params={"videoId": str(video_id), "commentId": comment_id},
        operation=operation,
    )


class ChangeStreamWatcher:
    """
    Follows the videos and comments change streams.

    Video events are applied in stream order. Comment events start one task
    each, at most ``max_concurrency`` in flight, so a slow summary for one
    video does not hold back the others; once the limit is reached the
    comment stream waits for a free slot.
    """

    def __init__(
        self,
        videos: AsyncIOMotorCollection,
        comments: AsyncIOMotorCollection,
        video_reactor: VideoWriteReactor,
        comment_reactor: CommentWriteReactor,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
        max_concurrency: int = DEFAULT_COMMENT_SUMMARY_MAX_CONCURRENCY,
    ):
        self.videos = videos
        self.comments = comments
        self.video_reactor = video_reactor
        self.comment_reactor = comment_reactor
        self.reconnect_delay = reconnect_delay
        self._comment_slots = asyncio.Semaphore(max_concurrency)
        self._comment_tasks: Set[asyncio.Task] = set()

    @property
    def pending_comment_tasks(self) -> int:
        return len(self._comment_tasks)

    async def dispatch_video_change(self, change: Dict[str, Any]) -> None:
        event = video_change_to_event(change)
        if event is None:
            return
        try:
            await self.video_reactor.handle(event)
        except Exception as e:
            # Index and database diverge until the next write or a full reindex
            logger.error(f"Failed to apply video event {event.operation} for {event.params.get('videoId')}: {e}")

    async def dispatch_comment_change(self, change: Dict[str, Any]) -> None:
        event = comment_change_to_event(change)
        if event is None:
            return
        await self._comment_slots.acquire()
        task = asyncio.create_task(self.comment_reactor.handle(event))
        self._comment_tasks.add(task)
        task.add_done_callback(self._comment_task_done)

    def _comment_task_done(self, task: asyncio.Task) -> None:
        self._comment_tasks.discard(task)
        self._comment_slots.release()
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Comment event handling failed: {type(error).__name__}: {error}")

    async def drain(self) -> None:
        """Wait for every comment task started so far"""
        if self._comment_tasks:
            await asyncio.gather(*list(self._comment_tasks), return_exceptions=True)

    def cancel_pending(self) -> None:
        for task in list(self._comment_tasks):
            task.cancel()

    async def _watch(
        self,
        collection: AsyncIOMotorCollection,
        dispatch: Callable[[Dict[str, Any]], Awaitable[None]],
    ) -> None:
        resume_token = None
        while True:
            try:
                async with collection.watch(
                    full_document="updateLookup",
                    full_document_before_change="whenAvailable",
                    resume_after=resume_token,
                ) as stream:
                    logger.info(f"Watching '{collection.name}' for writes")
                    async for change in stream:
                        resume_token = stream.resume_token
                        await dispatch(change)
            except asyncio.CancelledError:
                logger.info(f"Stopped watching '{collection.name}'")
                raise
            except PyMongoError as e:
                logger.error(f"Change stream on '{collection.name}' failed: {e}, reconnecting")
                await asyncio.sleep(self.reconnect_delay)

    async def run(self) -> None:
        try:
            await asyncio.gather(
                self._watch(self.videos, self.dispatch_video_change),
                self._watch(self.comments, self.dispatch_comment_change),
            )
        finally:
            self.cancel_pending()


async def _main() -> None:
    from tikblok.core.lifespan import build_service_factory, connect_database
    from tikblok.core.settings import AppSettings, MongoDBSettings, VideoIndexMilvusSetting

    app_settings = AppSettings()
    mongo_client, database = await connect_database(MongoDBSettings())
    try:
        service_factory = build_service_factory(app_settings, VideoIndexMilvusSetting())
        try:
            await service_factory.get_change_stream_watcher(database).run()
        finally:
            service_factory.close()
    finally:
        mongo_client.close()


if __name__ == "__main__":
    asyncio.run(_main())
