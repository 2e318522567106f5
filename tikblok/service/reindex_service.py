import asyncio

from pydantic import BaseModel

from tikblok.core.exceptions import ReindexInProgressError
from tikblok.core.logger import SimpleLogger
from tikblok.core.settings import DEFAULT_REINDEX_BATCH_SIZE
from tikblok.repository.milvus_rest import MilvusBulkClient
from tikblok.repository.mongo import VideoRepository
from tikblok.service.video_index_service import VideoIndexService
from tikblok.utils.common_utils import chunked

logger = SimpleLogger(__name__)


class ReindexResult(BaseModel):
    total_processed: int
    message: str = "Video index reset and reindexed successfully"


class ReindexService:
    """
    Wipes the video namespace and rebuilds it from the videos collection.

    Batches run one after another: embeddings of a batch are computed
    concurrently, then the batch is written with a single bulk upsert. The
    first failing call aborts the run and leaves the index partially rebuilt;
    running it again starts over from an empty namespace.
    """

    def __init__(
        self,
        video_repo: VideoRepository,
        video_index_service: VideoIndexService,
        bulk_client: MilvusBulkClient,
        batch_size: int = DEFAULT_REINDEX_BATCH_SIZE,
    ):
        self.video_repo = video_repo
        self.video_index_service = video_index_service
        self.bulk_client = bulk_client
        self.batch_size = batch_size
        # Only guards runs inside this process
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def reset_and_reindex_all(self) -> ReindexResult:
        if self._lock.locked():
            raise ReindexInProgressError("A reindex is already running")
        async with self._lock:
            return await self._reindex()

    async def _reindex(self) -> ReindexResult:
        logger.info("Starting full video reindex")
        try:
            logger.info("Deleting all existing vectors")
            await self.bulk_client.delete_all()

            logger.info("Fetching all videos")
            videos = await self.video_repo.get_all_videos()
            logger.info(f"Found {len(videos)} videos to reindex")

            total_batches = (len(videos) + self.batch_size - 1) // self.batch_size
            processed = 0
            for batch_num, batch in enumerate(chunked(videos, self.batch_size), start=1):
                logger.info(f"Processing batch {batch_num}/{total_batches}")
                entries = await asyncio.gather(
                    *(self.video_index_service.build_entry(video) for video in batch)
                )
                await self.bulk_client.upsert(list(entries))
                processed += len(batch)
                logger.info(f"Processed {processed} / {len(videos)} videos")
        except Exception as e:
            logger.error(f"Error during video reindex: {e}")
            raise

        logger.info("Video reindex completed successfully")
        return ReindexResult(total_processed=len(videos))
