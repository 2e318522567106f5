from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from tikblok.controller.admin_controller import AdminController
from tikblok.core.dependencies import get_admin_controller, require_reindex_key
from tikblok.core.exceptions import ServiceError
from tikblok.core.logger import SimpleLogger
from tikblok.schema.response import ReindexResponse, VideoReindexResponse

logger = SimpleLogger(__name__)


router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_reindex_key)],
    responses={401: {"description": "Invalid API key"}},
)


@router.post(
    "/reindex",
    response_model=ReindexResponse,
    summary="Reset and rebuild the video index",
    description="Deletes every vector in the namespace and re-embeds all stored videos in batches."
)
async def reindex_all_videos(
    controller: AdminController = Depends(get_admin_controller)
):
    try:
        return await controller.reindex_all()
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Error reindexing videos: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to reindex videos", "details": str(e)}
        )


@router.post(
    "/videos/{video_id}/reindex",
    response_model=VideoReindexResponse,
    summary="Re-embed a single video"
)
async def reindex_video(
    video_id: str,
    controller: AdminController = Depends(get_admin_controller)
):
    try:
        return await controller.reindex_video(video_id)
    except ServiceError:
        raise
    except Exception as e:
        logger.error(f"Error reindexing video {video_id}: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to reindex video", "details": str(e)}
        )
