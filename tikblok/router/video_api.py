from fastapi import APIRouter, Depends

from tikblok.controller.search_controller import SearchController
from tikblok.core.dependencies import get_search_controller
from tikblok.core.logger import SimpleLogger
from tikblok.schema.request import VideoSearchRequest
from tikblok.schema.response import VideoSearchResponse, CommentSummaryResponse

logger = SimpleLogger(__name__)


router = APIRouter(
    prefix="/videos",
    tags=["videos"],
    responses={404: {"description": "Not found"}},
)


@router.post(
    "/search",
    response_model=VideoSearchResponse,
    summary="Semantic video search",
    description="Embed a free-text query and return the closest videos by similarity, best match first."
)
async def search_videos(
    request: VideoSearchRequest,
    controller: SearchController = Depends(get_search_controller)
):
    logger.info(f"Video search: query={request.query!r}, limit={request.limit}")
    return await controller.search(request.query, request.limit)


@router.get(
    "/{video_id}/comment-summary",
    response_model=CommentSummaryResponse,
    summary="Comment section summary of a video"
)
async def get_comment_summary(
    video_id: str,
    controller: SearchController = Depends(get_search_controller)
):
    return await controller.get_comment_summary(video_id)
