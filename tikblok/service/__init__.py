from .model_service import ModelService
from .video_index_service import VideoIndexService
from .reindex_service import ReindexService, ReindexResult
from .comment_summary_service import CommentSummaryService
