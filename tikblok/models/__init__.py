from .video import Video
from .comment import Comment
from .video_metadata import VideoMetadataEntry, COMMENT_SUMMARY_KEY

DOCUMENT_MODELS = [Video, Comment, VideoMetadataEntry]
