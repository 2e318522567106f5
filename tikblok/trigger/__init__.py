from .reactor import decide_video_effect, VideoWriteReactor, CommentWriteReactor
