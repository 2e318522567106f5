import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from langfuse import Langfuse
from llama_index.core.llms import LLM

from tikblok.core.exceptions import SummaryGenerationError
from tikblok.core.logger import SimpleLogger
from tikblok.core.settings import (
    DEFAULT_COMMENT_SUMMARY_COOLDOWN_SECONDS,
    DEFAULT_COMMENT_SUMMARY_MAX_COMMENTS,
    DEFAULT_LLM_TIMEOUT_SECONDS,
)
from tikblok.repository.mongo import CommentRepository, CommentSummaryRepository, VideoRepository
from tikblok.schema.interface import CommentInterface, CommentStats, VideoInterface
from tikblok.schema.summary import (
    SummaryOutcome,
    SummarySkipped,
    SummaryUpdated,
    SummaryRemoved,
    SummaryFailed,
)
from tikblok.service.prompts import COMMENT_SUMMARY_PROMPT
from tikblok.service.tracing import (
    FETCH_SPAN_NAME,
    GENERATION_NAME,
    NO_TRACE,
    generation_context,
    langfuse_usage,
    start_summary_trace,
)
from tikblok.utils.common_utils import round_half_up

logger = SimpleLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def seconds_since(last_update: Optional[datetime], now: datetime) -> Optional[float]:
    """Elapsed seconds, or None when there was no previous update"""
    if last_update is None:
        return None
    if last_update.tzinfo is None:
        # MongoDB hands back naive UTC datetimes
        last_update = last_update.replace(tzinfo=timezone.utc)
    return (now - last_update).total_seconds()


def compute_comment_stats(comments: List[CommentInterface]) -> CommentStats:
    total_likes = sum(c.like_count for c in comments)
    total_length = sum(len(c.text) for c in comments)
    return CommentStats(
        total_likes=total_likes,
        avg_length=round_half_up(total_length / len(comments)) if comments else 0,
        with_replies=sum(1 for c in comments if c.reply_count > 0),
        max_likes=max((c.like_count for c in comments), default=0),
    )


def extract_token_usage(response: Any) -> Dict[str, int]:
    """Pull prompt/completion/total token counters out of a completion response, if reported"""
    raw = getattr(response, "raw", None)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raw = raw.model_dump() if hasattr(raw, "model_dump") else getattr(raw, "__dict__", {})

    usage = raw.get("usage_metadata") or raw.get("usage") or {}
    if not isinstance(usage, dict):
        usage = usage.model_dump() if hasattr(usage, "model_dump") else getattr(usage, "__dict__", {})

    key_map = {
        "prompt_tokens": ("prompt_tokens", "prompt_token_count"),
        "completion_tokens": ("completion_tokens", "candidates_token_count"),
        "total_tokens": ("total_tokens", "total_token_count"),
    }
    token_usage = {}
    for name, candidates in key_map.items():
        for key in candidates:
            if usage.get(key) is not None:
                token_usage[name] = int(usage[key])
                break
    return token_usage


class CommentSummaryService:
    """
    Regenerates the comment-section summary of a video, at most once per cooldown window.

    Every comment write on a video triggers ``summarize``. Writes that land within
    the cooldown of the stored summary are skipped, so a burst of comments costs
    one model call. Two invocations racing past the cooldown check both
    regenerate; the later write wins.
    """

    def __init__(
        self,
        llm: LLM,
        comment_repo: CommentRepository,
        summary_repo: CommentSummaryRepository,
        cooldown_seconds: float = DEFAULT_COMMENT_SUMMARY_COOLDOWN_SECONDS,
        max_comments: int = DEFAULT_COMMENT_SUMMARY_MAX_COMMENTS,
        clock: Callable[[], datetime] = utc_now,
        timeout_seconds: float = DEFAULT_LLM_TIMEOUT_SECONDS,
        langfuse: Optional[Langfuse] = None,
        video_repo: Optional[VideoRepository] = None,
    ):
        self.llm = llm
        self.comment_repo = comment_repo
        self.summary_repo = summary_repo
        self.cooldown_seconds = cooldown_seconds
        self.max_comments = max_comments
        self.clock = clock
        self.timeout_seconds = timeout_seconds
        self.langfuse = langfuse
        # Only read to give traces their video context
        self.video_repo = video_repo
        self.model_name = getattr(llm, "model", None)

    async def summarize(
        self,
        video_id: str,
        comment_id: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> SummaryOutcome:
        """Never raises: failures come back as SummaryFailed."""
        trace = NO_TRACE
        try:
            video = await self._video_context(video_id)
            trace = start_summary_trace(self.langfuse, video_id, comment_id, operation, video, now=self.clock())
            return await self._summarize(video_id, trace, video)
        except Exception as e:
            logger.error(f"Error updating comment summary for video {video_id}: {e}")
            trace.update(output={"status": "error", "error": str(e), "errorType": type(e).__name__})
            return SummaryFailed(video_id=video_id, error=str(e), error_type=type(e).__name__)

    async def _video_context(self, video_id: str) -> Optional[VideoInterface]:
        if self.langfuse is None or self.video_repo is None:
            return None
        return await self.video_repo.get_by_id(video_id)

    async def _summarize(self, video_id: str, trace, video: Optional[VideoInterface]) -> SummaryOutcome:
        existing = await self.summary_repo.get_comment_summary(video_id)
        last_update = existing.updated_at if existing else None
        elapsed = seconds_since(last_update, self.clock())
        elapsed_ms = elapsed * 1000 if elapsed is not None else None
        cooldown_ms = self.cooldown_seconds * 1000

        trace.update(metadata={
            "lastSummaryUpdate": last_update.isoformat() if last_update else None,
            "timeSinceLastUpdateMs": elapsed_ms,
            "cooldownMs": cooldown_ms,
        })

        if elapsed is not None and elapsed <= self.cooldown_seconds:
            logger.info(f"Skipping summary for video {video_id}: updated {elapsed:.1f}s ago")
            trace.update(output={
                "status": "skipped",
                "reason": "cooldown",
                "timeSinceLastUpdateMs": elapsed_ms,
                "cooldownMs": cooldown_ms,
            })
            return SummarySkipped(video_id=video_id, reason="cooldown", elapsed_seconds=elapsed)

        logger.info(f"Cooldown passed for video {video_id}, generating new summary")
        fetch_span = trace.span(name=FETCH_SPAN_NAME)
        comments = await self.comment_repo.get_top_comments(video_id, limit=self.max_comments)
        stats = compute_comment_stats(comments)
        fetch_span.end(output={"commentCount": len(comments), **stats.model_dump(by_alias=True)})

        if not comments:
            logger.info(f"No comments found for video {video_id}, removing summary")
            await self.summary_repo.delete_comment_summary(video_id)
            trace.update(output={"status": "no_comments", "message": "No comments found, summary removed"})
            return SummaryRemoved(video_id=video_id)

        comment_texts = "\n".join(c.text for c in comments)
        logger.info(f"Generating summary for {len(comments)} comments of video {video_id}")

        generation = trace.generation(
            name=GENERATION_NAME,
            model=self.model_name,
            input=comment_texts,
            metadata={
                "commentCount": len(comments),
                **stats.model_dump(by_alias=True),
                "promptLength": len(comment_texts),
                "videoContext": generation_context(video),
            },
        )
        start = time.perf_counter()
        try:
            summary, token_usage = await self._generate_summary(comment_texts)
        except SummaryGenerationError as e:
            generation.end(level="ERROR", status_message=str(e))
            raise
        processing_time_ms = (time.perf_counter() - start) * 1000

        generation.end(
            output=summary,
            usage=langfuse_usage(token_usage),
            metadata={
                "numComments": len(comments),
                "processingTimeMs": processing_time_ms,
                "summaryLength": len(summary),
                "commentStats": stats.model_dump(by_alias=True),
            },
        )

        await self.summary_repo.save_comment_summary(
            video_id,
            summary=summary,
            comment_count=len(comments),
            stats=stats,
        )
        logger.info(
            f"Summary updated for video {video_id}: {len(summary)} chars, "
            f"tokens={token_usage}, {processing_time_ms:.0f}ms"
        )
        trace.update(output={
            "status": "success",
            "commentCount": len(comments),
            "summaryLength": len(summary),
            "processingTimeMs": processing_time_ms,
            "commentStats": stats.model_dump(by_alias=True),
        })
        return SummaryUpdated(
            video_id=video_id,
            comment_count=len(comments),
            summary_length=len(summary),
            stats=stats,
            token_usage=token_usage,
            processing_time_ms=processing_time_ms,
        )

    async def _generate_summary(self, comment_texts: str) -> tuple[str, Dict[str, int]]:
        prompt = COMMENT_SUMMARY_PROMPT.format(comment_texts=comment_texts)
        try:
            response = await asyncio.wait_for(self.llm.acomplete(prompt), timeout=self.timeout_seconds)
        except Exception as e:
            raise SummaryGenerationError(f"Summary model call failed: {e}") from e

        summary = (response.text or "").strip()
        if not summary:
            raise SummaryGenerationError("No summary generated")
        return summary, extract_token_usage(response)
