"""Shared fixtures: in-memory stand-ins for the document database, vector index and models."""

import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
from llama_index.core.llms import CompletionResponse

from tikblok.schema.interface import (
    VideoInterface,
    VectorEntry,
    MilvusSearchRequest,
    MilvusSearchResult,
    MilvusSearchResponse,
    CommentInterface,
    CommentStats,
    CommentSummaryInterface,
)

# Fixed vocabulary so that test embeddings are deterministic and collision free
VOCAB = [
    "diamond", "diamonds", "find", "finding", "mining", "adventure", "underground",
    "redstone", "tutorial", "circuit", "build", "house", "castle", "creeper",
    "speedrun", "nether", "farm", "village", "villager", "cave",
]


def vocab_embedding(text: str) -> List[float]:
    tokens = re.findall(r"[a-z]+", text.lower())
    vector = [float(tokens.count(word)) for word in VOCAB]
    norm = math.sqrt(sum(v * v for v in vector))
    return [v / norm for v in vector] if norm else vector


class FakeModelService:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: List[str] = []

    def embedding(self, query_text: str) -> List[float]:
        self.calls.append(query_text)
        if self.fail:
            raise RuntimeError("embedding backend unavailable")
        return vocab_embedding(query_text)

    async def aembedding(self, query_text: str) -> List[float]:
        return self.embedding(query_text)

    @property
    def embedding_dim(self) -> int:
        return len(VOCAB)


class InMemoryVectorRepository:
    """Same surface as VideoVectorRepository, backed by a dict per namespace"""

    def __init__(self, namespace: str = "videos"):
        self.namespace = namespace
        self.namespaces: Dict[str, Dict[str, VectorEntry]] = {}
        self.upsert_calls: List[List[str]] = []
        self.fail_upsert = False
        self.fail_delete_all = False

    def entries(self, namespace: str | None = None) -> Dict[str, VectorEntry]:
        return self.namespaces.setdefault(namespace or self.namespace, {})

    async def upsert(self, entries: List[VectorEntry], namespace: str | None = None) -> int:
        if self.fail_upsert:
            raise RuntimeError("upsert rejected")
        self.upsert_calls.append([entry.id for entry in entries])
        store = self.entries(namespace)
        for entry in entries:
            store[entry.id] = entry.model_copy(deep=True)
        return len(entries)

    async def delete(self, ids: List[str], namespace: str | None = None) -> None:
        store = self.entries(namespace)
        for entry_id in ids:
            store.pop(entry_id, None)

    async def delete_all(self, namespace: str | None = None) -> None:
        if self.fail_delete_all:
            raise RuntimeError("delete-all rejected")
        self.entries(namespace).clear()

    async def count(self, namespace: str | None = None) -> int:
        return len(self.entries(namespace))

    async def search_by_embedding(self, request: MilvusSearchRequest) -> MilvusSearchResponse:
        store = self.entries(request.namespace)
        scored = [
            MilvusSearchResult(
                id_=entry.id,
                distance=sum(a * b for a, b in zip(request.embedding, entry.embedding)),
                metadata=entry.metadata,
            )
            for entry in store.values()
        ]
        scored.sort(key=lambda r: r.distance, reverse=True)
        results = scored[:request.top_k]
        return MilvusSearchResponse(results=results, total_found=len(results))


class InMemoryBulkClient:
    """Bulk REST path writing into the same in-memory index"""

    def __init__(self, repo: InMemoryVectorRepository):
        self.repo = repo
        self.batch_sizes: List[int] = []
        self.fail_on_batch: Optional[int] = None

    async def delete_all(self, namespace: str | None = None) -> None:
        await self.repo.delete_all(namespace)

    async def upsert(self, entries: List[VectorEntry], namespace: str | None = None) -> int:
        if self.fail_on_batch is not None and len(self.batch_sizes) + 1 == self.fail_on_batch:
            raise RuntimeError("Failed to upsert vectors: Service Unavailable")
        self.batch_sizes.append(len(entries))
        return await self.repo.upsert(entries, namespace)


class FakeVideoRepository:
    def __init__(self, videos: List[VideoInterface] | None = None):
        self.videos: Dict[str, VideoInterface] = {v.id: v for v in videos or []}

    async def get_by_id(self, video_id: str) -> Optional[VideoInterface]:
        return self.videos.get(video_id)

    async def get_all_videos(self) -> List[VideoInterface]:
        return list(self.videos.values())


class FakeCommentRepository:
    def __init__(self):
        self.comments: Dict[str, List[CommentInterface]] = {}
        self.fail = False

    def add(self, video_id: str, text: str, like_count: int = 0, reply_count: int = 0) -> CommentInterface:
        comments = self.comments.setdefault(video_id, [])
        comment = CommentInterface(
            id=f"c{len(comments) + 1}",
            video_id=video_id,
            text=text,
            like_count=like_count,
            reply_count=reply_count,
        )
        comments.append(comment)
        return comment

    def clear(self, video_id: str) -> None:
        self.comments[video_id] = []

    async def get_top_comments(self, video_id: str, limit: int = 50) -> List[CommentInterface]:
        if self.fail:
            raise RuntimeError("comments query failed")
        ordered = sorted(self.comments.get(video_id, []), key=lambda c: c.like_count, reverse=True)
        return ordered[:limit]


class FakeCommentSummaryRepository:
    """Stamps updated_at from the shared test clock, like $currentDate on the server"""

    def __init__(self, clock):
        self.clock = clock
        self.summaries: Dict[str, CommentSummaryInterface] = {}
        self.save_calls = 0
        self.delete_calls = 0

    async def get_comment_summary(self, video_id: str) -> Optional[CommentSummaryInterface]:
        return self.summaries.get(video_id)

    async def save_comment_summary(self, video_id: str, summary: str, comment_count: int, stats: CommentStats) -> None:
        self.save_calls += 1
        self.summaries[video_id] = CommentSummaryInterface(
            video_id=video_id,
            summary=summary,
            # MongoDB returns naive UTC datetimes
            updated_at=self.clock().replace(tzinfo=None),
            comment_count=comment_count,
            stats=stats,
        )

    async def delete_comment_summary(self, video_id: str) -> int:
        self.delete_calls += 1
        return 1 if self.summaries.pop(video_id, None) else 0


class FakeLLM:
    def __init__(self, text: str = "Hrmm. Villagers love this video.", fail: bool = False):
        self.text = text
        self.fail = fail
        self.prompts: List[str] = []

    async def acomplete(self, prompt: str, **kwargs: Any) -> CompletionResponse:
        self.prompts.append(str(prompt))
        if self.fail:
            raise TimeoutError("model timed out")
        return CompletionResponse(
            text=self.text,
            raw={"usage_metadata": {"prompt_token_count": 120, "candidates_token_count": 30, "total_token_count": 150}},
        )


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


def make_video(video_id: str, title: str, description: str = "", tags: List[str] | None = None, **extra: Any) -> VideoInterface:
    return VideoInterface(
        id=video_id,
        title=title,
        description=description,
        tags=tags or [],
        thumbnail_url=extra.pop("thumbnail_url", f"https://cdn.example.com/thumbnails/{video_id}.jpg"),
        creator_id=extra.pop("creator_id", "u1"),
        creator_username=extra.pop("creator_username", "steve"),
        created_at=extra.pop("created_at", datetime(2025, 1, 1, tzinfo=timezone.utc)),
        **extra,
    )


@pytest.fixture
def diamond_video() -> VideoInterface:
    return make_video(
        "v1",
        "Diamond Find",
        "Mining adventure",
        ["mining", "diamonds"],
        like_count=10,
        comment_count=2,
        view_count=300,
    )


@pytest.fixture
def catalog(diamond_video) -> List[VideoInterface]:
    return [
        diamond_video,
        make_video("v2", "Redstone Tutorial", "Build a circuit", ["redstone"]),
        make_video("v3", "Castle Build", "A huge castle house", ["build", "castle"]),
        make_video("v4", "Nether Speedrun", "Fast nether run", ["speedrun", "nether"]),
    ]


@pytest.fixture
def model_service() -> FakeModelService:
    return FakeModelService()


@pytest.fixture
def vector_repo() -> InMemoryVectorRepository:
    return InMemoryVectorRepository()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
