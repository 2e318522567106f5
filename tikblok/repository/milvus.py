"""
The implementation of the video vector repository. One entry per video, keyed by
video id, stored in a namespace (Milvus partition) of the video collection.
"""

import json
import time
from typing import List, cast

from pymilvus import Collection as MilvusCollection
from pymilvus.client.search_result import SearchResult

from tikblok.common.repository import MilvusBaseRepository
from tikblok.core.exceptions import VectorIndexError
from tikblok.core.logger import SimpleLogger
from tikblok.schema.interface import (
    VectorEntry,
    MilvusSearchRequest,
    MilvusSearchResult,
    MilvusSearchResponse,
)

logger = SimpleLogger(__name__)

# Matches every entry: ids are non-empty strings
MATCH_ALL_EXPR = 'id != ""'


def build_id_expr(ids: List[str]) -> str:
    return f"id in {json.dumps(list(ids))}"


class VideoVectorRepository(MilvusBaseRepository):
    def __init__(
        self,
        collection: MilvusCollection,
        search_params: dict,
        namespace: str = "videos"
    ):
        super().__init__(collection)
        self.search_params = search_params
        self.namespace = namespace

    def _ensure_namespace(self, namespace: str) -> str:
        if not self.collection.has_partition(namespace):
            logger.info(f"Creating namespace partition '{namespace}'")
            self.collection.create_partition(namespace)
        return namespace

    async def upsert(self, entries: List[VectorEntry], namespace: str | None = None) -> int:
        if not entries:
            return 0
        partition = self._ensure_namespace(namespace or self.namespace)
        rows = [
            {"id": entry.id, "embedding": entry.embedding, "metadata": entry.metadata}
            for entry in entries
        ]
        try:
            result = self.collection.upsert(rows, partition_name=partition)
        except Exception as e:
            raise VectorIndexError(f"Failed to upsert {len(rows)} vectors: {e}") from e
        return getattr(result, "upsert_count", len(rows))

    async def delete(self, ids: List[str], namespace: str | None = None) -> None:
        """Delete entries by id. Ids that are not indexed are ignored."""
        if not ids:
            return
        partition = self._ensure_namespace(namespace or self.namespace)
        try:
            self.collection.delete(build_id_expr(ids), partition_name=partition)
        except Exception as e:
            raise VectorIndexError(f"Failed to delete vectors {ids}: {e}") from e

    async def delete_all(self, namespace: str | None = None) -> None:
        partition = self._ensure_namespace(namespace or self.namespace)
        try:
            self.collection.delete(MATCH_ALL_EXPR, partition_name=partition)
        except Exception as e:
            raise VectorIndexError(f"Failed to delete all vectors in '{partition}': {e}") from e

    async def count(self, namespace: str | None = None) -> int:
        partition = self._ensure_namespace(namespace or self.namespace)
        rows = self.collection.query(
            expr=MATCH_ALL_EXPR,
            output_fields=["count(*)"],
            partition_names=[partition]
        )
        return int(rows[0]["count(*)"]) if rows else 0

    async def search_by_embedding(
        self,
        request: MilvusSearchRequest
    ) -> MilvusSearchResponse:
        partition = self._ensure_namespace(request.namespace or self.namespace)
        start = time.perf_counter()
        try:
            search_results = cast(SearchResult, self.collection.search(
                data=[request.embedding],
                anns_field="embedding",
                param=self.search_params,
                limit=request.top_k,
                partition_names=[partition],
                output_fields=["metadata"],
                _async=False
            ))
        except Exception as e:
            raise VectorIndexError(f"Vector search failed: {e}") from e

        results = []
        for hits in search_results:
            for hit in hits:
                entity = getattr(hit, 'entity', None)
                metadata = entity.get("metadata") if entity is not None else None
                results.append(MilvusSearchResult(
                    id_=str(hit.id),
                    distance=float(hit.distance),
                    metadata=metadata or {}
                ))

        return MilvusSearchResponse(
            results=results,
            total_found=len(results),
            search_time_ms=(time.perf_counter() - start) * 1000
        )
