"""
Raw HTTP access to the Milvus RESTful API, used for bulk delete/upsert during a
full reindex where one request per batch beats per-row SDK calls.
"""

from typing import Any, List

import httpx

from tikblok.core.exceptions import VectorIndexError
from tikblok.core.logger import SimpleLogger
from tikblok.repository.milvus import MATCH_ALL_EXPR
from tikblok.schema.interface import VectorEntry

logger = SimpleLogger(__name__)


class MilvusBulkClient:
    def __init__(
        self,
        base_url: str,
        collection_name: str,
        namespace: str,
        token: str = "",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None
    ):
        self.base_url = base_url.rstrip("/")
        self.collection_name = collection_name
        self.namespace = namespace
        self.timeout = timeout
        self._transport = transport
        self._headers = {"Content-Type": "application/json"}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    async def _post(self, path: str, payload: dict, action: str) -> Any:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers,
            timeout=self.timeout,
            transport=self._transport
        ) as client:
            try:
                response = await client.post(path, json=payload)
            except httpx.HTTPError as e:
                raise VectorIndexError(f"Failed to {action}: {e}") from e

        if response.is_error:
            raise VectorIndexError(
                f"Failed to {action}: {response.reason_phrase} - {response.text}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise VectorIndexError(f"Failed to {action}: invalid response body - {response.text}") from e

        # The REST API reports failures in-band with HTTP 200
        if body.get("code", 0) != 0:
            raise VectorIndexError(
                f"Failed to {action}: code {body.get('code')} - {body.get('message', response.text)}"
            )
        return body.get("data")

    async def delete_all(self, namespace: str | None = None) -> None:
        partition = namespace or self.namespace
        logger.info(f"Deleting all vectors in namespace '{partition}'")
        await self._post(
            "/v2/vectordb/entities/delete",
            {
                "collectionName": self.collection_name,
                "partitionName": partition,
                "filter": MATCH_ALL_EXPR,
            },
            action="delete vectors",
        )

    async def upsert(self, entries: List[VectorEntry], namespace: str | None = None) -> int:
        if not entries:
            return 0
        partition = namespace or self.namespace
        data = await self._post(
            "/v2/vectordb/entities/upsert",
            {
                "collectionName": self.collection_name,
                "partitionName": partition,
                "data": [
                    {"id": entry.id, "embedding": entry.embedding, "metadata": entry.metadata}
                    for entry in entries
                ],
            },
            action="upsert vectors",
        )
        if isinstance(data, dict) and "upsertCount" in data:
            return int(data["upsertCount"])
        return len(entries)
