"""HTTP tests for the search, comment summary and admin endpoints."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from tikblok.controller.admin_controller import AdminController
from tikblok.controller.search_controller import SearchController
from tikblok.core.dependencies import get_admin_controller, get_app_settings, get_search_controller
from tikblok.core.exceptions import ReindexInProgressError
from tikblok.core.settings import AppSettings
from tikblok.main import create_app
from tikblok.schema.interface import CommentStats, CommentSummaryInterface
from tikblok.service.reindex_service import ReindexService
from tikblok.service.video_index_service import VideoIndexService
from tests.conftest import (
    FakeCommentSummaryRepository,
    FakeVideoRepository,
    InMemoryBulkClient,
)

SEARCH_URL = "/api/v1/videos/search"
REINDEX_URL = "/api/v1/admin/reindex"
API_KEY = "s3cret"


@pytest.fixture
def summary_repo(clock) -> FakeCommentSummaryRepository:
    return FakeCommentSummaryRepository(clock)


@pytest.fixture
def index_service(model_service, vector_repo, catalog) -> VideoIndexService:
    return VideoIndexService(model_service, vector_repo, FakeVideoRepository(catalog))


@pytest.fixture
def bulk_client(vector_repo) -> InMemoryBulkClient:
    return InMemoryBulkClient(vector_repo)


@pytest.fixture
def app(index_service, summary_repo, bulk_client, catalog):
    app = create_app(use_lifespan=False)
    reindex_service = ReindexService(FakeVideoRepository(catalog), index_service, bulk_client)
    app.dependency_overrides[get_search_controller] = lambda: SearchController(index_service, summary_repo)
    app.dependency_overrides[get_admin_controller] = lambda: AdminController(reindex_service, index_service)
    app.dependency_overrides[get_app_settings] = lambda: AppSettings(_env_file=None, REINDEX_API_KEY=API_KEY)
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def reindex(client: TestClient, key: str | None = API_KEY):
    headers = {"x-reindex-key": key} if key is not None else {}
    return client.post(REINDEX_URL, headers=headers)


class TestSearchEndpoint:
    def test_ranked_results(self, client):
        assert reindex(client).status_code == 200

        response = client.post(SEARCH_URL, json={"query": "finding diamonds underground", "limit": 5})

        assert response.status_code == 200
        results = response.json()["results"]
        assert 0 < len(results) <= 5
        assert results[0]["id"] == "v1"
        assert results[0]["metadata"]["title"] == "Diamond Find"
        scores = [r["score"] for r in results]
        assert scores == sorted(scores, reverse=True)

    def test_default_limit(self, client, index_service):
        index_service.query_similar_videos = AsyncMock(return_value=[])

        response = client.post(SEARCH_URL, json={"query": "castle"})

        assert response.json() == {"results": []}
        index_service.query_similar_videos.assert_awaited_once_with("castle", 10)

    @pytest.mark.parametrize("body", [{}, {"query": ""}, {"query": "   "}, {"query": 42}, {"query": ["a"]}])
    def test_invalid_query(self, client, body):
        response = client.post(SEARCH_URL, json=body)

        assert response.status_code == 400
        assert response.json() == {
            "error": {"code": "invalid-argument", "message": "Query must be a non-empty string"}
        }

    @pytest.mark.parametrize("limit", [0, 101])
    def test_limit_out_of_range(self, client, limit):
        response = client.post(SEARCH_URL, json={"query": "castle", "limit": limit})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid-argument"

    def test_upstream_failure_is_opaque(self, client, model_service):
        model_service.fail = True

        response = client.post(SEARCH_URL, json={"query": "castle"})

        assert response.status_code == 500
        assert response.json() == {"error": {"code": "internal", "message": "Failed to search videos"}}


class TestCommentSummaryEndpoint:
    def test_missing_summary(self, client):
        response = client.get("/api/v1/videos/v1/comment-summary")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not-found"

    def test_stored_summary(self, client, summary_repo, clock):
        summary_repo.summaries["v1"] = CommentSummaryInterface(
            video_id="v1",
            summary="Hrmm. Good video.",
            updated_at=clock().replace(tzinfo=None),
            comment_count=3,
            stats=CommentStats(total_likes=9, max_likes=5),
        )

        response = client.get("/api/v1/videos/v1/comment-summary")

        assert response.status_code == 200
        body = response.json()
        assert body["videoId"] == "v1"
        assert body["summary"] == "Hrmm. Good video."
        assert body["commentCount"] == 3
        assert body["stats"] == {"totalLikes": 9, "avgLength": 0, "withReplies": 0, "maxLikes": 5}
        assert body["updatedAt"].startswith("2025-01-01T12:00:00")


class TestReindexEndpoint:
    def test_success(self, client, vector_repo):
        response = reindex(client)

        assert response.status_code == 200
        assert response.json() == {
            "totalProcessed": 4,
            "message": "Video index reset and reindexed successfully",
        }
        assert sorted(vector_repo.entries()) == ["v1", "v2", "v3", "v4"]

    def test_only_post_is_allowed(self, client):
        assert client.get(REINDEX_URL, headers={"x-reindex-key": API_KEY}).status_code == 405

    @pytest.mark.parametrize("key", [None, "", "wrong"])
    def test_bad_key_is_rejected_before_any_work(self, client, bulk_client, key):
        response = reindex(client, key)

        assert response.status_code == 401
        assert response.json() == {"error": {"code": "unauthenticated", "message": "Invalid API key"}}
        assert bulk_client.batch_sizes == []

    def test_unset_server_key_rejects_everything(self, app):
        app.dependency_overrides[get_app_settings] = lambda: AppSettings(_env_file=None, REINDEX_API_KEY=None)

        response = reindex(TestClient(app), "anything")

        assert response.status_code == 401

    def test_key_is_checked_before_services_are_ready(self, app):
        # No service factory yet: the application is still starting up
        del app.dependency_overrides[get_admin_controller]
        client = TestClient(app)

        assert reindex(client, "wrong").status_code == 401
        assert reindex(client).status_code == 503

    def test_failure_reports_details(self, client, bulk_client, vector_repo):
        bulk_client.fail_on_batch = 1

        response = reindex(client)

        assert response.status_code == 500
        assert response.json() == {
            "error": "Failed to reindex videos",
            "details": "Failed to upsert vectors: Service Unavailable",
        }

    def test_concurrent_run_is_rejected(self, app, index_service):
        reindex_service = SimpleNamespace(
            reset_and_reindex_all=AsyncMock(side_effect=ReindexInProgressError("A reindex is already running"))
        )
        app.dependency_overrides[get_admin_controller] = lambda: AdminController(reindex_service, index_service)

        response = reindex(TestClient(app))

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "aborted"


class TestSingleVideoReindex:
    def test_reindexes_one_video(self, client, vector_repo):
        response = client.post("/api/v1/admin/videos/v3/reindex", headers={"x-reindex-key": API_KEY})

        assert response.status_code == 200
        assert response.json() == {"id": "v3", "message": "Video reindexed successfully"}
        assert list(vector_repo.entries()) == ["v3"]

    def test_unknown_video(self, client):
        response = client.post("/api/v1/admin/videos/nope/reindex", headers={"x-reindex-key": API_KEY})
        assert response.status_code == 404

    def test_requires_key(self, client):
        assert client.post("/api/v1/admin/videos/v3/reindex").status_code == 401


class TestServiceEndpoints:
    def test_root_before_startup(self, client):
        assert client.get("/").json()["status"] == "initializing"

    def test_status_before_startup(self, client):
        assert client.get("/status").status_code == 503

    def test_status_reports_index(self, app, vector_repo):
        app.state.service_factory = SimpleNamespace(
            milvus_settings=SimpleNamespace(COLLECTION_NAME="tikblok_videos", NAMESPACE="videos"),
            get_video_vector_repo=lambda: vector_repo,
            get_reindex_service=lambda: SimpleNamespace(is_running=False),
        )

        body = TestClient(app).get("/status").json()

        assert body["status"] == "operational"
        assert body["vector_index"] == {"collection": "tikblok_videos", "namespace": "videos", "entries": 0}
        assert body["reindex_running"] is False
