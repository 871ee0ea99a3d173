"""
Tests for the HTTP routes
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from server.api.api_app import app
from services.search.HybridSearchService import HybridSearchService
from services.search.SearchIntegrationService import SearchIntegrationService
from shared.clients.database.DatabaseClient import DatabaseClient
from shared.models.errors import DocumentValidationError
from shared.models.search import HealthStatus, QueryInfo, SearchResponse, SearchResult, SearchType

HEADERS = {"X-API-Key": "test-api-key", "X-Organization-Id": "7"}


@pytest.fixture
def search_service():
    service = MagicMock(spec=HybridSearchService)
    service.search_documents = AsyncMock(
        return_value=SearchResponse(
            results=[SearchResult(file_id="101", title="Quarterly budget report", score=2.0)],
            total=41,
            took=5,
            query_info=QueryInfo(parsed_query="budget", search_type="basic"),
        )
    )
    service.get_search_suggestions = AsyncMock(return_value=["Quarterly budget report"])
    service.health_check = AsyncMock(return_value=HealthStatus(status="healthy", message="Elasticsearch cluster is green"))
    return service


@pytest.fixture
def integration_service():
    service = MagicMock(spec=SearchIntegrationService)
    service.index_file = AsyncMock(return_value=True)
    service.remove_file = AsyncMock(return_value=False)
    service.bulk_index_files = AsyncMock(return_value={"success": 9, "failed": 1})
    service.reindex_organization = AsyncMock(return_value=True)
    service.health_check = AsyncMock(return_value=HealthStatus(status="unhealthy", message="cluster status: red"))
    return service


@pytest.fixture
def client(helper_config, search_service, integration_service):
    database_client = MagicMock(spec=DatabaseClient)
    database_client.do_healthcheck = AsyncMock(return_value=True)

    app.state.config = helper_config
    app.state.logging = helper_config.get_logger()
    app.state.search_service = search_service
    app.state.integration_service = integration_service
    app.state.database_client = database_client
    return TestClient(app)


class TestAuth:
    def test_missing_api_key(self, client):
        response = client.get("/search", params={"q": "budget"}, headers={"X-Organization-Id": "7"})

        assert response.status_code == 401

    def test_wrong_api_key(self, client):
        response = client.get("/search", headers={"X-API-Key": "nope", "X-Organization-Id": "7"})

        assert response.status_code == 401

    def test_missing_organization(self, client, search_service):
        response = client.get("/search", params={"q": "budget"}, headers={"X-API-Key": "test-api-key"})

        assert response.status_code == 401
        search_service.search_documents.assert_not_awaited()


class TestSearchRoutes:
    def test_get_search_builds_query(self, client, search_service):
        response = client.get(
            "/search",
            params=[
                ("q", "budget"),
                ("department", "Finance"),
                ("department", "HR"),
                ("date_from", "2024-01-01"),
                ("size_max", "5000"),
                ("has_content", "true"),
                ("search_type", "exact"),
                ("highlight", "true"),
                ("sort_field", "title"),
                ("sort_order", "asc"),
                ("page", "3"),
                ("page_size", "10"),
            ],
            headers=HEADERS,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["total"] == 41
        assert body["pagination"] == {"page": 3, "page_size": 10, "total_pages": 5}
        assert body["results"][0]["file_id"] == "101"

        search_query = search_service.search_documents.await_args.args[0]
        assert search_query.organization_id == "7"
        assert search_query.query == "budget"
        assert search_query.filters.department == ["Finance", "HR"]
        assert search_query.filters.date_range.from_ == "2024-01-01"
        assert search_query.filters.date_range.to is None
        assert search_query.filters.size_range.max == 5000
        assert search_query.filters.has_content is True
        assert search_query.search_type == SearchType.EXACT
        assert search_query.highlight is True
        assert (search_query.sort.field, search_query.sort.order) == ("title", "asc")
        assert (search_query.pagination.from_, search_query.pagination.size) == (20, 10)

    def test_get_search_defaults(self, client, search_service):
        client.get("/search", headers=HEADERS)

        search_query = search_service.search_documents.await_args.args[0]
        assert search_query.query == ""
        assert search_query.sort is None
        assert search_query.filters.count_applied() == 0
        assert (search_query.pagination.from_, search_query.pagination.size) == (0, 20)

    def test_get_search_rejects_bad_paging(self, client):
        assert client.get("/search", params={"page": 0}, headers=HEADERS).status_code == 422
        assert client.get("/search", params={"page_size": 1000}, headers=HEADERS).status_code == 422

    def test_post_search_takes_tenant_from_header(self, client, search_service):
        response = client.post(
            "/search",
            json={
                "query": "budget",
                "organization_id": "8",
                "filters": {"file_type": ["pdf"], "date_range": {"from": "2024-01-01"}},
                "pagination": {"from": 40, "size": 20},
                "search_type": "fuzzy",
            },
            headers=HEADERS,
        )

        assert response.status_code == 200
        assert "pagination" not in response.json() or response.json()["pagination"] is None
        search_query = search_service.search_documents.await_args.args[0]
        assert search_query.organization_id == "7"
        assert search_query.filters.file_type == ["pdf"]
        assert search_query.filters.date_range.from_ == "2024-01-01"
        assert search_query.pagination.from_ == 40
        assert search_query.search_type == SearchType.FUZZY

    def test_suggestions(self, client, search_service):
        response = client.get("/search/suggestions", params={"q": "bu"}, headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == {"success": True, "suggestions": ["Quarterly budget report"]}
        search_service.get_search_suggestions.assert_awaited_once_with("bu", "7")


class TestManageRoutes:
    def test_index_file(self, client, integration_service):
        response = client.post("/search/manage", json={"action": "index_file", "file_id": "101"}, headers=HEADERS)

        assert response.status_code == 200
        assert response.json()["success"] is True
        integration_service.index_file.assert_awaited_once_with("101", "7")

    def test_file_action_requires_file_id(self, client):
        response = client.post("/search/manage", json={"action": "remove_file"}, headers=HEADERS)

        assert response.status_code == 400

    def test_remove_file_failure(self, client):
        response = client.post("/search/manage", json={"action": "remove_file", "file_id": "101"}, headers=HEADERS)

        assert response.json() == {
            "success": False,
            "action": "remove_file",
            "message": "Failed to remove file from index",
            "indexed": None,
            "failed": None,
        }

    def test_validation_error_is_bad_request(self, client, integration_service):
        integration_service.index_file.side_effect = DocumentValidationError("title", "is required and cannot be empty")

        response = client.post("/search/manage", json={"action": "index_file", "file_id": "101"}, headers=HEADERS)

        assert response.status_code == 400
        assert response.json()["field"] == "title"

    def test_bulk_index(self, client, integration_service):
        response = client.post(
            "/search/manage", json={"action": "bulk_index", "limit": 10, "offset": 20}, headers=HEADERS
        )

        assert response.json()["indexed"] == 9
        assert response.json()["failed"] == 1
        integration_service.bulk_index_files.assert_awaited_once_with("7", limit=10, offset=20)

    def test_reindex_all(self, client, integration_service):
        response = client.post("/search/manage", json={"action": "reindex_all"}, headers=HEADERS)

        assert response.json()["success"] is True
        integration_service.reindex_organization.assert_awaited_once_with("7")

    def test_health_check_action(self, client):
        response = client.post("/search/manage", json={"action": "health_check"}, headers=HEADERS)

        assert response.json()["success"] is False
        assert response.json()["message"] == "cluster status: red"

    def test_unknown_action(self, client):
        response = client.post("/search/manage", json={"action": "drop_index"}, headers=HEADERS)

        assert response.status_code == 422

    def test_get_manage_is_health(self, client):
        response = client.get("/search/manage", headers=HEADERS)

        assert response.json() == {"success": False, "status": "unhealthy", "message": "cluster status: red"}

    def test_health(self, client):
        response = client.get("/health", headers=HEADERS)

        body = response.json()
        assert body["status"] == "ok"
        assert body["search"]["status"] == "healthy"
        assert body["database"] is True
