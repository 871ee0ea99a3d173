"""
Unit tests for the file repository SQL and the database client
"""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.clients.database.DatabaseClient import DatabaseClient
from shared.clients.database.FileRepository import FileRepository, escape_like
from shared.models.search import DateRange, SearchFilters, SearchQuery, SizeRange


@pytest.fixture
def database_client():
    client = MagicMock(spec=DatabaseClient)
    client.fetch_all = AsyncMock(return_value=[])
    return client


@pytest.fixture
def repository(helper_config, database_client):
    return FileRepository(helper_config, database_client)


class TestSearchStatement:
    """Tests for the parameterized search statement"""

    def test_is_scoped_to_tenant(self, repository):
        statement = repository.build_search_statement(SearchQuery(query="budget", organization_id="7"), False, 100)
        params = statement.compile().params

        assert "f.organization_id = :organization_id" in statement.text
        assert params["organization_id"] == "7"
        assert params["is_deleted"] is False
        assert params["is_active"] is True
        assert params["limit"] == 100
        assert "ORDER BY f.created_at DESC LIMIT :limit" in statement.text

    def test_unindexed_restriction_only_when_asked(self, repository):
        search_query = SearchQuery(query="budget", organization_id="7")

        hybrid = repository.build_search_statement(search_query, True, 100)
        full = repository.build_search_statement(search_query, False, 100)

        assert "sis.index_status IS NULL OR sis.index_status <> 'indexed'" in hybrid.text
        assert "search_index_status" not in full.text

    def test_text_is_bound_not_concatenated(self, repository):
        hostile = "'; DROP TABLE files; --"
        statement = repository.build_search_statement(SearchQuery(query=hostile, organization_id="7"), False, 100)

        assert hostile not in statement.text
        assert "DROP TABLE" not in statement.text
        assert statement.compile().params["pattern"] == "%'; drop table files; --%"

    def test_like_wildcards_are_escaped(self, repository):
        statement = repository.build_search_statement(SearchQuery(query="50%_Off!", organization_id="7"), False, 100)

        assert statement.compile().params["pattern"] == "%50!%!_off!!%"
        assert "ESCAPE '!'" in statement.text

    def test_text_matches_tag_rows(self, repository):
        statement = repository.build_search_statement(SearchQuery(query="q3", organization_id="7"), True, 100)

        assert "FROM file_tags tt WHERE tt.file_id = f.id AND LOWER(tt.tag) LIKE :pattern" in statement.text
        assert "f.tags" not in statement.text

    def test_escape_like(self):
        assert escape_like("a%b_c!d") == "a!%b!_c!!d"

    def test_wildcard_query_has_no_text_condition(self, repository):
        statement = repository.build_search_statement(SearchQuery(query="*", organization_id="7"), False, 100)

        assert "pattern" not in statement.compile().params

    def test_filters_are_bound(self, repository):
        filters = SearchFilters(
            department=["Finance"],
            file_type=["pdf", "docx"],
            author=["Jane Doe"],
            tags=["q3"],
            visibility=["org"],
            date_range=DateRange(from_="2024-01-01T00:00:00Z", to="2024-12-31"),
            size_range=SizeRange(min=1, max=99),
            folder_path="Rep_orts",
            has_content=False,
            ocr_confidence_min=80.0,
        )
        statement = repository.build_search_statement(SearchQuery(organization_id="7", filters=filters), True, 50)
        params = statement.compile().params

        assert params["department"] == ["Finance"]
        assert params["file_type"] == ["pdf", "docx"]
        assert params["author"] == ["Jane Doe"]
        assert params["tags"] == ["q3"]
        assert params["visibility"] == ["org"]
        assert isinstance(params["date_from"], datetime)
        assert params["date_to"] == datetime(2024, 12, 31)
        assert (params["size_min"], params["size_max"]) == (1, 99)
        assert params["folder_pattern"] == "%rep!_orts%"
        assert params["ocr_confidence_min"] == 80.0
        assert "ft.tag IN :tags" in statement.text
        assert "NOT (COALESCE(etc.extracted_text, '') <> ''" in statement.text

    def test_unparseable_date_is_ignored(self, repository):
        filters = SearchFilters(date_range=DateRange(from_="last week"))
        statement = repository.build_search_statement(SearchQuery(organization_id="7", filters=filters), False, 10)

        assert "date_from" not in statement.compile().params
        assert "f.created_at >=" not in statement.text


class TestIndexingQueries:
    @pytest.mark.asyncio
    async def test_unknown_file(self, repository, database_client):
        assert await repository.get_file_for_indexing("404", "7") is None
        database_client.fetch_all.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_file_comes_with_tags(self, repository, database_client):
        database_client.fetch_all.side_effect = [
            [{"file_id": 101, "title": "Budget"}],
            [{"name": "finance"}, {"name": "q3"}],
        ]

        row = await repository.get_file_for_indexing("101", "7")

        assert row["tags"] == ["finance", "q3"]
        file_statement = database_client.fetch_all.await_args_list[0].args[0]
        assert file_statement.compile().params["organization_id"] == "7"

    @pytest.mark.asyncio
    async def test_list_files_pages_by_offset(self, repository, database_client):
        database_client.fetch_all.side_effect = [[{"file_id": 1}, {"file_id": 2}], [], []]

        rows = await repository.list_files_for_indexing("7", limit=50, offset=100)

        assert [r["tags"] for r in rows] == [[], []]
        params = database_client.fetch_all.await_args_list[0].args[0].compile().params
        assert (params["limit"], params["offset"]) == (50, 100)

    @pytest.mark.asyncio
    async def test_count_files(self, repository, database_client):
        database_client.fetch_all.return_value = [{"count": 42}]

        assert await repository.count_files("7") == 42


class TestDatabaseClient:
    @pytest.mark.asyncio
    async def test_query_before_boot_fails(self, helper_config):
        client = DatabaseClient(helper_config)

        with pytest.raises(RuntimeError):
            await client.fetch_all(MagicMock())

    @pytest.mark.asyncio
    async def test_healthcheck_reports_failure(self, helper_config):
        assert await DatabaseClient(helper_config).do_healthcheck() is False
