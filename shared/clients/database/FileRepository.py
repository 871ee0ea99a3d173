"""Read-only queries against the file library tables.

Every statement is a text() clause with bound parameters; list filters use
expanding bind parameters and LIKE patterns are escaped, so no caller value
is ever concatenated into SQL. Every statement is scoped by organization_id.
"""

from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.sql.elements import TextClause

from shared.clients.database.DatabaseClient import DatabaseClient
from shared.helper.HelperConfig import HelperConfig
from shared.models.search import SearchQuery
from shared.search.ResultMapper import parse_datetime

LIKE_ESCAPE = "!"

_FILE_COLUMNS = """
    f.id AS file_id,
    f.name AS title,
    f.created_at,
    f.size_bytes,
    f.file_type,
    f.mime_type,
    f.visibility,
    COALESCE(oe.full_name, o.name) AS author,
    d.name AS department,
    COALESCE(etc.extracted_text, '') AS content
"""

_FILE_JOINS = """
FROM files f
LEFT JOIN organization_employees oe ON f.created_by = oe.id
LEFT JOIN organizations o ON f.organization_id = o.id
LEFT JOIN departments d ON f.department = d.name AND d.organization_id = f.organization_id
LEFT JOIN folders fo ON f.folder_id = fo.id
LEFT JOIN extracted_text_content etc ON f.id = etc.file_id AND etc.content_type = 'full_text'
"""

_LIVE_FILES = "f.organization_id = :organization_id AND f.is_deleted = :is_deleted AND f.is_active = :is_active"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so the value matches literally (used with ESCAPE '!')."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def contains_pattern(value: str) -> str:
    return f"%{escape_like(value.lower())}%"


class FileRepository:
    def __init__(self, helper_config: HelperConfig, database_client: DatabaseClient):
        self.logging = helper_config.get_logger()
        self._db = database_client

    ##########################################
    ############## SEARCH QUERIES ############
    ##########################################

    def build_search_statement(self, search_query: SearchQuery, only_unindexed: bool, limit: int) -> TextClause:
        """Build the substring search over the files table.

        Args:
            search_query (SearchQuery): The tenant-scoped request; its filters are applied as SQL predicates.
            only_unindexed (bool): Restrict to files whose index status is not "indexed".
            limit (int): Maximum number of rows.

        Returns:
            TextClause: The bound statement.
        """
        conditions = [_LIVE_FILES]
        params: dict[str, Any] = {
            "organization_id": search_query.organization_id,
            "is_deleted": False,
            "is_active": True,
            "limit": limit,
        }
        expanding: dict[str, list] = {}

        joins = _FILE_JOINS
        if only_unindexed:
            joins += "LEFT JOIN search_index_status sis ON f.id = sis.file_id\n"
            conditions.append("(sis.index_status IS NULL OR sis.index_status <> 'indexed')")

        if search_query.has_text_query():
            conditions.append(
                "(LOWER(f.name) LIKE :pattern ESCAPE '!'"
                " OR EXISTS (SELECT 1 FROM file_tags tt WHERE tt.file_id = f.id AND LOWER(tt.tag) LIKE :pattern ESCAPE '!')"
                " OR LOWER(f.ai_description) LIKE :pattern ESCAPE '!'"
                " OR LOWER(etc.extracted_text) LIKE :pattern ESCAPE '!')"
            )
            params["pattern"] = contains_pattern(search_query.query.strip())

        self._add_filter_conditions(search_query, conditions, params, expanding)

        sql = f"SELECT DISTINCT {_FILE_COLUMNS} {joins} WHERE {' AND '.join(conditions)} ORDER BY f.created_at DESC LIMIT :limit"
        statement = text(sql).bindparams(**params)
        for name, values in expanding.items():
            statement = statement.bindparams(bindparam(name, value=values, expanding=True))
        return statement

    def _add_filter_conditions(self, search_query: SearchQuery, conditions: list[str], params: dict, expanding: dict) -> None:
        filters = search_query.filters

        for name, column in (
            ("department", "d.name"),
            ("file_type", "f.file_type"),
            ("author", "oe.full_name"),
            ("visibility", "f.visibility"),
        ):
            values = getattr(filters, name)
            if values:
                conditions.append(f"{column} IN :{name}")
                expanding[name] = list(values)

        if filters.tags:
            conditions.append(
                "EXISTS (SELECT 1 FROM file_tags ft WHERE ft.file_id = f.id AND ft.tag IN :tags)"
            )
            expanding["tags"] = list(filters.tags)

        if filters.date_range:
            for bound, operator, raw in (("date_from", ">=", filters.date_range.from_), ("date_to", "<=", filters.date_range.to)):
                if not raw:
                    continue
                parsed = parse_datetime(raw)
                if parsed is None:
                    self.logging.warning("Ignoring unparseable %s filter value %r in database search", bound, raw)
                    continue
                conditions.append(f"f.created_at {operator} :{bound}")
                params[bound] = parsed

        if filters.size_range:
            if filters.size_range.min is not None:
                conditions.append("f.size_bytes >= :size_min")
                params["size_min"] = filters.size_range.min
            if filters.size_range.max is not None:
                conditions.append("f.size_bytes <= :size_max")
                params["size_max"] = filters.size_range.max

        if filters.folder_path:
            conditions.append("LOWER(fo.name) LIKE :folder_pattern ESCAPE '!'")
            params["folder_pattern"] = contains_pattern(filters.folder_path)

        if filters.has_content is not None:
            has_content = (
                "(COALESCE(etc.extracted_text, '') <> ''"
                " OR COALESCE(f.description, '') <> ''"
                " OR COALESCE(f.ai_description, '') <> '')"
            )
            conditions.append(has_content if filters.has_content else f"NOT {has_content}")

        if filters.ocr_confidence_min is not None:
            conditions.append("etc.confidence_score >= :ocr_confidence_min")
            params["ocr_confidence_min"] = filters.ocr_confidence_min

    async def search_files(self, search_query: SearchQuery, only_unindexed: bool, limit: int) -> list[dict[str, Any]]:
        """Run the substring search and return the raw rows."""
        return await self._db.fetch_all(self.build_search_statement(search_query, only_unindexed, limit))

    ##########################################
    ############# INDEXING QUERIES ###########
    ##########################################

    async def get_file_for_indexing(self, file_id: str, organization_id: str) -> dict[str, Any] | None:
        """Load one live file of a tenant with everything needed to index it.

        Returns:
            dict | None: The row including its "tags" list, or None if not found.
        """
        statement = text(
            f"""
            SELECT {self._indexing_columns()}
            {_FILE_JOINS}
            WHERE f.id = :file_id AND {_LIVE_FILES}
            """
        ).bindparams(file_id=file_id, organization_id=organization_id, is_deleted=False, is_active=True)
        rows = await self._db.fetch_all(statement)
        if not rows:
            return None
        row = rows[0]
        row["tags"] = await self.get_file_tags(row["file_id"])
        return row

    async def list_files_for_indexing(self, organization_id: str, limit: int, offset: int = 0) -> list[dict[str, Any]]:
        """Page through the live files of a tenant, newest first, with their tags."""
        statement = text(
            f"""
            SELECT {self._indexing_columns()}
            {_FILE_JOINS}
            WHERE {_LIVE_FILES}
            ORDER BY f.created_at DESC, f.id
            LIMIT :limit OFFSET :offset
            """
        ).bindparams(organization_id=organization_id, is_deleted=False, is_active=True, limit=limit, offset=offset)
        rows = await self._db.fetch_all(statement)
        for row in rows:
            row["tags"] = await self.get_file_tags(row["file_id"])
        return rows

    async def count_files(self, organization_id: str) -> int:
        statement = text(f"SELECT COUNT(*) AS count FROM files f WHERE {_LIVE_FILES}").bindparams(
            organization_id=organization_id, is_deleted=False, is_active=True
        )
        rows = await self._db.fetch_all(statement)
        return int(rows[0]["count"]) if rows else 0

    async def get_file_tags(self, file_id) -> list[str]:
        statement = text(
            "SELECT ft.tag AS name FROM file_tags ft WHERE ft.file_id = :file_id ORDER BY ft.tag"
        ).bindparams(file_id=file_id)
        rows = await self._db.fetch_all(statement)
        return [row["name"] for row in rows]

    @staticmethod
    def _indexing_columns() -> str:
        return f"""
            {_FILE_COLUMNS},
            f.organization_id,
            f.updated_at,
            f.description,
            f.ai_description,
            fo.name AS folder_path,
            etc.confidence_score AS ocr_confidence,
            etc.language
        """
