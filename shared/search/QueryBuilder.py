"""Query builder.

Turns a SearchQuery into the engine-neutral parts of a search request:
boolean query, aggregations, highlight and sort. The engine adapters wrap
these parts into their own request body.
"""

from dataclasses import dataclass

from shared.models.search import SearchFilters, SearchQuery, SearchType
from shared.search.AdvancedQueryParser import AdvancedQueryParser

SEARCH_FIELDS = [
    "title^3",
    "content^2",
    "extracted_text^1.5",
    "author.text^1.2",
    "department.text^1.1",
    "tags.text^1.1",
]

# facet name → (index field, bucket cap)
FACET_FIELDS: dict[str, tuple[str, int]] = {
    "departments": ("department", 50),
    "file_types": ("file_type", 20),
    "authors": ("author", 50),
    "tags": ("tags", 100),
    "visibility": ("visibility", 10),
}

HIGHLIGHT_FRAGMENT_SIZE = 150
HIGHLIGHT_PRE_TAG = "<mark>"
HIGHLIGHT_POST_TAG = "</mark>"

# caller facing sort field → index field
SORTABLE_FIELDS: dict[str, str] = {
    "_score": "_score",
    "relevance": "_score",
    "title": "title.keyword",
    "created_at": "created_at",
    "updated_at": "updated_at",
    "indexed_at": "indexed_at",
    "size_bytes": "size_bytes",
    "file_type": "file_type",
    "author": "author",
    "department": "department",
    "visibility": "visibility",
    "ocr_confidence": "ocr_confidence",
}

_WILDCARD_SPECIALS = ("\\", "*", "?")


@dataclass
class BackendQuery:
    """Engine-neutral parts of a search request."""

    query: dict
    aggregations: dict
    sort: list
    from_: int
    size: int
    highlight: dict | None = None
    parsed_query: str = "*"


def escape_wildcard(value: str) -> str:
    for special in _WILDCARD_SPECIALS:
        value = value.replace(special, "\\" + special)
    return value


class QueryBuilder:
    def __init__(self, helper_config):
        self.logging = helper_config.get_logger()
        self._advanced_parser = AdvancedQueryParser()

    ##########################################
    ################ CORE ####################
    ##########################################

    def build(self, search_query: SearchQuery, from_: int | None = None, size: int | None = None) -> BackendQuery:
        """Build the backend query parts for a search request.

        Args:
            search_query (SearchQuery): The incoming request.
            from_ (int | None): Overrides the request offset (the hybrid search asks for a window from 0).
            size (int | None): Overrides the request page size.

        Returns:
            BackendQuery: Query, aggregations, sort, highlight and paging.
        """
        text_clause, parsed_query = self._build_text_clause(search_query)
        must: list[dict] = [text_clause]
        must_not: list[dict] = []

        # tenant scope is always the first filter and never optional
        filters: list[dict] = [{"term": {"organization_id": search_query.organization_id}}]
        filters.extend(self._build_filters(search_query.filters, must_not))

        bool_query: dict = {"must": must, "filter": filters}
        if must_not:
            bool_query["must_not"] = must_not

        return BackendQuery(
            query={"bool": bool_query},
            aggregations=self._build_aggregations(),
            sort=self._build_sort(search_query),
            from_=search_query.pagination.from_ if from_ is None else from_,
            size=search_query.pagination.size if size is None else size,
            highlight=self._build_highlight() if search_query.highlight else None,
            parsed_query=parsed_query,
        )

    ##########################################
    ############### TEXT QUERY ###############
    ##########################################

    def _build_text_clause(self, search_query: SearchQuery) -> tuple[dict, str]:
        """Returns the scoring clause and a readable form of what was parsed."""
        if not search_query.has_text_query():
            return {"match_all": {}}, "*"

        text = search_query.query.strip()
        search_type = search_query.search_type

        if search_type == SearchType.EXACT:
            return {"multi_match": {"query": text, "fields": SEARCH_FIELDS, "type": "phrase"}}, text

        if search_type == SearchType.FUZZY:
            return {
                "multi_match": {
                    "query": text,
                    "fields": SEARCH_FIELDS,
                    "fuzziness": "AUTO",
                    "prefix_length": 1,
                    "max_expansions": 50,
                }
            }, text

        if search_type == SearchType.ADVANCED:
            clause = self._advanced_parser.parse(text)
            self.logging.debug("Advanced query %r parsed as %r", text, clause)
            return self._advanced_parser.to_query(clause), self._advanced_parser.describe(clause)

        return {
            "multi_match": {
                "query": text,
                "fields": SEARCH_FIELDS,
                "type": "best_fields",
                "fuzziness": "AUTO",
                "operator": "and",
            }
        }, text

    ##########################################
    ################ FILTERS #################
    ##########################################

    def _build_filters(self, filters: SearchFilters, must_not: list[dict]) -> list[dict]:
        clauses: list[dict] = []

        for field in ("department", "file_type", "author", "tags", "visibility"):
            values = getattr(filters, field)
            if values:
                clauses.append({"terms": {field: list(values)}})

        if filters.date_range and (filters.date_range.from_ or filters.date_range.to):
            date_bounds: dict = {}
            if filters.date_range.from_:
                date_bounds["gte"] = filters.date_range.from_
            if filters.date_range.to:
                date_bounds["lte"] = filters.date_range.to
            clauses.append({"range": {"created_at": date_bounds}})

        if filters.size_range and (filters.size_range.min is not None or filters.size_range.max is not None):
            size_bounds: dict = {}
            if filters.size_range.min is not None:
                size_bounds["gte"] = filters.size_range.min
            if filters.size_range.max is not None:
                size_bounds["lte"] = filters.size_range.max
            clauses.append({"range": {"size_bytes": size_bounds}})

        if filters.folder_path:
            clauses.append({
                "wildcard": {
                    "folder_path.keyword": {
                        "value": f"*{escape_wildcard(filters.folder_path)}*",
                        "case_insensitive": True,
                    }
                }
            })

        if filters.has_content is not None:
            has_content_check = {"term": {"has_content": True}}
            if filters.has_content:
                clauses.append(has_content_check)
            else:
                must_not.append(has_content_check)

        if filters.ocr_confidence_min is not None:
            clauses.append({"range": {"ocr_confidence": {"gte": filters.ocr_confidence_min}}})

        return clauses

    ##########################################
    ########## AGGS / HIGHLIGHT / SORT #######
    ##########################################

    def _build_aggregations(self) -> dict:
        return {
            name: {"terms": {"field": field, "size": size}}
            for name, (field, size) in FACET_FIELDS.items()
        }

    def _build_highlight(self) -> dict:
        return {
            "fields": {
                "title": {"fragment_size": HIGHLIGHT_FRAGMENT_SIZE, "number_of_fragments": 1},
                "content": {"fragment_size": HIGHLIGHT_FRAGMENT_SIZE, "number_of_fragments": 3},
                "extracted_text": {"fragment_size": HIGHLIGHT_FRAGMENT_SIZE, "number_of_fragments": 2},
            },
            "pre_tags": [HIGHLIGHT_PRE_TAG],
            "post_tags": [HIGHLIGHT_POST_TAG],
        }

    def _build_sort(self, search_query: SearchQuery) -> list:
        if search_query.sort:
            index_field = SORTABLE_FIELDS.get(search_query.sort.field)
            if index_field:
                return [{index_field: {"order": search_query.sort.order}}]
            self.logging.warning(
                "Ignoring unsupported sort field %r, using default sort.", search_query.sort.field
            )

        if search_query.has_text_query():
            return ["_score", {"created_at": {"order": "desc"}}]
        return [{"created_at": {"order": "desc"}}]
