"""Maps raw backend responses into the service result and facet models."""

from datetime import datetime

from shared.helper.HelperConfig import HelperConfig
from shared.models.search import FacetBucket, SearchFacets, SearchHighlights, SearchResult
from shared.search.QueryBuilder import FACET_FIELDS

SNIPPET_MAX_LENGTH = 200
SNIPPET_CONTEXT_BEFORE = 50
SNIPPET_CONTEXT_AFTER = 150


def parse_datetime(value) -> datetime | None:
    """Parse an ISO-8601 value from the backend or database, None if unusable."""
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def generate_snippet(content: str, query: str | None = None, max_length: int = SNIPPET_MAX_LENGTH) -> str:
    """Build a bounded excerpt of a document, centered on the first match if possible.

    The whole query is looked up first, then its single terms. Without a
    match the excerpt starts at the beginning of the content.

    Args:
        content (str): The full text.
        query (str | None): The free-text query.
        max_length (int): Length of the fallback excerpt.

    Returns:
        str: The excerpt, with "..." marking cut ends.
    """
    if not content:
        return ""

    if query and query.strip() and query.strip() != "*":
        lowered = content.lower()
        needles = [query.strip()] + [term for term in query.split() if len(term) > 1]
        for needle in needles:
            index = lowered.find(needle.lower())
            if index == -1:
                continue
            start = max(0, index - SNIPPET_CONTEXT_BEFORE)
            end = min(len(content), index + len(needle) + SNIPPET_CONTEXT_AFTER)
            snippet = content[start:end]
            if start > 0:
                snippet = "..." + snippet
            if end < len(content):
                snippet = snippet + "..."
            return snippet

    return content[:max_length] + "..." if len(content) > max_length else content


class ResultMapper:
    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()

    def map_hits(self, hits: list[dict], query: str, organization_id: str) -> list[SearchResult]:
        """Convert raw backend hits into SearchResult models.

        Hits of another tenant are dropped, whatever the backend returned.

        Args:
            hits (list[dict]): The hits.hits list of a search response.
            query (str): The free-text query, used for snippets.
            organization_id (str): The tenant the search was scoped to.

        Returns:
            list[SearchResult]: Results in backend order.
        """
        results: list[SearchResult] = []
        for hit in hits:
            source = hit.get("_source") or {}
            if str(source.get("organization_id")) != str(organization_id):
                self.logging.error(
                    "Dropping hit %s of organization %r from a search scoped to organization %r",
                    hit.get("_id"), source.get("organization_id"), organization_id,
                )
                continue
            results.append(
                SearchResult(
                    file_id=str(source.get("file_id", "")),
                    title=source.get("title") or "",
                    content_snippet=generate_snippet(
                        source.get("content") or source.get("extracted_text") or "", query
                    ),
                    author=source.get("author") or None,
                    department=source.get("department") or None,
                    file_type=source.get("file_type") or "other",
                    size_bytes=source.get("size_bytes") or 0,
                    created_at=parse_datetime(source.get("created_at")),
                    score=hit.get("_score") or 0.0,
                    highlights=self._map_highlights(hit.get("highlight")),
                    source="index",
                )
            )
        return results

    def map_facets(self, aggregations: dict | None) -> SearchFacets:
        """Convert terms aggregations into facet buckets.

        Args:
            aggregations (dict | None): The aggregations block of a search response.

        Returns:
            SearchFacets: One bucket list per facet dimension, empty when missing.
        """
        aggregations = aggregations or {}
        facets: dict[str, list[FacetBucket]] = {}
        for name in FACET_FIELDS:
            buckets = (aggregations.get(name) or {}).get("buckets") or []
            facets[name] = [
                FacetBucket(key=str(bucket.get("key")), count=bucket.get("doc_count", 0))
                for bucket in buckets
            ]
        return SearchFacets(**facets)

    @staticmethod
    def extract_total(total) -> int:
        """Total hits are an int on older clusters and {"value": n} on newer ones."""
        if isinstance(total, int):
            return total
        if isinstance(total, dict):
            return int(total.get("value", 0))
        return 0

    @staticmethod
    def _map_highlights(highlight: dict | None) -> SearchHighlights | None:
        if not highlight:
            return None
        return SearchHighlights(
            title=highlight.get("title"),
            content=highlight.get("content") or highlight.get("extracted_text"),
        )
