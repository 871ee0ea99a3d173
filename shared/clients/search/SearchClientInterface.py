from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import DocumentContent
from shared.models.errors import SearchBackendError
from shared.models.search import HealthStatus, QueryInfo, SearchQuery, SearchResponse
from shared.search.ContentSanitizer import ContentSanitizer, make_document_id
from shared.search.QueryBuilder import BackendQuery, QueryBuilder
from shared.search.ResultMapper import ResultMapper

SUGGESTION_MIN_PREFIX = 2
SUGGESTION_MAX_RESULTS = 10

INDEX_MAPPINGS = {
    "properties": {
        "file_id": {"type": "keyword"},
        "organization_id": {"type": "keyword"},
        "title": {"type": "text", "analyzer": "standard", "fields": {"keyword": {"type": "keyword", "ignore_above": 512}}},
        "content": {"type": "text", "analyzer": "standard"},
        "extracted_text": {"type": "text", "analyzer": "standard"},
        "search_text": {"type": "text", "analyzer": "standard"},
        "author": {"type": "keyword", "fields": {"text": {"type": "text"}}},
        "department": {"type": "keyword", "fields": {"text": {"type": "text"}}},
        "tags": {"type": "keyword", "fields": {"text": {"type": "text"}}},
        "file_type": {"type": "keyword"},
        "mime_type": {"type": "keyword"},
        "visibility": {"type": "keyword"},
        "language": {"type": "keyword"},
        "folder_path": {"type": "text", "fields": {"keyword": {"type": "keyword", "ignore_above": 1024}}},
        "has_content": {"type": "boolean"},
        "size_bytes": {"type": "long"},
        "ocr_confidence": {"type": "float"},
        "created_at": {"type": "date"},
        "updated_at": {"type": "date"},
        "indexed_at": {"type": "date"},
    }
}

INDEX_SETTINGS = {"number_of_shards": 1, "number_of_replicas": 1}


class SearchClientInterface(ClientInterface):
    """Contract of a search cluster adapter.

    The operations are implemented once here on top of a handful of engine
    hooks (endpoints, payload builders, response parsers) that each concrete
    engine provides.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._index_prefix = self.get_config_val("INDEX_PREFIX", default="corporate", val_type="string")
        self._query_builder = QueryBuilder(helper_config)
        self._result_mapper = ResultMapper(helper_config)
        self._sanitizer = ContentSanitizer(helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "search"
        """
        return "search"

    def get_index_name(self) -> str:
        """
        Returns the name of the documents index. E.g. "corporate_documents"
        """
        return f"{self._index_prefix}_documents"

    ################ ENDPOINTS ##################
    def _get_endpoint_healthcheck(self) -> str:
        return "/_cluster/health"

    def _get_endpoint_index(self) -> str:
        return f"/{self.get_index_name()}"

    def _get_endpoint_document(self, document_id: str) -> str:
        return f"/{self.get_index_name()}/_doc/{document_id}"

    def _get_endpoint_search(self) -> str:
        return f"/{self.get_index_name()}/_search"

    ################ PAYLOAD BUILDER ##################
    def get_create_index_payload(self) -> dict:
        """
        Returns the body of the create index request (mappings and settings).
        """
        return {"mappings": INDEX_MAPPINGS, "settings": INDEX_SETTINGS}

    @abstractmethod
    def get_search_payload(self, backend_query: BackendQuery) -> dict:
        """
        Wraps the engine-neutral query parts into the engine's search request body.

        Args:
            backend_query (BackendQuery): Query, aggregations, sort, highlight and paging.

        Returns:
            dict: The search request body.
        """
        pass

    @abstractmethod
    def get_suggestion_payload(self, prefix: str, organization_id: str, size: int) -> dict:
        """
        Builds the search request body for title prefix suggestions.

        Args:
            prefix (str): The partial query typed by the user.
            organization_id (str): Tenant scope, must always be part of the query.
            size (int): Maximum number of hits to request.

        Returns:
            dict: The search request body.
        """
        pass

    ################ RESPONSE PARSER ##################
    def extract_cluster_status(self, raw_response: dict) -> str:
        """
        Returns the cluster status ("green", "yellow", "red") from a cluster health response.
        """
        return str(raw_response.get("status", "unknown"))

    @abstractmethod
    def extract_total_hits(self, raw_response: dict) -> int:
        """
        Returns the total number of matching documents from a search response.
        """
        pass

    @abstractmethod
    def extract_suggestions(self, raw_response: dict) -> list[str]:
        """
        Returns the suggested titles, in backend order, from a suggestion search response.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_health_check(self) -> HealthStatus:
        """Ping the cluster. Healthy only if the cluster status is green or yellow.

        Returns:
            HealthStatus: Never raises.
        """
        engine = self._get_engine_name()
        try:
            resp = await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck(), raise_on_error=True)
            status = self.extract_cluster_status(resp.json())
        except (SearchBackendError, ValueError) as exc:
            return HealthStatus(status="unhealthy", message=str(exc) or "Health check failed")

        if status in ("green", "yellow"):
            return HealthStatus(status="healthy", message=f"{engine} cluster is {status}")
        return HealthStatus(status="unhealthy", message=f"{engine} cluster status: {status}")

    async def do_existence_check(self) -> bool:
        """Check if the documents index exists.

        Raises:
            SearchBackendError: If the cluster answers with anything but 200/404.
        """
        resp = await self.do_request(method="HEAD", endpoint=self._get_endpoint_index())
        if resp.status_code == 404:
            return False
        if resp.status_code >= 300:
            raise SearchBackendError(
                f"Index existence check failed with status {resp.status_code}",
                status_code=resp.status_code,
                body=resp.text,
            )
        return True

    async def do_create_index(self) -> bool:
        """Create the documents index if it does not exist yet.

        Returns:
            bool: True if the index was created, False if it already existed.

        Raises:
            SearchBackendError: If the index cannot be checked or created.
        """
        if await self.do_existence_check():
            return False

        resp = await self.do_request(method="PUT", json=self.get_create_index_payload(), endpoint=self._get_endpoint_index())
        # another process won the race, same outcome
        if resp.status_code == 400 and "resource_already_exists_exception" in resp.text:
            return False
        if resp.status_code >= 300:
            self.logging.error("Create index %s failed with status %d: %s", self.get_index_name(), resp.status_code, resp.text)
            raise SearchBackendError(
                f"Failed to create index {self.get_index_name()}", status_code=resp.status_code, body=resp.text
            )
        self.logging.info("Created %s index: %s", self._get_engine_name(), self.get_index_name())
        return True

    async def do_index_document(self, content: DocumentContent) -> bool:
        """Validate, sanitize and upsert one document under its deterministic ID.

        Args:
            content (DocumentContent): The document to index.

        Returns:
            bool: True on success, False if the backend rejected or could not be reached.

        Raises:
            DocumentValidationError: If the document is malformed. Nothing is sent in that case.
        """
        self._sanitizer.validate(content)
        document_id = make_document_id(content.file_id, content.organization_id)

        try:
            await self.do_create_index()
            document = self._sanitizer.sanitize(content)
            self.logging.info(
                "Indexing document %s - content: %d chars, extracted text: %d chars",
                document_id, len(document.content), len(document.extracted_text),
            )
            await self.do_request(
                method="PUT",
                json=document.model_dump(mode="json"),
                params={"refresh": "wait_for"},
                endpoint=self._get_endpoint_document(document_id),
                raise_on_error=True,
            )
        except Exception as exc:
            self.logging.error(
                "%s indexing error for document file_id=%s organization_id=%s title=%r content_length=%d extracted_text_length=%d: %s | response: %s",
                self._get_engine_name(),
                content.file_id,
                content.organization_id,
                content.title,
                len(content.content or ""),
                len(content.extracted_text or ""),
                exc,
                getattr(exc, "body", None),
            )
            return False

        self.logging.info("Document indexed successfully: %s", document_id)
        return True

    async def do_delete_document(self, file_id: str, organization_id: str) -> bool:
        """Delete one document by its deterministic ID.

        Returns:
            bool: True if the document was deleted, False otherwise (also when it did not exist).
        """
        document_id = make_document_id(file_id, organization_id)
        try:
            resp = await self.do_request(method="DELETE", endpoint=self._get_endpoint_document(document_id))
        except SearchBackendError as exc:
            self.logging.error("%s delete error for file_id=%s: %s", self._get_engine_name(), file_id, exc)
            return False

        if resp.status_code == 404:
            self.logging.warning("Document %s (file_id=%s) was not in the index.", document_id, file_id)
            return False
        if resp.status_code >= 300:
            self.logging.error(
                "%s delete for file_id=%s failed with status %d: %s",
                self._get_engine_name(), file_id, resp.status_code, resp.text,
            )
            return False

        self.logging.info("Document deleted: %s", document_id)
        return True

    async def do_search_documents(self, search_query: SearchQuery, from_: int | None = None, size: int | None = None) -> SearchResponse:
        """Run a search with aggregations and (optionally) highlighting.

        Args:
            search_query (SearchQuery): The tenant-scoped request.
            from_ (int | None): Overrides the request offset.
            size (int | None): Overrides the request page size.

        Returns:
            SearchResponse: Normalized results and facets.

        Raises:
            SearchBackendError: If the cluster cannot be reached or rejects the query.
        """
        backend_query = self._query_builder.build(search_query, from_=from_, size=size)
        resp = await self.do_request(
            method="POST",
            json=self.get_search_payload(backend_query),
            endpoint=self._get_endpoint_search(),
            raise_on_error=True,
        )
        try:
            raw_response = resp.json()
        except ValueError as exc:
            raise SearchBackendError(f"Search response is not valid JSON: {exc}", body=resp.text) from exc

        hits = (raw_response.get("hits") or {}).get("hits") or []
        return SearchResponse(
            results=self._result_mapper.map_hits(hits, search_query.query, search_query.organization_id),
            total=self.extract_total_hits(raw_response),
            took=raw_response.get("took", 0),
            facets=self._result_mapper.map_facets(raw_response.get("aggregations")),
            query_info=QueryInfo(
                parsed_query=backend_query.parsed_query,
                search_type=search_query.search_type.value,
                filters_applied=search_query.filters.count_applied(),
            ),
        )

    async def do_get_search_suggestions(self, prefix: str, organization_id: str) -> list[str]:
        """Suggest document titles for a partial query.

        Returns:
            list[str]: Up to SUGGESTION_MAX_RESULTS distinct titles; empty on short input or errors.
        """
        prefix = (prefix or "").strip()
        if len(prefix) < SUGGESTION_MIN_PREFIX:
            return []

        try:
            resp = await self.do_request(
                method="POST",
                json=self.get_suggestion_payload(prefix, organization_id, SUGGESTION_MAX_RESULTS),
                endpoint=self._get_endpoint_search(),
                raise_on_error=True,
            )
            suggestions = self.extract_suggestions(resp.json())
        except (SearchBackendError, ValueError) as exc:
            self.logging.error("Search suggestions error for organization %s: %s", organization_id, exc)
            return []

        unique: list[str] = []
        for title in suggestions:
            if title and title not in unique:
                unique.append(title)
        return unique[:SUGGESTION_MAX_RESULTS]
