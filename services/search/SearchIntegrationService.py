"""Search integration service.

Loads files of a tenant from the database, turns them into DocumentContent
and pushes them through the hybrid search service into the index.
"""

import asyncio

from shared.clients.database.FileRepository import FileRepository
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import DocumentContent
from shared.models.errors import DocumentValidationError
from shared.models.search import HealthStatus
from services.search.HybridSearchService import HybridSearchService

REINDEX_BATCH_SIZE = 50  # files per database page during a full reindex
INDEX_CONCURRENCY = 5    # max parallel index calls within a batch
DEFAULT_LANGUAGE = "en"


def build_document_content(row: dict) -> DocumentContent:
    """Build the indexable document from a FileRepository row.

    Args:
        row (dict): A row of FileRepository.get_file_for_indexing or list_files_for_indexing.

    Returns:
        DocumentContent: The document; not validated yet.
    """
    return DocumentContent(
        file_id=str(row["file_id"]),
        organization_id=str(row["organization_id"]),
        title=row.get("title") or "",
        content=row.get("description") or row.get("ai_description") or "",
        extracted_text=row.get("content") or "",
        author=row.get("author") or "",
        department=row.get("department") or "",
        tags=row.get("tags") or [],
        file_type=row.get("file_type") or "other",
        mime_type=row.get("mime_type") or "application/octet-stream",
        size_bytes=row.get("size_bytes") or 0,
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
        ocr_confidence=row.get("ocr_confidence") or 0,
        language=row.get("language") or DEFAULT_LANGUAGE,
        visibility=row.get("visibility") or "private",
        folder_path=row.get("folder_path") or "",
    )


class SearchIntegrationService:
    """Keeps the search index in line with the files of the database."""

    def __init__(
        self,
        helper_config: HelperConfig,
        search_service: HybridSearchService,
        file_repository: FileRepository,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._search_service = search_service
        self._file_repository = file_repository

    ##########################################
    ############### SINGLE FILE ##############
    ##########################################

    async def index_file(self, file_id: str, organization_id: str) -> bool:
        """Index one file of a tenant.

        Args:
            file_id (str): The file to index.
            organization_id (str): Tenant the file must belong to.

        Returns:
            bool: False if the file is unknown to this tenant or indexing failed.

        Raises:
            DocumentValidationError: If the stored file does not make a valid document.
        """
        row = await self._file_repository.get_file_for_indexing(file_id, organization_id)
        if row is None:
            self.logging.warning("File %s not found for organization %s, nothing to index.", file_id, organization_id)
            return False
        return await self._search_service.index_document(build_document_content(row))

    async def remove_file(self, file_id: str, organization_id: str) -> bool:
        return await self._search_service.delete_document(file_id, organization_id)

    ##########################################
    ################# BULK ###################
    ##########################################

    async def bulk_index_files(self, organization_id: str, limit: int = 100, offset: int = 0) -> dict[str, int]:
        """Index one page of a tenant's files.

        Args:
            organization_id (str): The tenant.
            limit (int): Page size.
            offset (int): Page start, newest files first.

        Returns:
            dict[str, int]: {"success": n, "failed": m}. Validation errors count as failures.
        """
        rows = await self._file_repository.list_files_for_indexing(organization_id, limit=limit, offset=offset)
        if not rows:
            return {"success": 0, "failed": 0}

        sem = asyncio.Semaphore(INDEX_CONCURRENCY)
        results = await asyncio.gather(
            *[self._index_row(row, sem) for row in rows],
            return_exceptions=True,
        )

        success = sum(1 for r in results if r is True)
        failed = len(results) - success
        for row, result in zip(rows, results):
            if isinstance(result, Exception):
                self.logging.error("Bulk index of file %s failed: %s", row.get("file_id"), result)

        self.logging.info(
            "Bulk index for organization %s (offset %d): %d indexed, %d failed.",
            organization_id, offset, success, failed,
        )
        return {"success": success, "failed": failed}

    async def _index_row(self, row: dict, sem: asyncio.Semaphore) -> bool:
        async with sem:
            try:
                content = build_document_content(row)
            except ValueError as exc:
                raise DocumentValidationError("document", str(exc)) from exc
            return await self._search_service.index_document(content)

    async def reindex_organization(self, organization_id: str) -> bool:
        """Walk all files of a tenant in batches and index them.

        Returns:
            bool: True only if no file failed.
        """
        total = await self._file_repository.count_files(organization_id)
        self.logging.info("Reindexing %d files for organization %s...", total, organization_id)

        # the index may be missing on a fresh cluster
        await self._search_service.create_index()

        indexed = 0
        failed = 0
        for offset in range(0, total, REINDEX_BATCH_SIZE):
            result = await self.bulk_index_files(organization_id, limit=REINDEX_BATCH_SIZE, offset=offset)
            indexed += result["success"]
            failed += result["failed"]

        self.logging.info(
            "Reindex complete for organization %s: %d indexed, %d failed.", organization_id, indexed, failed,
            color="green" if failed == 0 else "yellow",
        )
        return failed == 0

    async def health_check(self) -> HealthStatus:
        return await self._search_service.health_check()
