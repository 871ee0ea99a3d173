"""Validation and normalization of documents before they are indexed."""

import hashlib
import re
from datetime import datetime, timezone

from shared.helper.HelperConfig import HelperConfig
from shared.models.document import VISIBILITY_VALUES, DocumentContent, IndexedDocument
from shared.models.errors import DocumentValidationError

MAX_TITLE_LENGTH = 500
MAX_CONTENT_LENGTH = 50_000
MAX_EXTRACTED_TEXT_LENGTH = 100_000
MAX_AUTHOR_LENGTH = 200
MAX_DEPARTMENT_LENGTH = 100
ELLIPSIS = "..."

# control characters except \t, \n and \r
_CONTROL_CHARS = re.compile(r"[\x01-\x08\x0B\x0C\x0E-\x1F\x7F]")


def make_document_id(file_id: str, organization_id: str) -> str:
    """Build the deterministic backend ID of a document.

    Re-indexing the same file of the same tenant always targets the same
    backend record.

    Args:
        file_id (str): File ID in the primary database.
        organization_id (str): Tenant ID.

    Returns:
        str: SHA-256 hex digest of "organization_id:file_id".
    """
    return hashlib.sha256(f"{organization_id}:{file_id}".encode("utf-8")).hexdigest()


def strip_unsafe_chars(text: str) -> str:
    """Remove null bytes and replace other control characters with spaces."""
    return _CONTROL_CHARS.sub(" ", text.replace("\x00", ""))


class ContentSanitizer:
    """Validates, cleans and truncates a DocumentContent for indexing."""

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate(self, content: DocumentContent) -> None:
        """Hard validation, nothing is sent to the backend if this fails.

        Args:
            content (DocumentContent): The document to check.

        Raises:
            DocumentValidationError: On the first invalid field.
        """
        for field in ("file_id", "organization_id", "title"):
            value = getattr(content, field)
            if not isinstance(value, str):
                raise DocumentValidationError(field, "must be a string")
            if not value.strip():
                raise DocumentValidationError(field, "is required and cannot be empty")

        if content.size_bytes is not None and content.size_bytes < 0:
            raise DocumentValidationError("size_bytes", "must be a non-negative number")

        if content.visibility is not None and content.visibility not in VISIBILITY_VALUES:
            raise DocumentValidationError("visibility", f"must be one of: {', '.join(VISIBILITY_VALUES)}")

        for field in ("created_at", "updated_at"):
            value = getattr(content, field)
            if value is not None and not isinstance(value, datetime):
                raise DocumentValidationError(field, "must be a valid date")

    ##########################################
    ############### PROCESSING ###############
    ##########################################

    def sanitize(self, content: DocumentContent) -> IndexedDocument:
        """Clean, truncate and default a validated document.

        Never rejects: oversized fields are cut to their limit (ending in an
        ellipsis), unsafe characters are stripped and missing optional fields
        are coerced to empty values.

        Args:
            content (DocumentContent): A document that passed validate().

        Returns:
            IndexedDocument: The body to write to the backend.
        """
        file_id = content.file_id
        title = self._clean_and_truncate(file_id, "title", content.title, MAX_TITLE_LENGTH)
        text = self._clean_and_truncate(file_id, "content", content.content, MAX_CONTENT_LENGTH)
        extracted = self._clean_and_truncate(file_id, "extracted_text", content.extracted_text, MAX_EXTRACTED_TEXT_LENGTH)
        author = self._clean_and_truncate(file_id, "author", content.author, MAX_AUTHOR_LENGTH)
        department = self._clean_and_truncate(file_id, "department", content.department, MAX_DEPARTMENT_LENGTH)
        folder_path = strip_unsafe_chars(content.folder_path or "")
        tags = self._clean_tags(content.tags)

        return IndexedDocument(
            file_id=file_id,
            organization_id=content.organization_id,
            title=title,
            content=text,
            extracted_text=extracted,
            author=author,
            department=department,
            tags=tags,
            file_type=content.file_type or "other",
            mime_type=content.mime_type or "application/octet-stream",
            size_bytes=content.size_bytes or 0,
            created_at=content.created_at,
            updated_at=content.updated_at,
            ocr_confidence=content.ocr_confidence,
            language=content.language,
            visibility=content.visibility or "private",
            folder_path=folder_path,
            has_content=bool(text.strip() or extracted.strip()),
            indexed_at=datetime.now(timezone.utc),
            search_text=self.build_search_text(title, text, extracted, author, department, tags),
        )

    @staticmethod
    def build_search_text(title: str, content: str, extracted_text: str, author: str, department: str, tags: list[str]) -> str:
        """Concatenate all searchable text into one field for the simplest fallback query."""
        parts = [title, content, extracted_text, author, department, *tags]
        return " ".join(part for part in parts if part)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _clean_and_truncate(self, file_id: str, field: str, value: str | None, max_length: int) -> str:
        if not value:
            return ""
        cleaned = strip_unsafe_chars(value)
        if len(cleaned) <= max_length:
            return cleaned
        truncated = cleaned[: max_length - len(ELLIPSIS)] + ELLIPSIS
        self.logging.warning(
            "%s truncated for file %s: %d -> %d characters", field, file_id, len(cleaned), len(truncated)
        )
        return truncated

    def _clean_tags(self, tags: list[str] | None) -> list[str]:
        cleaned: list[str] = []
        for tag in tags or []:
            if not isinstance(tag, str):
                continue
            tag = strip_unsafe_chars(tag).strip()
            if tag and tag not in cleaned:
                cleaned.append(tag)
        return cleaned
