"""Pydantic models for indexable document data.

Hierarchy:
  DocumentContent: the indexable representation of one library file, as
                     handed over by the upload/extraction collaborators.
  IndexedDocument: the sanitized body stored in the search backend,
                     including the derived search_text and indexed_at fields.
"""

from datetime import datetime

from pydantic import BaseModel

VISIBILITY_VALUES = ("private", "org", "public")


class DocumentContent(BaseModel):
    """Indexable representation of one file.

    file_id and organization_id together identify the backend record. The
    organization_id is mandatory and enforced as a tenant invariant on every
    index write.

    Optional fields may be None here; the sanitizer coerces them to empty
    values before anything reaches the backend.
    """

    # Core identity
    file_id: str
    organization_id: str
    title: str

    # Text
    content: str | None = ""
    extracted_text: str | None = None

    # Ownership / classification
    author: str | None = None
    department: str | None = None
    tags: list[str] | None = None
    file_type: str | None = "other"
    mime_type: str | None = "application/octet-stream"
    size_bytes: int | None = 0

    # Temporal metadata
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # Extraction metadata
    ocr_confidence: float | None = None
    language: str | None = None

    # Access / placement
    visibility: str | None = "private"
    folder_path: str | None = None


class IndexedDocument(BaseModel):
    """Sanitized document body as written to the search backend.

    No field is None where the backend schema expects a string.
    """

    file_id: str
    organization_id: str
    title: str
    content: str = ""
    extracted_text: str = ""
    author: str = ""
    department: str = ""
    tags: list[str] = []
    file_type: str = "other"
    mime_type: str = "application/octet-stream"
    size_bytes: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    ocr_confidence: float | None = None
    language: str | None = None
    visibility: str = "private"
    folder_path: str = ""
    has_content: bool = False
    indexed_at: datetime
    search_text: str = ""
