"""Exceptions raised across the search subsystem."""


class DocumentValidationError(ValueError):
    """A DocumentContent was rejected before reaching the search backend.

    Attributes:
        field (str): The offending field name.
        reason (str): Human-readable reason.
    """

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Document validation failed on '{field}': {reason}")


class SearchBackendError(Exception):
    """A call to the search cluster failed (transport error or non-2xx status).

    Attributes:
        status_code (int | None): HTTP status returned by the cluster, if any.
        body (str | None): Raw response body returned by the cluster, if any.
    """

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)
