"""
Catalog error taxonomy.

Repository and upload code raise these; `src.api.main` maps them to JSON
responses of the shape {"error": <code>, "message": <text>}.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class CatalogError(Exception):
    """Base class for errors that carry an HTTP status and a stable error code."""

    status_code = 500
    error = "internal_error"

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message}


class ValidationFailedError(CatalogError):
    """Missing or malformed required input."""

    status_code = 400
    error = "validation_failed"


class NotFoundError(CatalogError):
    """An id, or a referenced relation, does not resolve."""

    status_code = 404
    error = "not_found"


class ConflictError(CatalogError):
    """The write would violate a uniqueness constraint."""

    status_code = 409
    error = "conflict"


class UploadFailedError(CatalogError):
    """An upload provider call failed; the request is aborted before any write."""

    status_code = 502
    error = "upload_failed"
