"""
OrgTags - Custom Exceptions.

Service-level error taxonomy with standardized error responses.
Store implementations raise their own errors (see modules.tags.store);
the directory service and resolver translate those into these.
"""

from typing import Any
from uuid import UUID


class OrgTagsException(Exception):
    """Base exception for OrgTags application."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationException(OrgTagsException):
    """Raised when the caller supplied blank, self-referential or malformed input."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details={"errors": errors} if errors else None,
        )


class NotFoundException(OrgTagsException):
    """Raised when a resource is not found."""

    def __init__(self, resource_type: str, resource_id: str | UUID):
        super().__init__(
            code="NOT_FOUND",
            message=f"{resource_type} not found: {resource_id}",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": str(resource_id)},
        )


class AlreadyExistsException(OrgTagsException):
    """Raised when creating a resource whose identity is already taken."""

    def __init__(self, resource_type: str, resource_id: str | UUID):
        super().__init__(
            code="ALREADY_EXISTS",
            message=f"{resource_type} already exists: {resource_id}",
            status_code=409,
            details={"resource_type": resource_type, "resource_id": str(resource_id)},
        )


class HasChildrenException(OrgTagsException):
    """Raised when a protect-delete is refused because the tag still has children."""

    def __init__(self, tag_id: str):
        super().__init__(
            code="HAS_CHILDREN",
            message=f"organization tag has child nodes: {tag_id}",
            status_code=409,
            details={"tag_id": tag_id},
        )


class InternalException(OrgTagsException):
    """Raised when the underlying datastore fails with no business meaning."""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
