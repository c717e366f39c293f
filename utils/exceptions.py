"""
Unified exception hierarchy for Content Refinery.

All domain exceptions inherit from RefineryError and carry:
- error_code: machine-readable string (e.g. "CONTENT_NOT_FOUND")
- status_code: HTTP status code
- message: human-readable description
- context: optional structured metadata dict
"""

from typing import Optional, Dict, Any


class RefineryError(Exception):
    """Base exception for all Content Refinery domain errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Flat JSON error body returned to the UI."""
        body: Dict[str, Any] = {"error": self.message, "code": self.error_code}
        if self.context:
            body["details"] = self.context
        return body


class ValidationError(RefineryError):
    """400-level invalid / missing parameter errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "INVALID_PARAMETERS",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code=error_code, status_code=400, context=context)


class UnauthenticatedError(RefineryError):
    """401 - no valid caller identity."""

    def __init__(self, message: str = "Unauthorized", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="UNAUTHENTICATED", status_code=401, context=context)


class ForbiddenError(RefineryError):
    """403 - authenticated but lacking the required role."""

    def __init__(
        self,
        message: str = "Unauthorized - Admin access required",
        error_code: str = "FORBIDDEN",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code=error_code, status_code=403, context=context)


class ProtectedContentError(ForbiddenError):
    """Deletion attempted on a document flagged as protected."""

    def __init__(self, content_type: str, content_id: str):
        super().__init__(
            f"{content_type.capitalize()} {content_id} is protected and cannot be deleted",
            error_code="CONTENT_PROTECTED",
            context={"content_type": content_type, "content_id": content_id},
        )


class NotFoundError(RefineryError):
    """404 resource-not-found errors."""

    def __init__(
        self,
        message: str = "Content not found",
        error_code: str = "CONTENT_NOT_FOUND",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code=error_code, status_code=404, context=context)


class ConflictError(RefineryError):
    """409 - the document changed since it was read."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="CONTENT_CONFLICT", status_code=409, context=context)


class GenerationError(RefineryError):
    """500-level generation failures."""

    def __init__(
        self,
        message: str,
        error_code: str = "GENERATION_FAILED",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code=error_code, status_code=500, context=context)


class UpstreamProviderError(GenerationError):
    """A required LLM provider call failed."""

    def __init__(self, provider: str, message: str, context: Optional[Dict[str, Any]] = None):
        self.provider = provider
        ctx = {"provider": provider}
        if context:
            ctx.update(context)
        super().__init__(
            f"{provider} API error: {message}",
            error_code="UPSTREAM_PROVIDER_FAILURE",
            context=ctx,
        )


class ResponseParseError(GenerationError):
    """Model reply did not contain the structured JSON the caller needs."""

    def __init__(self, message: str = "Failed to parse AI response", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="RESPONSE_PARSE_FAILURE", context=context)


class StorageError(RefineryError):
    """500-level database / storage failures."""

    def __init__(
        self,
        message: str,
        error_code: str = "STORAGE_ERROR",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code=error_code, status_code=500, context=context)


class PersistenceError(StorageError):
    """Write-back of refined content failed."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="PERSISTENCE_FAILURE", context=context)


class RefinementCancelledError(RefineryError):
    """Caller went away before the run finished; nothing was written."""

    def __init__(self, message: str = "Refinement cancelled", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="CANCELLED", status_code=499, context=context)
