"""
Custom Exceptions for the Thesis Repository
===========================================

Use these instead of generic Exception to:
1. Make errors more specific and debuggable
2. Enable proper error handling at API layer
3. Provide meaningful error messages to users

Usage:
    from thesis_repository.core.exceptions import DocumentNotFoundError, InvalidTransitionError

    if document is None:
        raise DocumentNotFoundError(document_id)

    try:
        await engine.transition(document_id, DocumentStatus.PUBLISHED, actor)
    except InvalidTransitionError as e:
        logger.warning(f"Rejected transition: {e}")
        raise
"""

from typing import Optional, Any, Dict


class RepositoryError(Exception):
    """Base exception for all repository errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(RepositoryError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class PermissionDeniedError(RepositoryError):
    """Actor lacks the capability required for an action"""

    status_code = 403

    def __init__(
        self,
        message: str = "Permission denied",
        required: Optional[list] = None,
        role: Optional[str] = None
    ):
        details: Dict[str, Any] = {}
        if required:
            details["required_capabilities"] = sorted(str(c) for c in required)
        if role:
            details["role"] = role
        super().__init__(message, code="PERMISSION_DENIED", details=details)


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(RepositoryError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": str(resource_id)}
        )


class DocumentNotFoundError(ResourceNotFoundError):
    """Document not found"""

    def __init__(self, document_id: str):
        super().__init__("Document", document_id)


class UserNotFoundError(ResourceNotFoundError):
    """User not found"""

    def __init__(self, user_id: str):
        super().__init__("User", user_id)


class FileNotFoundError(ResourceNotFoundError):
    """No stored file for a document"""

    def __init__(self, document_id: str):
        super().__init__("File", document_id)


# ============================================
# Workflow Errors (409-type)
# ============================================

class InvalidTransitionError(RepositoryError):
    """No edge in the status registry for the requested transition"""

    status_code = 409

    def __init__(self, current_status: str, requested_status: str, message: Optional[str] = None):
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            message or f"Cannot move document from '{current_status}' to '{requested_status}'",
            code="INVALID_TRANSITION",
            details={
                "current_status": current_status,
                "requested_status": requested_status,
            }
        )


class StaleTransitionError(InvalidTransitionError):
    """Document status changed between validation and the write"""

    def __init__(self, expected_status: str, requested_status: str):
        super().__init__(
            expected_status,
            requested_status,
            message=(
                f"Document is no longer in '{expected_status}'; "
                f"transition to '{requested_status}' was not applied"
            ),
        )
        self.code = "STALE_TRANSITION"


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(RepositoryError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class InvalidFileTypeError(ValidationError):
    """File type not allowed"""

    def __init__(self, file_type: str, allowed_types: list):
        super().__init__(
            f"File type '{file_type}' not allowed. Allowed: {', '.join(allowed_types)}"
        )
        self.code = "INVALID_FILE_TYPE"
        self.details = {"file_type": file_type, "allowed_types": allowed_types}


class DuplicateResourceError(ValidationError):
    """Unique field already taken"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, field=field)
        self.code = "DUPLICATE_RESOURCE"


# ============================================
# Backend / Storage Errors
# ============================================

class BackendUnavailableError(RepositoryError):
    """The database or another external collaborator failed or timed out"""

    status_code = 503

    def __init__(self, operation: str, reason: Optional[str] = None):
        details = {"operation": operation}
        if reason:
            details["reason"] = reason[:500]
        super().__init__(
            f"Backend unavailable during '{operation}'",
            code="BACKEND_UNAVAILABLE",
            details=details
        )


class StorageError(RepositoryError):
    """Object storage operation failed"""

    status_code = 502

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message, code="STORAGE_ERROR")
        if key:
            self.details["key"] = key


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: RepositoryError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }
