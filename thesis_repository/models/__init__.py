from thesis_repository.models.user import User, UserRole
from thesis_repository.models.document import (
    Document,
    DocumentFile,
    DocumentStatus,
    Keyword,
    document_keywords,
)
from thesis_repository.models.workflow import WorkflowHistory
from thesis_repository.models.review import (
    DocumentReview,
    RevisionRequest,
    CurationNote,
    ReviewType,
    ReviewStatus,
    RevisionStatus,
    CurationNoteType,
)
from thesis_repository.models.starred import StarredDocument
from thesis_repository.models.audit_log import AuditLog

__all__ = [
    "User",
    "UserRole",
    "Document",
    "DocumentFile",
    "DocumentStatus",
    "Keyword",
    "document_keywords",
    "WorkflowHistory",
    "DocumentReview",
    "RevisionRequest",
    "CurationNote",
    "ReviewType",
    "ReviewStatus",
    "RevisionStatus",
    "CurationNoteType",
    "StarredDocument",
    "AuditLog",
]
