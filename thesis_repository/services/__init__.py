from thesis_repository.services.storage_service import StorageService, storage_service
from thesis_repository.services.audit_service import AuditService
from thesis_repository.services.document_service import DocumentService
from thesis_repository.services.review_service import ReviewService
from thesis_repository.services.starred_service import StarredService
from thesis_repository.services.user_service import UserService
