"""
Document Service
================

Document creation, listing, search, file attachment and counters.
Status is never written here; every status change goes through the
workflow engine.
"""
import asyncio
from typing import List, Optional, Tuple

from fastapi import Request
from sqlalchemy import select, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from thesis_repository.core.config import settings
from thesis_repository.core.exceptions import (
    BackendUnavailableError,
    DocumentNotFoundError,
    FileNotFoundError,
    InvalidFileTypeError,
    PermissionDeniedError,
    UserNotFoundError,
    ValidationError,
)
from thesis_repository.core.logging_config import logger
from thesis_repository.models.document import Document, DocumentFile, DocumentStatus, Keyword
from thesis_repository.models.user import User, UserRole
from thesis_repository.modules.workflow.engine import Actor
from thesis_repository.modules.workflow.permissions import Capability, has_capability
from thesis_repository.modules.workflow.status_registry import INITIAL_STATUS, workflow_position
from thesis_repository.schemas.document import DocumentCreate
from thesis_repository.services.audit_service import AuditService
from thesis_repository.services.storage_service import StorageService, storage_service


class DocumentService:
    def __init__(self, db: AsyncSession, storage: Optional[StorageService] = None):
        self.db = db
        self.storage = storage or storage_service
        self.audit = AuditService(db)

    # ==================== Reads ====================

    async def get_document(self, document_id: str) -> Document:
        result = await self.db.execute(
            select(Document)
            .where(Document.id == str(document_id))
            .execution_options(populate_existing=True)
        )
        document = result.scalar_one_or_none()
        if not document:
            raise DocumentNotFoundError(document_id)
        return document

    def can_view(self, document: Document, actor: Optional[Actor]) -> bool:
        """Published documents are public; others are visible to owner, adviser and workflow staff"""
        if document.status == DocumentStatus.PUBLISHED:
            return True
        if actor is None:
            return False
        if str(actor.id) in (str(document.user_id), str(document.adviser_id)):
            return True
        return has_capability(actor.role, Capability.REVIEW) or has_capability(
            actor.role, Capability.MANAGE_WORKFLOW
        )

    async def get_visible_document(self, document_id: str, actor: Optional[Actor]) -> Document:
        document = await self.get_document(document_id)
        if not self.can_view(document, actor):
            # Unpublished documents are hidden rather than forbidden
            raise DocumentNotFoundError(document_id)
        return document

    async def list_documents(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Document], int]:
        """
        Published documents, newest first.

        Bounded by DOCUMENT_FETCH_TIMEOUT_SECONDS; on timeout an empty page
        is returned and a warning logged.
        """
        filters = [Document.status == DocumentStatus.PUBLISHED]
        if category and category != "all":
            filters.append(func.lower(Document.program) == category.lower())
        if user_id:
            filters.append(Document.user_id == user_id)
        if search:
            pattern = f"%{search.strip()}%"
            filters.append(or_(Document.title.ilike(pattern), Document.abstract.ilike(pattern)))

        async def fetch():
            total = (await self.db.execute(
                select(func.count(Document.id)).where(*filters)
            )).scalar() or 0
            rows = (await self.db.execute(
                select(Document)
                .where(*filters)
                .order_by(Document.created_at.desc())
                .limit(limit)
                .offset(offset)
                .execution_options(populate_existing=True)
            )).scalars().all()
            return list(rows), total

        try:
            return await asyncio.wait_for(fetch(), timeout=settings.DOCUMENT_FETCH_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.warning(
                f"[Documents] Listing timed out after {settings.DOCUMENT_FETCH_TIMEOUT_SECONDS}s",
                extra={"event_type": "document_fetch_timeout"},
            )
            return [], 0
        except SQLAlchemyError as e:
            raise BackendUnavailableError("list_documents", reason=str(e)) from e

    async def search_documents(self, query: str, limit: int = 50) -> List[Document]:
        """Published documents whose title, abstract or a keyword contains `query`"""
        query = (query or "").strip()
        if not query:
            return []
        pattern = f"%{query}%"
        keyword_match = Document.keywords.any(Keyword.name.ilike(pattern))
        result = await self.db.execute(
            select(Document)
            .where(
                Document.status == DocumentStatus.PUBLISHED,
                or_(Document.title.ilike(pattern), Document.abstract.ilike(pattern), keyword_match),
            )
            .order_by(Document.created_at.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def workflow_queue(self, actor: Actor) -> List[Document]:
        """
        Documents in the workflow visible to the actor, ordered by workflow
        position then newest first.

        student: own documents; faculty: own and advised; librarian/admin: all
        """
        query = select(Document)
        if not has_capability(actor.role, Capability.MANAGE_WORKFLOW):
            query = query.where(or_(Document.user_id == actor.id, Document.adviser_id == actor.id))
        result = await self.db.execute(query.execution_options(populate_existing=True))
        documents = list(result.scalars().all())
        documents.sort(key=lambda d: d.created_at, reverse=True)
        documents.sort(key=lambda d: workflow_position(DocumentStatus(d.status)))
        return documents

    # ==================== Writes ====================

    async def _resolve_keywords(self, names: List[str]) -> List[Keyword]:
        if not names:
            return []
        result = await self.db.execute(select(Keyword).where(Keyword.name.in_(names)))
        existing = {k.name: k for k in result.scalars().all()}
        keywords = []
        for name in names:
            keyword = existing.get(name)
            if keyword is None:
                keyword = Keyword(name=name)
                self.db.add(keyword)
                existing[name] = keyword
            keywords.append(keyword)
        return keywords

    async def create_document(self, data: DocumentCreate, actor: Actor) -> Document:
        """Create a document in the initial status; the adviser defaults to the submitter"""
        if not has_capability(actor.role, Capability.UPLOAD):
            raise PermissionDeniedError("Uploading documents is not allowed", required=[Capability.UPLOAD])

        adviser_id = data.adviser_id or str(actor.id)
        adviser_name = data.adviser_name
        if data.adviser_id:
            adviser = (await self.db.execute(
                select(User).where(User.id == data.adviser_id)
            )).scalar_one_or_none()
            if adviser is None:
                raise UserNotFoundError(data.adviser_id)
            if adviser.role not in (UserRole.FACULTY, UserRole.LIBRARIAN, UserRole.ADMIN):
                raise ValidationError("Adviser must be a faculty member", field="adviser_id")
            adviser_name = adviser_name or adviser.full_name

        document = Document(
            title=data.title.strip(),
            abstract=data.abstract.strip(),
            authors=data.authors,
            program=data.program.strip(),
            year=data.year,
            adviser_id=adviser_id,
            adviser_name=adviser_name,
            user_id=str(actor.id),
            status=INITIAL_STATUS,
            download_count=0,
            view_count=0,
        )
        document.keywords = await self._resolve_keywords(data.keywords)
        self.db.add(document)
        await self.db.flush()

        await self.audit.log_event(
            "document_created", "document", document.id, actor_id=str(actor.id),
            details={"title": document.title, "program": document.program},
        )
        await self.db.commit()

        logger.info(
            f"[Documents] Created {document.id} by {actor.id}",
            extra={"event_type": "document_created", "document_id": str(document.id)},
        )
        return await self.get_document(document.id)

    async def attach_file(
        self,
        document_id: str,
        file_name: str,
        content: bytes,
        content_type: str,
        actor: Actor,
        pages: Optional[int] = None,
    ) -> DocumentFile:
        """Upload the primary file for a document (owner or workflow staff)"""
        document = await self.get_document(document_id)
        if str(document.user_id) != str(actor.id) and not has_capability(
            actor.role, Capability.MANAGE_WORKFLOW
        ):
            raise PermissionDeniedError("Only the owner can upload files for this document")

        if content_type not in settings.ALLOWED_UPLOAD_TYPES:
            raise InvalidFileTypeError(content_type, settings.ALLOWED_UPLOAD_TYPES)
        if not content:
            raise ValidationError("Uploaded file is empty", field="file")
        if len(content) > settings.MAX_UPLOAD_SIZE:
            raise ValidationError(
                f"File exceeds {settings.MAX_UPLOAD_SIZE_MB}MB limit", field="file"
            )

        key = self.storage.generate_document_key(str(document.id), file_name)
        uploaded = await self.storage.upload_file(key, content, content_type)

        for existing in document.files:
            existing.is_primary = False

        doc_file = DocumentFile(
            document_id=document.id,
            file_name=file_name,
            file_path=uploaded["key"],
            file_size=uploaded["size_bytes"],
            file_type=content_type,
            is_primary=True,
        )
        self.db.add(doc_file)
        document.file_size = uploaded["size_bytes"]
        if pages:
            document.pages = pages

        await self.audit.log_event(
            "file_uploaded", "document", document.id, actor_id=str(actor.id),
            details={"file_name": file_name, "size": uploaded["size_bytes"]},
        )
        await self.db.commit()
        await self.db.refresh(doc_file)
        return doc_file

    async def record_view(self, document_id: str) -> Document:
        """Increment the view counter and return the refreshed document"""
        await self.db.execute(
            update(Document)
            .where(Document.id == str(document_id))
            .values(view_count=Document.view_count + 1)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return await self.get_document(document_id)

    async def get_download_url(
        self, document_id: str, actor: Actor, request: Optional[Request] = None
    ) -> Tuple[Document, Optional[str]]:
        """
        Signed URL for the primary file. The download counter and the audit
        log are updated even when signing falls back to unavailable.
        """
        if not has_capability(actor.role, Capability.DOWNLOAD):
            raise PermissionDeniedError("Downloading documents is not allowed", required=[Capability.DOWNLOAD])

        document = await self.get_visible_document(document_id, actor)
        primary = document.primary_file
        if primary is None:
            raise FileNotFoundError(document_id)

        url = await self.storage.get_signed_url(primary.file_path)

        await self.db.execute(
            update(Document)
            .where(Document.id == document.id)
            .values(download_count=Document.download_count + 1)
            .execution_options(synchronize_session=False)
        )
        await self.audit.log_event(
            "document_downloaded", "document", document.id, actor_id=str(actor.id),
            details={"file_name": primary.file_name, "url_available": url is not None},
            request=request,
        )
        await self.db.commit()
        document = await self.get_document(document.id)
        return document, url

    async def user_document_stats(self, user_id: str) -> dict:
        result = await self.db.execute(
            select(
                func.count(Document.id),
                func.coalesce(func.sum(Document.download_count), 0),
                func.coalesce(func.sum(Document.view_count), 0),
            ).where(Document.user_id == user_id)
        )
        total, downloads, views = result.one()

        by_status = await self.db.execute(
            select(Document.status, func.count(Document.id))
            .where(Document.user_id == user_id)
            .group_by(Document.status)
        )
        counts = {DocumentStatus(status): n for status, n in by_status.all()}

        return {
            "user_id": str(user_id),
            "total_documents": total or 0,
            "published_documents": counts.get(DocumentStatus.PUBLISHED, 0),
            "pending_documents": counts.get(DocumentStatus.PENDING, 0),
            "total_downloads": int(downloads or 0),
            "total_views": int(views or 0),
        }
