"""
Review Service - reviews, revision requests and curation notes

These records accompany the workflow but never change document status
themselves; status moves only through the workflow engine.
"""
from datetime import datetime
from typing import List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from thesis_repository.core.exceptions import (
    PermissionDeniedError,
    ResourceNotFoundError,
    ValidationError,
)
from thesis_repository.core.logging_config import logger
from thesis_repository.models.review import (
    CurationNote,
    DocumentReview,
    ReviewStatus,
    RevisionRequest,
    RevisionStatus,
)
from thesis_repository.modules.workflow.engine import Actor
from thesis_repository.modules.workflow.permissions import Capability, has_capability, resolve
from thesis_repository.schemas.review import (
    CurationNoteCreate,
    CurationNoteUpdate,
    ReviewCreate,
    ReviewUpdate,
    RevisionRequestCreate,
    RevisionStatusUpdate,
)
from thesis_repository.services.document_service import DocumentService

OPEN_REVIEW_STATUSES = (ReviewStatus.pending, ReviewStatus.in_progress)
REVIEW_CAPABILITIES = frozenset({Capability.REVIEW, Capability.MANAGE_WORKFLOW})


class ReviewService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.documents = DocumentService(db)

    def _require_reviewer(self, actor: Actor) -> None:
        if not REVIEW_CAPABILITIES & resolve(actor.role):
            raise PermissionDeniedError("Reviewing documents is not allowed", required=list(REVIEW_CAPABILITIES))

    def _require_workflow_manager(self, actor: Actor) -> None:
        if not has_capability(actor.role, Capability.MANAGE_WORKFLOW):
            raise PermissionDeniedError(
                "Managing the workflow is not allowed", required=[Capability.MANAGE_WORKFLOW]
            )

    async def _get(self, model, label: str, record_id: str):
        result = await self.db.execute(select(model).where(model.id == str(record_id)))
        record = result.scalar_one_or_none()
        if record is None:
            raise ResourceNotFoundError(label, record_id)
        return record

    # ==================== Reviews ====================

    async def create_review(self, data: ReviewCreate, actor: Actor) -> DocumentReview:
        self._require_reviewer(actor)
        document = await self.documents.get_document(data.document_id)

        review = DocumentReview(
            document_id=document.id,
            reviewer_id=str(actor.id),
            review_type=data.review_type,
            status=ReviewStatus.pending,
            comments=data.comments,
            recommendations=data.recommendations,
            score=data.score,
        )
        self.db.add(review)
        await self.db.commit()
        await self.db.refresh(review)
        logger.info(f"[Reviews] {actor.id} opened {review.review_type.value} review on {document.id}")
        return review

    async def update_review(self, review_id: str, data: ReviewUpdate, actor: Actor) -> DocumentReview:
        review = await self._get(DocumentReview, "Review", review_id)
        if str(review.reviewer_id) != str(actor.id) and not has_capability(
            actor.role, Capability.MANAGE_WORKFLOW
        ):
            raise PermissionDeniedError("Only the reviewer can update this review")

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(review, field, value)

        if data.status in (ReviewStatus.completed, ReviewStatus.rejected) and review.completed_at is None:
            review.completed_at = datetime.utcnow()

        await self.db.commit()
        await self.db.refresh(review)
        return review

    async def list_reviews(self, document_id: str, actor: Actor) -> List[DocumentReview]:
        await self.documents.get_visible_document(document_id, actor)
        result = await self.db.execute(
            select(DocumentReview)
            .where(DocumentReview.document_id == str(document_id))
            .order_by(DocumentReview.created_at.asc())
        )
        return list(result.scalars().all())

    async def count_open_reviews(self, document_id: str) -> int:
        result = await self.db.execute(
            select(func.count(DocumentReview.id)).where(
                DocumentReview.document_id == str(document_id),
                DocumentReview.status.in_(OPEN_REVIEW_STATUSES),
            )
        )
        return result.scalar() or 0

    # ==================== Revision requests ====================

    async def create_revision_request(self, data: RevisionRequestCreate, actor: Actor) -> RevisionRequest:
        self._require_reviewer(actor)
        document = await self.documents.get_document(data.document_id)

        if data.deadline is not None and data.deadline < datetime.utcnow():
            raise ValidationError("Deadline must be in the future", field="deadline")

        request = RevisionRequest(
            document_id=document.id,
            requested_by=str(actor.id),
            requested_from=document.user_id,
            reason=data.reason,
            specific_requirements=data.specific_requirements,
            deadline=data.deadline,
            status=RevisionStatus.pending,
        )
        self.db.add(request)
        await self.db.commit()
        await self.db.refresh(request)
        return request

    async def update_revision_status(
        self, request_id: str, data: RevisionStatusUpdate, actor: Actor
    ) -> RevisionRequest:
        request = await self._get(RevisionRequest, "Revision Request", request_id)
        is_party = str(actor.id) in (str(request.requested_by), str(request.requested_from))
        if not is_party and not has_capability(actor.role, Capability.MANAGE_WORKFLOW):
            raise PermissionDeniedError("Not a party to this revision request")

        request.status = data.status
        if data.status == RevisionStatus.completed:
            request.completed_at = datetime.utcnow()

        await self.db.commit()
        await self.db.refresh(request)
        return request

    async def list_revision_requests(self, document_id: str, actor: Actor) -> List[RevisionRequest]:
        await self.documents.get_visible_document(document_id, actor)
        result = await self.db.execute(
            select(RevisionRequest)
            .where(RevisionRequest.document_id == str(document_id))
            .order_by(RevisionRequest.created_at.asc())
        )
        return list(result.scalars().all())

    async def count_pending_revisions(self, document_id: str) -> int:
        result = await self.db.execute(
            select(func.count(RevisionRequest.id)).where(
                RevisionRequest.document_id == str(document_id),
                RevisionRequest.status.in_((RevisionStatus.pending, RevisionStatus.in_progress)),
            )
        )
        return result.scalar() or 0

    # ==================== Curation notes ====================

    async def add_curation_note(self, data: CurationNoteCreate, actor: Actor) -> CurationNote:
        self._require_workflow_manager(actor)
        document = await self.documents.get_document(data.document_id)

        note = CurationNote(
            document_id=document.id,
            curator_id=str(actor.id),
            note_type=data.note_type,
            note=data.note,
            is_resolved=False,
        )
        self.db.add(note)
        await self.db.commit()
        await self.db.refresh(note)
        return note

    async def update_curation_note(self, note_id: str, data: CurationNoteUpdate, actor: Actor) -> CurationNote:
        self._require_workflow_manager(actor)
        note = await self._get(CurationNote, "Curation Note", note_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(note, field, value)
        await self.db.commit()
        await self.db.refresh(note)
        return note

    async def list_curation_notes(self, document_id: str, actor: Actor) -> List[CurationNote]:
        document = await self.documents.get_document(document_id)
        if str(document.user_id) != str(actor.id) and not has_capability(
            actor.role, Capability.MANAGE_WORKFLOW
        ):
            raise PermissionDeniedError("Curation notes are visible to the owner and curators")
        result = await self.db.execute(
            select(CurationNote)
            .where(CurationNote.document_id == str(document_id))
            .order_by(CurationNote.created_at.asc())
        )
        return list(result.scalars().all())
