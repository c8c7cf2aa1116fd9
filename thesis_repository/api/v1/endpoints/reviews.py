from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from thesis_repository.core.database import get_db
from thesis_repository.modules.auth.dependencies import get_current_actor
from thesis_repository.modules.workflow.engine import Actor
from thesis_repository.schemas.review import (
    CurationNoteCreate,
    CurationNoteResponse,
    CurationNoteUpdate,
    ReviewCreate,
    ReviewResponse,
    ReviewUpdate,
    RevisionRequestCreate,
    RevisionRequestResponse,
    RevisionStatusUpdate,
)
from thesis_repository.services.review_service import ReviewService

router = APIRouter()


# ==================== Reviews ====================

@router.post("/reviews", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    data: ReviewCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    return await ReviewService(db).create_review(data, actor)


@router.patch("/reviews/{review_id}", response_model=ReviewResponse)
async def update_review(
    review_id: str,
    data: ReviewUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    return await ReviewService(db).update_review(review_id, data, actor)


@router.get("/documents/{document_id}/reviews", response_model=List[ReviewResponse])
async def list_reviews(
    document_id: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    return await ReviewService(db).list_reviews(document_id, actor)


# ==================== Revision requests ====================

@router.post("/revision-requests", response_model=RevisionRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_revision_request(
    data: RevisionRequestCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    return await ReviewService(db).create_revision_request(data, actor)


@router.patch("/revision-requests/{request_id}/status", response_model=RevisionRequestResponse)
async def update_revision_status(
    request_id: str,
    data: RevisionStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    return await ReviewService(db).update_revision_status(request_id, data, actor)


@router.get("/documents/{document_id}/revision-requests", response_model=List[RevisionRequestResponse])
async def list_revision_requests(
    document_id: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    return await ReviewService(db).list_revision_requests(document_id, actor)


# ==================== Curation notes ====================

@router.post("/curation-notes", response_model=CurationNoteResponse, status_code=status.HTTP_201_CREATED)
async def add_curation_note(
    data: CurationNoteCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    return await ReviewService(db).add_curation_note(data, actor)


@router.patch("/curation-notes/{note_id}", response_model=CurationNoteResponse)
async def update_curation_note(
    note_id: str,
    data: CurationNoteUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    return await ReviewService(db).update_curation_note(note_id, data, actor)


@router.get("/documents/{document_id}/curation-notes", response_model=List[CurationNoteResponse])
async def list_curation_notes(
    document_id: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    return await ReviewService(db).list_curation_notes(document_id, actor)
