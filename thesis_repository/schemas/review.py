from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from thesis_repository.models.review import (
    CurationNoteType,
    ReviewStatus,
    ReviewType,
    RevisionStatus,
)


# ============================================
# Reviews
# ============================================

class ReviewCreate(BaseModel):
    document_id: str
    review_type: ReviewType = ReviewType.initial
    comments: Optional[str] = None
    recommendations: Optional[str] = None
    score: Optional[int] = Field(None, ge=1, le=5)


class ReviewUpdate(BaseModel):
    status: Optional[ReviewStatus] = None
    comments: Optional[str] = None
    recommendations: Optional[str] = None
    score: Optional[int] = Field(None, ge=1, le=5)
    is_approved: Optional[bool] = None


class ReviewResponse(BaseModel):
    id: str
    document_id: str
    reviewer_id: str
    review_type: ReviewType
    status: ReviewStatus
    comments: Optional[str] = None
    recommendations: Optional[str] = None
    score: Optional[int] = None
    is_approved: Optional[bool] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ============================================
# Revision requests
# ============================================

class RevisionRequestCreate(BaseModel):
    document_id: str
    reason: str = Field(..., min_length=1)
    specific_requirements: Optional[str] = None
    deadline: Optional[datetime] = None


class RevisionStatusUpdate(BaseModel):
    status: RevisionStatus


class RevisionRequestResponse(BaseModel):
    id: str
    document_id: str
    requested_by: str
    requested_from: str
    reason: str
    specific_requirements: Optional[str] = None
    deadline: Optional[datetime] = None
    status: RevisionStatus
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ============================================
# Curation notes
# ============================================

class CurationNoteCreate(BaseModel):
    document_id: str
    note_type: CurationNoteType
    note: str = Field(..., min_length=1)


class CurationNoteUpdate(BaseModel):
    note: Optional[str] = Field(None, min_length=1)
    is_resolved: Optional[bool] = None


class CurationNoteResponse(BaseModel):
    id: str
    document_id: str
    curator_id: str
    note_type: CurationNoteType
    note: str
    is_resolved: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
