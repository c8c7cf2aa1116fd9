"""
Review Models

Faculty reviews, revision requests sent back to authors, and librarian
curation notes attached to a document while it moves through the workflow.
"""
from sqlalchemy import Column, Integer, Boolean, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from thesis_repository.core.database import Base
from thesis_repository.core.types import GUID, generate_uuid


def _enum(enum_cls, name):
    return SQLEnum(enum_cls, values_callable=lambda obj: [e.value for e in obj], name=name)


class ReviewType(str, enum.Enum):
    initial = "initial"
    revision = "revision"
    final = "final"


class ReviewStatus(str, enum.Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    rejected = "rejected"


class RevisionStatus(str, enum.Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    overdue = "overdue"


class CurationNoteType(str, enum.Enum):
    metadata = "metadata"
    content = "content"
    formatting = "formatting"
    accessibility = "accessibility"
    final_check = "final_check"


class DocumentReview(Base):
    """A reviewer's assessment of a document"""
    __tablename__ = "document_reviews"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    document_id = Column(GUID, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    reviewer_id = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)

    review_type = Column(_enum(ReviewType, "review_type"), default=ReviewType.initial, nullable=False)
    status = Column(_enum(ReviewStatus, "review_status"), default=ReviewStatus.pending, nullable=False)

    comments = Column(Text, nullable=True)
    recommendations = Column(Text, nullable=True)
    score = Column(Integer, nullable=True)  # 1-5
    is_approved = Column(Boolean, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    document = relationship("Document")
    reviewer = relationship("User", foreign_keys=[reviewer_id])

    def __repr__(self):
        return f"<DocumentReview {self.id} {self.status}>"


class RevisionRequest(Base):
    """Request for the author to revise a document"""
    __tablename__ = "document_revision_requests"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    document_id = Column(GUID, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    requested_by = Column(GUID, ForeignKey("users.id"), nullable=False)
    requested_from = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)

    reason = Column(Text, nullable=False)
    specific_requirements = Column(Text, nullable=True)
    deadline = Column(DateTime, nullable=True)
    status = Column(_enum(RevisionStatus, "revision_status"), default=RevisionStatus.pending, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    document = relationship("Document")
    requester = relationship("User", foreign_keys=[requested_by])
    recipient = relationship("User", foreign_keys=[requested_from])

    @property
    def is_overdue(self) -> bool:
        return (
            self.deadline is not None
            and self.status != RevisionStatus.completed
            and self.deadline < datetime.utcnow()
        )


class CurationNote(Base):
    """Librarian note raised during curation"""
    __tablename__ = "document_curation_notes"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    document_id = Column(GUID, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    curator_id = Column(GUID, ForeignKey("users.id"), nullable=False)

    note_type = Column(_enum(CurationNoteType, "curation_note_type"), nullable=False)
    note = Column(Text, nullable=False)
    is_resolved = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    document = relationship("Document")
    curator = relationship("User", foreign_keys=[curator_id])
