from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime

from thesis_repository.core.database import Base
from thesis_repository.core.types import GUID, generate_uuid
from thesis_repository.models.document import DocumentStatus


_status_enum = dict(
    values_callable=lambda obj: [e.value for e in obj],
    name="document_status",
)


class WorkflowHistory(Base):
    """Immutable record of one applied status transition"""
    __tablename__ = "document_workflow_history"
    __table_args__ = (
        UniqueConstraint("document_id", "sequence", name="uq_workflow_history_sequence"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    document_id = Column(GUID, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    # Per-document insertion order; breaks ties between equal timestamps
    sequence = Column(Integer, nullable=False, default=1)

    from_status = Column(SQLEnum(DocumentStatus, **_status_enum), nullable=True)
    to_status = Column(SQLEnum(DocumentStatus, **_status_enum), nullable=False)
    changed_by = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)

    reason = Column(Text, nullable=True)
    comments = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    document = relationship("Document", back_populates="history")
    actor = relationship("User", foreign_keys=[changed_by])

    def __repr__(self):
        return f"<WorkflowHistory {self.document_id}: {self.from_status} -> {self.to_status}>"
