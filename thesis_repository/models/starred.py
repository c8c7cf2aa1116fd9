from sqlalchemy import Column, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from thesis_repository.core.database import Base
from thesis_repository.core.types import GUID, generate_uuid


class StarredDocument(Base):
    """A user's bookmark on a document"""
    __tablename__ = "starred_documents"
    __table_args__ = (
        UniqueConstraint("user_id", "document_id", name="uq_starred_user_document"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    document_id = Column(GUID, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="starred")
    document = relationship("Document", lazy="selectin")
