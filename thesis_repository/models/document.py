"""
Document Models

A thesis/document moves through the review workflow:
pending -> under_review -> (needs_revision | approved | published | rejected)
approved -> curation -> ready_for_publication -> published
"""
from sqlalchemy import (
    Column, String, Integer, BigInteger, Boolean, Text, DateTime, ForeignKey,
    Enum as SQLEnum, Table, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from thesis_repository.core.database import Base
from thesis_repository.core.types import GUID, StringList, generate_uuid


class DocumentStatus(str, enum.Enum):
    """Document workflow status"""
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    NEEDS_REVISION = "needs_revision"
    APPROVED = "approved"
    CURATION = "curation"
    READY_FOR_PUBLICATION = "ready_for_publication"
    PUBLISHED = "published"
    REJECTED = "rejected"


document_keywords = Table(
    "document_keywords",
    Base.metadata,
    Column("document_id", GUID, ForeignKey("documents.id", ondelete="CASCADE"), primary_key=True),
    Column("keyword_id", GUID, ForeignKey("keywords.id", ondelete="CASCADE"), primary_key=True),
)


class Keyword(Base):
    """Normalised keyword shared across documents"""
    __tablename__ = "keywords"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(100), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Keyword {self.name}>"


class Document(Base):
    """Thesis or research document"""
    __tablename__ = "documents"

    id = Column(GUID, primary_key=True, default=generate_uuid)

    # Bibliographic data
    title = Column(String(500), nullable=False)
    abstract = Column(Text, nullable=True)
    authors = Column(StringList, nullable=False, default=list)  # ordered
    adviser_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    adviser_name = Column(String(255), nullable=True)
    program = Column(String(255), nullable=True, index=True)  # category
    year = Column(Integer, nullable=True)
    pages = Column(Integer, nullable=True)
    file_size = Column(BigInteger, nullable=True)

    # Workflow
    status = Column(
        SQLEnum(DocumentStatus, values_callable=lambda obj: [e.value for e in obj], name="document_status"),
        default=DocumentStatus.PENDING,
        nullable=False,
        index=True,
    )

    # Ownership
    user_id = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)

    # Counters
    download_count = Column(Integer, default=0, nullable=False)
    view_count = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    published_at = Column(DateTime, nullable=True)

    # Relationships
    owner = relationship("User", back_populates="documents", foreign_keys=[user_id])
    adviser = relationship("User", foreign_keys=[adviser_id])
    keywords = relationship("Keyword", secondary=document_keywords, lazy="selectin")
    files = relationship(
        "DocumentFile", back_populates="document", cascade="all, delete-orphan", lazy="selectin"
    )
    history = relationship(
        "WorkflowHistory", back_populates="document",
        order_by="WorkflowHistory.created_at", passive_deletes=True,
    )

    @property
    def keyword_names(self):
        return [k.name for k in self.keywords]

    @property
    def primary_file(self):
        for f in self.files:
            if f.is_primary:
                return f
        return self.files[0] if self.files else None

    def __repr__(self):
        return f"<Document {self.id} [{self.status}]>"


class DocumentFile(Base):
    """File stored in object storage for a document"""
    __tablename__ = "document_files"
    __table_args__ = (
        UniqueConstraint("document_id", "file_path", name="uq_document_file_path"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    document_id = Column(GUID, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)

    file_name = Column(String(255), nullable=False)
    file_path = Column(String(1024), nullable=False)  # object-store key
    file_size = Column(BigInteger, nullable=True)
    file_type = Column(String(100), nullable=True)
    is_primary = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    document = relationship("Document", back_populates="files")

    def __repr__(self):
        return f"<DocumentFile {self.file_name}>"
