"""
Workflow backend.

The engine, ledger and aggregator only talk to storage through the
`WorkflowBackend` protocol. `SQLAlchemyWorkflowBackend` implements it on an
AsyncSession; tests may substitute any object with the same coroutines.

Every storage failure surfaces as BackendUnavailableError.
"""
import asyncio
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Protocol, runtime_checkable

from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from thesis_repository.core.exceptions import BackendUnavailableError
from thesis_repository.core.logging_config import logger
from thesis_repository.models.document import Document, DocumentStatus
from thesis_repository.models.review import (
    DocumentReview,
    ReviewStatus,
    RevisionRequest,
    RevisionStatus,
)
from thesis_repository.models.starred import StarredDocument
from thesis_repository.models.workflow import WorkflowHistory


@dataclass(frozen=True)
class DocumentRecord:
    """Snapshot of the document fields the workflow reads"""
    id: str
    status: DocumentStatus
    user_id: str
    adviser_id: Optional[str] = None
    program: Optional[str] = None
    title: str = ""
    download_count: int = 0
    created_at: Optional[datetime] = None
    published_at: Optional[datetime] = None


@dataclass(frozen=True)
class WorkflowHistoryEntry:
    document_id: str
    from_status: Optional[DocumentStatus]
    to_status: DocumentStatus
    changed_by: str
    reason: Optional[str] = None
    comments: Optional[str] = None
    created_at: Optional[datetime] = None
    id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "from_status": self.from_status.value if self.from_status else None,
            "to_status": self.to_status.value,
            "changed_by": self.changed_by,
            "reason": self.reason,
            "comments": self.comments,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class DocumentFilter:
    """Conjunction of optional predicates over documents"""
    statuses: Optional[frozenset] = None
    user_id: Optional[str] = None
    adviser_id: Optional[str] = None
    program: Optional[str] = None
    created_after: Optional[datetime] = None

    def matches(self, record: DocumentRecord) -> bool:
        if self.statuses is not None and record.status not in self.statuses:
            return False
        if self.user_id is not None and record.user_id != self.user_id:
            return False
        if self.adviser_id is not None and record.adviser_id != self.adviser_id:
            return False
        if self.program is not None and (record.program or "").lower() != self.program.lower():
            return False
        if self.created_after is not None and (
            record.created_at is None or record.created_at < self.created_after
        ):
            return False
        return True


@runtime_checkable
class WorkflowBackend(Protocol):
    async def get_document(self, document_id: str) -> Optional[DocumentRecord]: ...

    async def update_document_status(
        self,
        document_id: str,
        expected_status: DocumentStatus,
        new_status: DocumentStatus,
    ) -> bool: ...

    async def insert_history_entry(self, entry: WorkflowHistoryEntry) -> WorkflowHistoryEntry: ...

    async def list_history(
        self, document_id: str, newest_first: bool = False
    ) -> List[WorkflowHistoryEntry]: ...

    async def query_documents(self, filter: DocumentFilter) -> List[DocumentRecord]: ...

    async def count_pending_reviews(self, reviewer_id: str) -> int: ...

    async def count_pending_revision_requests(self, user_id: str) -> int: ...

    async def count_starred(self, user_id: str) -> int: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


_BACKEND_ERRORS = (SQLAlchemyError, ConnectionError, asyncio.TimeoutError)


@contextmanager
def backend_errors(operation: str):
    """Translate storage/driver failures into BackendUnavailableError"""
    try:
        yield
    except _BACKEND_ERRORS as e:
        logger.error(
            f"[WorkflowBackend] {operation} failed: {type(e).__name__}: {e}",
            extra={"event_type": "backend_error", "operation": operation},
        )
        raise BackendUnavailableError(operation, reason=str(e)) from e


def _record(doc: Document) -> DocumentRecord:
    return DocumentRecord(
        id=str(doc.id),
        status=DocumentStatus(doc.status),
        user_id=str(doc.user_id),
        adviser_id=str(doc.adviser_id) if doc.adviser_id else None,
        program=doc.program,
        title=doc.title or "",
        download_count=doc.download_count or 0,
        created_at=doc.created_at,
        published_at=doc.published_at,
    )


def _entry(row: WorkflowHistory) -> WorkflowHistoryEntry:
    return WorkflowHistoryEntry(
        id=str(row.id),
        document_id=str(row.document_id),
        from_status=DocumentStatus(row.from_status) if row.from_status else None,
        to_status=DocumentStatus(row.to_status),
        changed_by=str(row.changed_by),
        reason=row.reason,
        comments=row.comments,
        created_at=row.created_at,
    )


class SQLAlchemyWorkflowBackend:
    """WorkflowBackend over an AsyncSession"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_document(self, document_id: str) -> Optional[DocumentRecord]:
        with backend_errors("get_document"):
            result = await self.db.execute(
                select(Document)
                .where(Document.id == str(document_id))
                .execution_options(populate_existing=True)
            )
            doc = result.scalar_one_or_none()
        return _record(doc) if doc else None

    async def update_document_status(
        self,
        document_id: str,
        expected_status: DocumentStatus,
        new_status: DocumentStatus,
    ) -> bool:
        """Compare-and-swap on status; False when the row no longer holds expected_status"""
        now = datetime.utcnow()
        values = {"status": new_status, "updated_at": now}
        if new_status == DocumentStatus.PUBLISHED:
            values["published_at"] = now

        with backend_errors("update_document_status"):
            result = await self.db.execute(
                update(Document)
                .where(Document.id == str(document_id), Document.status == expected_status)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount == 1

    async def insert_history_entry(self, entry: WorkflowHistoryEntry) -> WorkflowHistoryEntry:
        with backend_errors("insert_history_entry"):
            last = (await self.db.execute(
                select(func.coalesce(func.max(WorkflowHistory.sequence), 0))
                .where(WorkflowHistory.document_id == str(entry.document_id))
            )).scalar()
        row = WorkflowHistory(
            document_id=entry.document_id,
            sequence=last + 1,
            from_status=entry.from_status,
            to_status=entry.to_status,
            changed_by=entry.changed_by,
            reason=entry.reason,
            comments=entry.comments,
            created_at=entry.created_at or datetime.utcnow(),
        )
        with backend_errors("insert_history_entry"):
            self.db.add(row)
            await self.db.flush()
        return _entry(row)

    async def list_history(
        self, document_id: str, newest_first: bool = False
    ) -> List[WorkflowHistoryEntry]:
        if newest_first:
            order = (WorkflowHistory.created_at.desc(), WorkflowHistory.sequence.desc())
        else:
            order = (WorkflowHistory.created_at.asc(), WorkflowHistory.sequence.asc())
        with backend_errors("list_history"):
            result = await self.db.execute(
                select(WorkflowHistory)
                .where(WorkflowHistory.document_id == str(document_id))
                .order_by(*order)
            )
            rows = result.scalars().all()
        return [_entry(r) for r in rows]

    async def query_documents(self, filter: DocumentFilter) -> List[DocumentRecord]:
        query = select(Document)
        if filter.statuses is not None:
            query = query.where(Document.status.in_(list(filter.statuses)))
        if filter.user_id is not None:
            query = query.where(Document.user_id == filter.user_id)
        if filter.adviser_id is not None:
            query = query.where(Document.adviser_id == filter.adviser_id)
        if filter.program is not None:
            query = query.where(func.lower(Document.program) == filter.program.lower())
        if filter.created_after is not None:
            query = query.where(Document.created_at >= filter.created_after)

        with backend_errors("query_documents"):
            result = await self.db.execute(query.execution_options(populate_existing=True))
            docs = result.scalars().all()
        return [_record(d) for d in docs]

    async def _count(self, operation: str, query) -> int:
        with backend_errors(operation):
            result = await self.db.execute(query)
        return result.scalar() or 0

    async def count_pending_reviews(self, reviewer_id: str) -> int:
        return await self._count(
            "count_pending_reviews",
            select(func.count(DocumentReview.id)).where(
                DocumentReview.reviewer_id == reviewer_id,
                DocumentReview.status == ReviewStatus.pending,
            ),
        )

    async def count_pending_revision_requests(self, user_id: str) -> int:
        return await self._count(
            "count_pending_revision_requests",
            select(func.count(RevisionRequest.id)).where(
                RevisionRequest.requested_from == user_id,
                RevisionRequest.status == RevisionStatus.pending,
            ),
        )

    async def count_starred(self, user_id: str) -> int:
        return await self._count(
            "count_starred",
            select(func.count(StarredDocument.id)).where(StarredDocument.user_id == user_id),
        )

    async def commit(self) -> None:
        with backend_errors("commit"):
            await self.db.commit()

    async def rollback(self) -> None:
        with backend_errors("rollback"):
            await self.db.rollback()


def filter_records(records: Iterable[DocumentRecord], filter: DocumentFilter) -> List[DocumentRecord]:
    """Apply a DocumentFilter in memory (used by non-SQL backends)"""
    return [r for r in records if filter.matches(r)]
