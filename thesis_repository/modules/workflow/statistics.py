"""
Statistics Aggregator

Read-side projections over the document collection. Every call takes a
fresh snapshot through the backend; nothing is cached or maintained
incrementally, so counts may trail transitions that are in flight.
"""
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from thesis_repository.models.document import DocumentStatus
from thesis_repository.models.user import UserRole
from thesis_repository.modules.workflow.backend import DocumentFilter, WorkflowBackend
from thesis_repository.modules.workflow.permissions import coerce_role
from thesis_repository.modules.workflow.status_registry import ACTIVE_STATUSES


@dataclass(frozen=True)
class StatsScope:
    kind: str = "all"
    value: Optional[str] = None

    @classmethod
    def all(cls) -> "StatsScope":
        return cls("all")

    @classmethod
    def for_user(cls, user_id: str) -> "StatsScope":
        return cls("user", str(user_id))

    @classmethod
    def for_category(cls, program: str) -> "StatsScope":
        return cls("category", program)

    def to_filter(self) -> DocumentFilter:
        if self.kind == "user":
            return DocumentFilter(user_id=self.value)
        if self.kind == "category":
            return DocumentFilter(program=self.value)
        return DocumentFilter()


@dataclass(frozen=True)
class StatusCounts:
    counts: Dict[DocumentStatus, int]
    total: int

    def __getitem__(self, status: DocumentStatus) -> int:
        return self.counts.get(DocumentStatus(status), 0)

    def to_dict(self) -> Dict[str, int]:
        data = {status.value: self.counts.get(status, 0) for status in DocumentStatus}
        data["total"] = self.total
        return data


class StatisticsAggregator:
    def __init__(self, backend: WorkflowBackend):
        self.backend = backend

    async def compute(self, scope: Optional[StatsScope] = None) -> StatusCounts:
        """Per-status counts (zero-filled) for the documents in scope"""
        records = await self.backend.query_documents((scope or StatsScope.all()).to_filter())
        counter = Counter(r.status for r in records)
        counts = {status: counter.get(status, 0) for status in DocumentStatus}
        return StatusCounts(counts=counts, total=len(records))

    async def workflow_statistics(self, actor) -> Dict[str, int]:
        """
        Dashboard counts shaped by the actor's role.

        student: their own documents by status
        faculty: documents they advise plus their open reviews and revision requests
        librarian/admin: the whole collection
        """
        role = coerce_role(actor.role)

        if role == UserRole.STUDENT:
            counts = await self.compute(StatsScope.for_user(actor.id))
            return {
                "pending": counts[DocumentStatus.PENDING],
                "under_review": counts[DocumentStatus.UNDER_REVIEW],
                "needs_revision": counts[DocumentStatus.NEEDS_REVISION],
                "published": counts[DocumentStatus.PUBLISHED],
            }

        if role == UserRole.FACULTY:
            advised = await self.backend.query_documents(DocumentFilter(adviser_id=str(actor.id)))
            counter = Counter(r.status for r in advised)
            return {
                "pending": counter.get(DocumentStatus.PENDING, 0),
                "under_review": counter.get(DocumentStatus.UNDER_REVIEW, 0),
                "pending_reviews": await self.backend.count_pending_reviews(str(actor.id)),
                "pending_revision_requests": await self.backend.count_pending_revision_requests(
                    str(actor.id)
                ),
            }

        if role in (UserRole.LIBRARIAN, UserRole.ADMIN):
            counts = await self.compute(StatsScope.all())
            return {
                "pending": counts[DocumentStatus.PENDING],
                "under_review": counts[DocumentStatus.UNDER_REVIEW],
                "curation": counts[DocumentStatus.CURATION],
                "ready_for_publication": counts[DocumentStatus.READY_FOR_PUBLICATION],
            }

        return {}

    async def repository_statistics(self, user_id: str, now: Optional[datetime] = None) -> dict:
        """Sidebar figures: collection totals plus the user's own uploads and stars"""
        now = now or datetime.utcnow()
        week_ago = now - timedelta(days=7)
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        records = await self.backend.query_documents(DocumentFilter())
        published = [r for r in records if r.status == DocumentStatus.PUBLISHED]

        categories = Counter((r.program or "").lower() or "other" for r in published)

        return {
            "total_documents": len(published),
            "recent_documents": sum(
                1 for r in published if r.created_at and r.created_at >= week_ago
            ),
            "my_uploads": sum(1 for r in records if r.user_id == str(user_id)),
            "starred_documents": await self.backend.count_starred(str(user_id)),
            "workflow_documents": sum(1 for r in records if r.status in ACTIVE_STATUSES),
            "category_counts": dict(categories),
            "repository_stats": {
                "total_theses": len(records),
                "this_month": sum(
                    1 for r in records if r.created_at and r.created_at >= month_start
                ),
                "total_downloads": sum(r.download_count for r in records),
            },
        }
