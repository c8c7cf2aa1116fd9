"""
Unit Tests for the History Ledger and Statistics Aggregator
"""
from datetime import datetime, timedelta
import pytest

from thesis_repository.models.document import DocumentStatus
from thesis_repository.models.user import UserRole
from thesis_repository.modules.workflow.backend import DocumentFilter, WorkflowHistoryEntry
from thesis_repository.modules.workflow.engine import Actor, WorkflowEngine
from thesis_repository.modules.workflow.history import HistoryLedger
from thesis_repository.modules.workflow.statistics import StatisticsAggregator, StatsScope

from tests.mocks.workflow_backend import InMemoryWorkflowBackend

S = DocumentStatus


@pytest.fixture
def backend():
    return InMemoryWorkflowBackend()


class TestHistoryLedger:
    """Test ordering and isolation of history entries"""

    @pytest.mark.asyncio
    async def test_oldest_first_by_default(self, backend):
        ledger = HistoryLedger(backend)
        doc = backend.add_document("owner")
        base = datetime(2024, 1, 1, 12, 0, 0)
        for i, (frm, to) in enumerate([(S.PENDING, S.UNDER_REVIEW), (S.UNDER_REVIEW, S.APPROVED)]):
            await ledger.append(WorkflowHistoryEntry(
                document_id=doc.id, from_status=frm, to_status=to, changed_by="fac",
                created_at=base + timedelta(minutes=i),
            ))
        await backend.commit()

        entries = await ledger.list_for(doc.id)
        assert [e.to_status for e in entries] == [S.UNDER_REVIEW, S.APPROVED]

        newest = await ledger.list_for(doc.id, newest_first=True)
        assert [e.to_status for e in newest] == [S.APPROVED, S.UNDER_REVIEW]

    @pytest.mark.asyncio
    async def test_equal_timestamps_keep_insertion_order(self, backend):
        ledger = HistoryLedger(backend)
        doc = backend.add_document("owner")
        stamp = datetime(2024, 1, 1, 12, 0, 0)
        for frm, to in [(S.PENDING, S.UNDER_REVIEW), (S.UNDER_REVIEW, S.APPROVED), (S.APPROVED, S.CURATION)]:
            await ledger.append(WorkflowHistoryEntry(
                document_id=doc.id, from_status=frm, to_status=to, changed_by="lib", created_at=stamp,
            ))
        await backend.commit()

        entries = await ledger.list_for(doc.id)
        assert [e.to_status for e in entries] == [S.UNDER_REVIEW, S.APPROVED, S.CURATION]

        newest = await ledger.list_for(doc.id, newest_first=True)
        assert [e.to_status for e in newest] == [S.CURATION, S.APPROVED, S.UNDER_REVIEW]

    @pytest.mark.asyncio
    async def test_entries_scoped_to_document(self, backend):
        engine = WorkflowEngine(backend)
        first = backend.add_document("owner")
        second = backend.add_document("owner")
        faculty = Actor("fac", UserRole.FACULTY)

        await engine.transition(first.id, S.UNDER_REVIEW, faculty)
        await engine.transition(second.id, S.UNDER_REVIEW, faculty)
        await engine.transition(second.id, S.REJECTED, faculty)

        assert len(await engine.ledger.list_for(first.id)) == 1
        assert len(await engine.ledger.list_for(second.id)) == 2

    @pytest.mark.asyncio
    async def test_unknown_document_has_empty_history(self, backend):
        assert await HistoryLedger(backend).list_for("nope") == []

    def test_entry_to_dict(self):
        entry = WorkflowHistoryEntry(
            document_id="d1", from_status=None, to_status=S.PENDING, changed_by="u1",
            created_at=datetime(2024, 5, 1, 8, 30),
        )
        data = entry.to_dict()
        assert data["from_status"] is None
        assert data["to_status"] == "pending"
        assert data["created_at"] == "2024-05-01T08:30:00"


class TestStatusCounts:
    """Test per-status aggregation"""

    @pytest.mark.asyncio
    async def test_counts_are_zero_filled(self, backend):
        counts = await StatisticsAggregator(backend).compute()
        assert counts.total == 0
        assert all(counts[status] == 0 for status in DocumentStatus)
        assert set(counts.to_dict()) == {s.value for s in DocumentStatus} | {"total"}

    @pytest.mark.asyncio
    async def test_counts_sum_to_total(self, backend):
        for status in (S.PENDING, S.PENDING, S.UNDER_REVIEW, S.PUBLISHED, S.REJECTED):
            backend.add_document("owner", status=status)

        counts = await StatisticsAggregator(backend).compute(StatsScope.all())

        assert counts[S.PENDING] == 2
        assert counts[S.UNDER_REVIEW] == 1
        assert counts.total == 5
        assert sum(counts.counts.values()) == counts.total

    @pytest.mark.asyncio
    async def test_user_scope(self, backend):
        backend.add_document("alice", status=S.PENDING)
        backend.add_document("alice", status=S.PUBLISHED)
        backend.add_document("bob", status=S.PENDING)

        counts = await StatisticsAggregator(backend).compute(StatsScope.for_user("alice"))

        assert counts.total == 2
        assert counts[S.PUBLISHED] == 1

    @pytest.mark.asyncio
    async def test_category_scope_is_case_insensitive(self, backend):
        backend.add_document("alice", program="BS Computer Science")
        backend.add_document("bob", program="bs computer science")
        backend.add_document("carol", program="BS Nursing")

        counts = await StatisticsAggregator(backend).compute(StatsScope.for_category("BS COMPUTER SCIENCE"))
        assert counts.total == 2

    @pytest.mark.asyncio
    async def test_counts_follow_transitions(self, backend):
        doc = backend.add_document("owner")
        aggregator = StatisticsAggregator(backend)
        await WorkflowEngine(backend).transition(doc.id, S.UNDER_REVIEW, Actor("fac", UserRole.FACULTY))

        counts = await aggregator.compute()
        assert counts[S.PENDING] == 0
        assert counts[S.UNDER_REVIEW] == 1

    def test_scope_filters(self):
        assert StatsScope.all().to_filter() == DocumentFilter()
        assert StatsScope.for_user("u1").to_filter() == DocumentFilter(user_id="u1")
        assert StatsScope.for_category("MBA").to_filter() == DocumentFilter(program="MBA")


class TestWorkflowStatistics:
    """Test role-shaped dashboard counts"""

    @pytest.mark.asyncio
    async def test_student_sees_own_documents(self, backend):
        backend.add_document("stu", status=S.PENDING)
        backend.add_document("stu", status=S.NEEDS_REVISION)
        backend.add_document("other", status=S.PENDING)

        stats = await StatisticsAggregator(backend).workflow_statistics(Actor("stu", UserRole.STUDENT))

        assert stats == {"pending": 1, "under_review": 0, "needs_revision": 1, "published": 0}

    @pytest.mark.asyncio
    async def test_faculty_sees_advised_documents(self, backend):
        backend.add_document("stu", status=S.PENDING, adviser_id="fac")
        backend.add_document("stu", status=S.UNDER_REVIEW, adviser_id="fac")
        backend.add_document("stu", status=S.PENDING, adviser_id="someone-else")
        backend.pending_reviews["fac"] = 3
        backend.pending_revisions["fac"] = 1

        stats = await StatisticsAggregator(backend).workflow_statistics(Actor("fac", UserRole.FACULTY))

        assert stats == {
            "pending": 1,
            "under_review": 1,
            "pending_reviews": 3,
            "pending_revision_requests": 1,
        }

    @pytest.mark.asyncio
    async def test_librarian_sees_collection(self, backend):
        backend.add_document("a", status=S.CURATION)
        backend.add_document("b", status=S.READY_FOR_PUBLICATION)
        backend.add_document("c", status=S.PENDING)

        stats = await StatisticsAggregator(backend).workflow_statistics(Actor("lib", "librarian"))

        assert stats["curation"] == 1
        assert stats["ready_for_publication"] == 1
        assert stats["pending"] == 1

    @pytest.mark.asyncio
    async def test_unknown_role_gets_nothing(self, backend):
        backend.add_document("a")
        assert await StatisticsAggregator(backend).workflow_statistics(Actor("x", "guest")) == {}


class TestRepositoryStatistics:
    @pytest.mark.asyncio
    async def test_sidebar_figures(self, backend):
        now = datetime(2024, 6, 20, 10, 0)
        backend.add_document("me", status=S.PUBLISHED, program="BS IT", created_at=now - timedelta(days=2),
                             download_count=4)
        backend.add_document("me", status=S.PENDING, created_at=now - timedelta(days=40))
        backend.add_document("other", status=S.PUBLISHED, program="bs it", created_at=now - timedelta(days=30),
                             download_count=1)
        backend.add_document("other", status=S.UNDER_REVIEW, created_at=now - timedelta(days=1))
        backend.starred["me"] = 2

        stats = await StatisticsAggregator(backend).repository_statistics("me", now=now)

        assert stats["total_documents"] == 2
        assert stats["recent_documents"] == 1
        assert stats["my_uploads"] == 2
        assert stats["starred_documents"] == 2
        assert stats["workflow_documents"] == 2
        assert stats["category_counts"] == {"bs it": 2}
        assert stats["repository_stats"] == {
            "total_theses": 4,
            "this_month": 2,
            "total_downloads": 5,
        }
