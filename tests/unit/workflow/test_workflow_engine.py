"""
Unit Tests for the Workflow Engine
Tests for: edge validation, permission checks, history, atomicity
"""
import itertools
import pytest

from thesis_repository.core.exceptions import (
    BackendUnavailableError,
    DocumentNotFoundError,
    InvalidTransitionError,
    PermissionDeniedError,
    StaleTransitionError,
)
from thesis_repository.models.document import DocumentStatus
from thesis_repository.models.user import UserRole
from thesis_repository.modules.workflow.engine import Actor, WorkflowEngine
from thesis_repository.modules.workflow.status_registry import TRANSITIONS

from tests.mocks.workflow_backend import InMemoryWorkflowBackend

S = DocumentStatus

OWNER_ID = "owner-1"

# Roles allowed to take each edge when the actor is not the owner
ALLOWED_ROLES = {
    (S.PENDING, S.UNDER_REVIEW): {UserRole.FACULTY, UserRole.LIBRARIAN, UserRole.ADMIN},
    (S.UNDER_REVIEW, S.PUBLISHED): {UserRole.FACULTY, UserRole.LIBRARIAN, UserRole.ADMIN},
    (S.UNDER_REVIEW, S.APPROVED): {UserRole.FACULTY, UserRole.LIBRARIAN, UserRole.ADMIN},
    (S.UNDER_REVIEW, S.NEEDS_REVISION): {UserRole.FACULTY, UserRole.LIBRARIAN, UserRole.ADMIN},
    (S.UNDER_REVIEW, S.REJECTED): {UserRole.FACULTY, UserRole.LIBRARIAN, UserRole.ADMIN},
    (S.NEEDS_REVISION, S.PENDING): {UserRole.LIBRARIAN, UserRole.ADMIN},
    (S.APPROVED, S.CURATION): {UserRole.LIBRARIAN, UserRole.ADMIN},
    (S.CURATION, S.READY_FOR_PUBLICATION): {UserRole.LIBRARIAN, UserRole.ADMIN},
    (S.READY_FOR_PUBLICATION, S.PUBLISHED): {UserRole.LIBRARIAN, UserRole.ADMIN},
}

NON_EDGES = [
    pair for pair in itertools.product(DocumentStatus, repeat=2)
    if pair not in TRANSITIONS
]


@pytest.fixture
def backend():
    return InMemoryWorkflowBackend()


@pytest.fixture
def engine(backend):
    return WorkflowEngine(backend)


def actor(role, actor_id=None):
    return Actor(id=actor_id or f"{getattr(role, 'value', role)}-actor", role=role)


class TestInvalidTransitions:
    """Every pair outside the registry fails for every role, with no writes"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("pair", NON_EDGES)
    async def test_non_edges_rejected_for_all_roles(self, backend, engine, pair):
        current, target = pair
        for role in list(UserRole) + [None]:
            doc = backend.add_document(OWNER_ID, status=current)
            with pytest.raises(InvalidTransitionError) as exc:
                await engine.transition(doc.id, target, actor(role))
            assert exc.value.code == "INVALID_TRANSITION"
            assert backend.documents[doc.id].status == current
        assert backend.history == []

    @pytest.mark.asyncio
    async def test_published_to_published_is_invalid(self, backend, engine):
        doc = backend.add_document(OWNER_ID, status=S.PUBLISHED)
        with pytest.raises(InvalidTransitionError):
            await engine.transition(doc.id, S.PUBLISHED, actor(UserRole.ADMIN))

    @pytest.mark.asyncio
    async def test_unknown_target_is_invalid(self, backend, engine):
        doc = backend.add_document(OWNER_ID)
        with pytest.raises(InvalidTransitionError) as exc:
            await engine.transition(doc.id, "archived", actor(UserRole.ADMIN))
        assert exc.value.details["requested_status"] == "archived"

    @pytest.mark.asyncio
    async def test_invalid_edge_checked_before_permission(self, backend, engine):
        """A student asking for a non-edge gets InvalidTransition, not PermissionDenied"""
        doc = backend.add_document(OWNER_ID, status=S.PENDING)
        with pytest.raises(InvalidTransitionError):
            await engine.transition(doc.id, S.PUBLISHED, actor(UserRole.STUDENT))

    @pytest.mark.asyncio
    async def test_missing_document(self, engine):
        with pytest.raises(DocumentNotFoundError):
            await engine.transition("missing", S.UNDER_REVIEW, actor(UserRole.ADMIN))


class TestPermissionChecks:
    """Each edge succeeds exactly for the roles holding one of its capabilities"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("edge", sorted(TRANSITIONS, key=lambda e: (e[0].value, e[1].value)))
    async def test_edge_by_role(self, backend, engine, edge):
        current, target = edge
        for role in UserRole:
            doc = backend.add_document(OWNER_ID, status=current)
            if role in ALLOWED_ROLES[edge]:
                result = await engine.transition(doc.id, target, actor(role))
                assert result.from_status == current
                assert result.to_status == target
                assert backend.documents[doc.id].status == target
            else:
                with pytest.raises(PermissionDeniedError) as exc:
                    await engine.transition(doc.id, target, actor(role))
                assert exc.value.code == "PERMISSION_DENIED"
                assert backend.documents[doc.id].status == current

    @pytest.mark.asyncio
    async def test_unknown_role_denied_on_every_edge(self, backend, engine):
        for current, target in TRANSITIONS:
            doc = backend.add_document(OWNER_ID, status=current)
            with pytest.raises(PermissionDeniedError):
                await engine.transition(doc.id, target, actor("guest"))

    @pytest.mark.asyncio
    async def test_owner_can_resubmit(self, backend, engine):
        doc = backend.add_document(OWNER_ID, status=S.NEEDS_REVISION)
        result = await engine.transition(doc.id, S.PENDING, Actor(OWNER_ID, UserRole.STUDENT))
        assert result.to_status == S.PENDING

    @pytest.mark.asyncio
    async def test_owner_cannot_self_review(self, backend, engine):
        doc = backend.add_document(OWNER_ID, status=S.PENDING)
        with pytest.raises(PermissionDeniedError):
            await engine.transition(doc.id, S.UNDER_REVIEW, Actor(OWNER_ID, UserRole.STUDENT))

    @pytest.mark.asyncio
    async def test_denial_lists_required_capabilities(self, backend, engine):
        doc = backend.add_document(OWNER_ID, status=S.APPROVED)
        with pytest.raises(PermissionDeniedError) as exc:
            await engine.transition(doc.id, S.CURATION, actor(UserRole.FACULTY))
        assert exc.value.details["required_capabilities"] == ["can_manage_workflow"]
        assert exc.value.details["role"] == "faculty"

    @pytest.mark.asyncio
    async def test_required_capabilities_are_sorted(self, backend, engine):
        doc = backend.add_document(OWNER_ID, status=S.PENDING)
        with pytest.raises(PermissionDeniedError) as exc:
            await engine.transition(doc.id, S.UNDER_REVIEW, actor(UserRole.STUDENT))
        assert exc.value.details["required_capabilities"] == ["can_manage_workflow", "can_review"]


class TestHistory:
    """Every successful transition appends exactly one entry"""

    @pytest.mark.asyncio
    async def test_one_entry_per_transition(self, backend, engine):
        doc = backend.add_document(OWNER_ID)
        result = await engine.transition(
            doc.id, S.UNDER_REVIEW, actor(UserRole.FACULTY, "fac-1"),
            reason="Assigned", comments="Starting review",
        )

        assert len(backend.history) == 1
        entry = backend.history[0]
        assert entry.from_status == S.PENDING
        assert entry.to_status == S.UNDER_REVIEW
        assert entry.changed_by == "fac-1"
        assert entry.reason == "Assigned"
        assert entry.comments == "Starting review"
        assert result.history_entry == entry

    @pytest.mark.asyncio
    async def test_revision_round_trip(self, backend, engine):
        doc = backend.add_document(OWNER_ID, status=S.NEEDS_REVISION)
        await engine.transition(doc.id, S.PENDING, Actor(OWNER_ID, UserRole.STUDENT))
        await engine.transition(doc.id, S.UNDER_REVIEW, actor(UserRole.FACULTY))

        entries = await engine.ledger.list_for(doc.id)
        assert [(e.from_status, e.to_status) for e in entries] == [
            (S.NEEDS_REVISION, S.PENDING),
            (S.PENDING, S.UNDER_REVIEW),
        ]
        assert backend.documents[doc.id].status == S.UNDER_REVIEW

    @pytest.mark.asyncio
    async def test_failed_transition_writes_nothing(self, backend, engine):
        doc = backend.add_document(OWNER_ID)
        with pytest.raises(PermissionDeniedError):
            await engine.transition(doc.id, S.UNDER_REVIEW, actor(UserRole.STUDENT))
        assert backend.history == []
        assert backend.commits == 0


class TestScenarios:
    """End-to-end paths through the graph"""

    @pytest.mark.asyncio
    async def test_direct_publication(self, backend, engine):
        doc = backend.add_document(OWNER_ID)
        faculty = actor(UserRole.FACULTY)

        await engine.transition(doc.id, S.UNDER_REVIEW, faculty)
        result = await engine.transition(doc.id, S.PUBLISHED, faculty)

        record = backend.documents[doc.id]
        assert record.status == S.PUBLISHED
        assert record.published_at is not None
        assert "published" in result.message
        assert len(backend.history) == 2

    @pytest.mark.asyncio
    async def test_curation_path(self, backend, engine):
        doc = backend.add_document(OWNER_ID)
        faculty = actor(UserRole.FACULTY)
        librarian = actor(UserRole.LIBRARIAN)

        await engine.transition(doc.id, S.UNDER_REVIEW, faculty)
        await engine.transition(doc.id, S.APPROVED, faculty)
        with pytest.raises(PermissionDeniedError):
            await engine.transition(doc.id, S.CURATION, faculty)
        await engine.transition(doc.id, S.CURATION, librarian)
        await engine.transition(doc.id, S.READY_FOR_PUBLICATION, librarian)
        await engine.transition(doc.id, S.PUBLISHED, librarian)

        assert [e.to_status for e in backend.history] == [
            S.UNDER_REVIEW, S.APPROVED, S.CURATION, S.READY_FOR_PUBLICATION, S.PUBLISHED,
        ]

    @pytest.mark.asyncio
    async def test_rejection_is_terminal(self, backend, engine):
        doc = backend.add_document(OWNER_ID)
        faculty = actor(UserRole.FACULTY)

        await engine.transition(doc.id, S.UNDER_REVIEW, faculty)
        await engine.transition(doc.id, S.REJECTED, faculty, reason="Out of scope")

        for target in DocumentStatus:
            with pytest.raises(InvalidTransitionError):
                await engine.transition(doc.id, target, actor(UserRole.ADMIN))
        assert backend.history[-1].reason == "Out of scope"


class TestAtomicity:
    """Backend failures roll back the whole unit of work"""

    @pytest.mark.asyncio
    async def test_history_failure_rolls_back_status(self, backend, engine):
        doc = backend.add_document(OWNER_ID)
        backend.fail_on.add("insert_history_entry")

        with pytest.raises(BackendUnavailableError) as exc:
            await engine.transition(doc.id, S.UNDER_REVIEW, actor(UserRole.FACULTY))

        assert exc.value.status_code == 503
        assert backend.documents[doc.id].status == S.PENDING
        assert backend.history == []
        assert backend.rollbacks == 1

    @pytest.mark.asyncio
    async def test_commit_failure_rolls_back(self, backend, engine):
        doc = backend.add_document(OWNER_ID)
        backend.fail_on.add("commit")

        with pytest.raises(BackendUnavailableError):
            await engine.transition(doc.id, S.UNDER_REVIEW, actor(UserRole.FACULTY))

        assert backend.documents[doc.id].status == S.PENDING
        assert backend.history == []

    @pytest.mark.asyncio
    async def test_load_failure(self, backend, engine):
        doc = backend.add_document(OWNER_ID)
        backend.fail_on.add("get_document")

        with pytest.raises(BackendUnavailableError):
            await engine.transition(doc.id, S.UNDER_REVIEW, actor(UserRole.FACULTY))
        assert backend.rollbacks == 0

    @pytest.mark.asyncio
    async def test_concurrent_change_is_stale(self, backend, engine):
        doc = backend.add_document(OWNER_ID, status=S.UNDER_REVIEW)
        backend.concurrent_status = S.REJECTED

        with pytest.raises(StaleTransitionError) as exc:
            await engine.transition(doc.id, S.PUBLISHED, actor(UserRole.FACULTY))

        assert exc.value.code == "STALE_TRANSITION"
        assert exc.value.status_code == 409
        assert backend.documents[doc.id].status == S.REJECTED
        assert backend.history == []


class TestAvailableTransitions:
    def test_faculty_on_review(self, backend, engine):
        doc = backend.add_document(OWNER_ID, status=S.UNDER_REVIEW)
        assert engine.available_transitions(doc, actor(UserRole.FACULTY)) == [
            S.NEEDS_REVISION, S.APPROVED, S.PUBLISHED, S.REJECTED,
        ]

    def test_owner_on_needs_revision(self, backend, engine):
        doc = backend.add_document(OWNER_ID, status=S.NEEDS_REVISION)
        assert engine.available_transitions(doc, Actor(OWNER_ID, UserRole.STUDENT)) == [S.PENDING]
        assert engine.available_transitions(doc, actor(UserRole.STUDENT)) == []

    def test_terminal_has_none(self, backend, engine):
        doc = backend.add_document(OWNER_ID, status=S.PUBLISHED)
        assert engine.available_transitions(doc, actor(UserRole.ADMIN)) == []
