"""
Document status registry.

The closed set of statuses and the directed graph of transitions between
them. Every edge names the capabilities that allow an actor to take it;
holding any one of them is enough. The `needs_revision -> pending` edge can
additionally be taken by the document owner (resubmission).
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple

from thesis_repository.models.document import DocumentStatus
from thesis_repository.modules.workflow.permissions import Capability


INITIAL_STATUS = DocumentStatus.PENDING


@dataclass(frozen=True)
class TransitionRule:
    from_status: DocumentStatus
    to_status: DocumentStatus
    required_any: FrozenSet[Capability]
    owner_allowed: bool = False


def _rule(from_status, to_status, *capabilities, owner_allowed=False) -> TransitionRule:
    return TransitionRule(
        from_status=from_status,
        to_status=to_status,
        required_any=frozenset(capabilities),
        owner_allowed=owner_allowed,
    )


S = DocumentStatus
C = Capability

TRANSITIONS: Dict[Tuple[DocumentStatus, DocumentStatus], TransitionRule] = {
    (r.from_status, r.to_status): r
    for r in (
        _rule(S.PENDING, S.UNDER_REVIEW, C.REVIEW, C.MANAGE_WORKFLOW),
        _rule(S.UNDER_REVIEW, S.PUBLISHED, C.APPROVE, C.MANAGE_WORKFLOW),
        _rule(S.UNDER_REVIEW, S.APPROVED, C.APPROVE, C.MANAGE_WORKFLOW),
        _rule(S.UNDER_REVIEW, S.NEEDS_REVISION, C.REVIEW, C.MANAGE_WORKFLOW),
        _rule(S.UNDER_REVIEW, S.REJECTED, C.APPROVE, C.MANAGE_WORKFLOW),
        _rule(S.NEEDS_REVISION, S.PENDING, C.MANAGE_WORKFLOW, owner_allowed=True),
        _rule(S.APPROVED, S.CURATION, C.MANAGE_WORKFLOW),
        _rule(S.CURATION, S.READY_FOR_PUBLICATION, C.MANAGE_WORKFLOW),
        _rule(S.READY_FOR_PUBLICATION, S.PUBLISHED, C.MANAGE_WORKFLOW),
    )
}

del S, C

TERMINAL_STATUSES: FrozenSet[DocumentStatus] = frozenset(
    {DocumentStatus.PUBLISHED, DocumentStatus.REJECTED}
)

# Display ordering for workflow queues
WORKFLOW_POSITION: Dict[DocumentStatus, int] = {
    DocumentStatus.PENDING: 1,
    DocumentStatus.UNDER_REVIEW: 2,
    DocumentStatus.NEEDS_REVISION: 3,
    DocumentStatus.APPROVED: 4,
    DocumentStatus.CURATION: 5,
    DocumentStatus.READY_FOR_PUBLICATION: 6,
    DocumentStatus.PUBLISHED: 7,
    DocumentStatus.REJECTED: 8,
}

# Message shown after a document reaches a status
STATUS_LABELS: Dict[DocumentStatus, str] = {
    DocumentStatus.PENDING: "submitted for review",
    DocumentStatus.UNDER_REVIEW: "moved to review",
    DocumentStatus.NEEDS_REVISION: "marked for revision",
    DocumentStatus.APPROVED: "approved for curation",
    DocumentStatus.CURATION: "moved to curation",
    DocumentStatus.READY_FOR_PUBLICATION: "ready for publication",
    DocumentStatus.PUBLISHED: "approved and published - now visible to all users",
    DocumentStatus.REJECTED: "rejected",
}

# Statuses that still need someone to act on them
ACTIVE_STATUSES: FrozenSet[DocumentStatus] = frozenset(
    {DocumentStatus.PENDING, DocumentStatus.UNDER_REVIEW, DocumentStatus.NEEDS_REVISION}
)


def coerce_status(value) -> Optional[DocumentStatus]:
    """DocumentStatus for an enum member or its string value, None if unknown"""
    if isinstance(value, DocumentStatus):
        return value
    try:
        return DocumentStatus(value)
    except ValueError:
        return None


def get_rule(from_status: DocumentStatus, to_status: DocumentStatus) -> Optional[TransitionRule]:
    return TRANSITIONS.get((from_status, to_status))


def allowed_targets(from_status: DocumentStatus) -> List[DocumentStatus]:
    """Targets reachable in one step, in workflow order"""
    targets = [to for (frm, to) in TRANSITIONS if frm == from_status]
    return sorted(targets, key=workflow_position)


def is_terminal(status: DocumentStatus) -> bool:
    return status in TERMINAL_STATUSES


def workflow_position(status: DocumentStatus) -> int:
    return WORKFLOW_POSITION.get(status, len(WORKFLOW_POSITION) + 1)


def status_label(status: DocumentStatus) -> str:
    return STATUS_LABELS.get(status, status.value.replace("_", " "))
