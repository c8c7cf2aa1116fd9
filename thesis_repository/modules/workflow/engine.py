"""
Workflow Engine
===============

Validates and applies document status transitions:

1. Load the document (DocumentNotFoundError when missing)
2. Resolve the actor's capabilities from their role
3. Look up the edge in the status registry (InvalidTransitionError)
4. Check the edge's capabilities, or ownership for resubmission (PermissionDeniedError)
5. Compare-and-swap the status against the value read in step 1 (StaleTransitionError)
6. Append one history entry
7. Commit

Steps 5-7 form one unit of work: on any failure the backend is rolled back
and nothing is persisted. The engine never retries.

Usage:
    engine = WorkflowEngine(SQLAlchemyWorkflowBackend(db))
    result = await engine.transition(doc_id, DocumentStatus.UNDER_REVIEW, Actor.from_user(user))
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Union

from thesis_repository.core.exceptions import (
    DocumentNotFoundError,
    InvalidTransitionError,
    PermissionDeniedError,
    RepositoryError,
    StaleTransitionError,
)
from thesis_repository.core.logging_config import logger
from thesis_repository.models.document import DocumentStatus
from thesis_repository.models.user import UserRole
from thesis_repository.modules.workflow import permissions
from thesis_repository.modules.workflow.backend import (
    DocumentRecord,
    WorkflowBackend,
    WorkflowHistoryEntry,
)
from thesis_repository.modules.workflow.history import HistoryLedger
from thesis_repository.modules.workflow.status_registry import (
    allowed_targets,
    coerce_status,
    get_rule,
    status_label,
)


@dataclass(frozen=True)
class Actor:
    """The user performing an action, passed explicitly into every call"""
    id: str
    role: Union[UserRole, str, None]

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(id=str(user.id), role=user.role)

    @property
    def role_name(self) -> str:
        if isinstance(self.role, UserRole):
            return self.role.value
        return str(self.role or "")


@dataclass(frozen=True)
class TransitionResult:
    document_id: str
    from_status: DocumentStatus
    to_status: DocumentStatus
    history_entry: WorkflowHistoryEntry
    message: str

    def to_dict(self) -> dict:
        return {
            "document_id": self.document_id,
            "from_status": self.from_status.value,
            "to_status": self.to_status.value,
            "history_entry": self.history_entry.to_dict(),
            "message": self.message,
        }


class WorkflowEngine:
    def __init__(self, backend: WorkflowBackend, ledger: Optional[HistoryLedger] = None):
        self.backend = backend
        self.ledger = ledger or HistoryLedger(backend)

    async def transition(
        self,
        document_id: str,
        target_status: Union[DocumentStatus, str],
        actor: Actor,
        reason: Optional[str] = None,
        comments: Optional[str] = None,
    ) -> TransitionResult:
        document_id = str(document_id)
        requested = getattr(target_status, "value", target_status)
        current = None

        try:
            document = await self.backend.get_document(document_id)
            if document is None:
                raise DocumentNotFoundError(document_id)
            current = document.status

            capabilities = permissions.resolve(actor.role)

            target = coerce_status(target_status)
            rule = get_rule(current, target) if target is not None else None
            if rule is None:
                raise InvalidTransitionError(current.value, str(requested))

            is_owner = document.user_id == str(actor.id)
            if not (rule.required_any & capabilities or (rule.owner_allowed and is_owner)):
                raise PermissionDeniedError(
                    f"Role '{actor.role_name or 'none'}' may not move a document "
                    f"from '{current.value}' to '{target.value}'",
                    required=sorted(rule.required_any),
                    role=actor.role_name or None,
                )

            entry = await self._apply(document, target, actor, reason, comments)

        except RepositoryError as e:
            logger.log_workflow_event(
                document_id,
                current.value if current else "-",
                str(requested),
                str(actor.id),
                success=False,
                reason=e.code,
            )
            raise

        logger.log_workflow_event(document_id, current.value, target.value, str(actor.id))

        return TransitionResult(
            document_id=document_id,
            from_status=current,
            to_status=target,
            history_entry=entry,
            message=f"Document {status_label(target)}",
        )

    async def _apply(
        self,
        document: DocumentRecord,
        target: DocumentStatus,
        actor: Actor,
        reason: Optional[str],
        comments: Optional[str],
    ) -> WorkflowHistoryEntry:
        """Status write + history append + commit, rolled back together on failure"""
        try:
            swapped = await self.backend.update_document_status(document.id, document.status, target)
            if not swapped:
                raise StaleTransitionError(document.status.value, target.value)

            entry = await self.ledger.append(WorkflowHistoryEntry(
                document_id=document.id,
                from_status=document.status,
                to_status=target,
                changed_by=str(actor.id),
                reason=reason,
                comments=comments,
                created_at=datetime.utcnow(),
            ))
            await self.backend.commit()
        except Exception:
            await self._rollback(document.id)
            raise
        return entry

    async def _rollback(self, document_id: str) -> None:
        try:
            await self.backend.rollback()
        except RepositoryError as e:
            logger.log_error_with_context(e, context="workflow rollback", document_id=document_id)

    def available_transitions(self, document: DocumentRecord, actor: Actor) -> List[DocumentStatus]:
        """Targets the actor may move the document to right now"""
        is_owner = document.user_id == str(actor.id)
        return [
            target for target in allowed_targets(document.status)
            if permissions.can_transition(get_rule(document.status, target), actor.role, is_owner)
        ]
