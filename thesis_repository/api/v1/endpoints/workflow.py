"""
Workflow endpoints

Every status change goes through WorkflowEngine.transition; the other
routes are read-only views of the queue, history and current status.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from thesis_repository.core.database import get_db
from thesis_repository.core.logging_config import logger, set_document_id
from thesis_repository.models.document import DocumentStatus
from thesis_repository.modules.auth.dependencies import get_current_actor
from thesis_repository.modules.workflow.backend import SQLAlchemyWorkflowBackend, WorkflowHistoryEntry
from thesis_repository.modules.workflow.engine import Actor, WorkflowEngine
from thesis_repository.modules.workflow.history import HistoryLedger
from thesis_repository.modules.workflow.status_registry import is_terminal, workflow_position
from thesis_repository.schemas.document import DocumentResponse
from thesis_repository.schemas.workflow import (
    HistoryEntryResponse,
    TransitionRequest,
    TransitionResponse,
    WorkflowQueueItem,
    WorkflowStatusResponse,
)
from thesis_repository.services.audit_service import AuditService
from thesis_repository.services.document_service import DocumentService
from thesis_repository.services.review_service import ReviewService

router = APIRouter()


def _history_response(entry: WorkflowHistoryEntry) -> HistoryEntryResponse:
    return HistoryEntryResponse(**entry.to_dict())


@router.get("/documents", response_model=List[WorkflowQueueItem])
async def workflow_queue(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """Documents the actor can see in the workflow, ordered by workflow position"""
    backend = SQLAlchemyWorkflowBackend(db)
    engine = WorkflowEngine(backend)
    documents = await DocumentService(db).workflow_queue(actor)

    items = []
    for document in documents:
        record = await backend.get_document(document.id)
        items.append(WorkflowQueueItem(
            document=DocumentResponse.from_document(document),
            workflow_position=workflow_position(record.status),
            available_transitions=[s.value for s in engine.available_transitions(record, actor)],
        ))
    return items


@router.post("/documents/{document_id}/transition", response_model=TransitionResponse)
async def transition_document(
    document_id: str,
    body: TransitionRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Run a status transition. Documents the actor cannot see are reported as
    not found before any workflow check runs.

    The audit entry is written after the transition has committed; if it
    cannot be stored the error is logged and the transition still succeeds.
    """
    await DocumentService(db).get_visible_document(document_id, actor)
    set_document_id(document_id)

    engine = WorkflowEngine(SQLAlchemyWorkflowBackend(db))
    result = await engine.transition(
        document_id,
        body.target_status,
        actor,
        reason=body.reason,
        comments=body.comments,
    )

    try:
        await AuditService(db).log_event(
            "status_changed", "document", result.document_id, actor_id=actor.id,
            details={"from": result.from_status.value, "to": result.to_status.value, "reason": body.reason},
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.log_error_with_context(e, context="transition_audit")

    return TransitionResponse(
        document_id=result.document_id,
        from_status=result.from_status.value,
        to_status=result.to_status.value,
        message=result.message,
        history_entry=_history_response(result.history_entry),
    )


@router.get("/documents/{document_id}/history", response_model=List[HistoryEntryResponse])
async def document_history(
    document_id: str,
    newest_first: bool = Query(False),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    await DocumentService(db).get_visible_document(document_id, actor)
    entries = await HistoryLedger(SQLAlchemyWorkflowBackend(db)).list_for(document_id, newest_first=newest_first)
    return [_history_response(e) for e in entries]


@router.get("/documents/{document_id}/status", response_model=WorkflowStatusResponse)
async def document_workflow_status(
    document_id: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """Current status with history, open reviews, pending revisions and next steps"""
    await DocumentService(db).get_visible_document(document_id, actor)

    backend = SQLAlchemyWorkflowBackend(db)
    record = await backend.get_document(document_id)
    history = await HistoryLedger(backend).list_for(document_id)
    reviews = ReviewService(db)
    status = DocumentStatus(record.status)

    return WorkflowStatusResponse(
        document_id=record.id,
        status=status.value,
        is_terminal=is_terminal(status),
        workflow_position=workflow_position(status),
        available_transitions=[
            s.value for s in WorkflowEngine(backend).available_transitions(record, actor)
        ],
        history=[_history_response(e) for e in history],
        open_reviews=await reviews.count_open_reviews(document_id),
        pending_revisions=await reviews.count_pending_revisions(document_id),
    )
