from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from thesis_repository.models.document import DocumentStatus
from thesis_repository.schemas.document import DocumentResponse


class TransitionRequest(BaseModel):
    target_status: DocumentStatus
    reason: Optional[str] = Field(None, max_length=2000)
    comments: Optional[str] = Field(None, max_length=5000)


class HistoryEntryResponse(BaseModel):
    id: Optional[str] = None
    document_id: str
    from_status: Optional[str] = None
    to_status: str
    changed_by: str
    reason: Optional[str] = None
    comments: Optional[str] = None
    created_at: Optional[datetime] = None


class TransitionResponse(BaseModel):
    success: bool = True
    document_id: str
    from_status: str
    to_status: str
    message: str
    history_entry: HistoryEntryResponse


class WorkflowQueueItem(BaseModel):
    document: DocumentResponse
    workflow_position: int
    available_transitions: List[str]


class WorkflowStatusResponse(BaseModel):
    document_id: str
    status: str
    is_terminal: bool
    workflow_position: int
    available_transitions: List[str]
    history: List[HistoryEntryResponse]
    open_reviews: int
    pending_revisions: int
