from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from thesis_repository.core.database import get_db
from thesis_repository.modules.auth.dependencies import get_current_actor
from thesis_repository.modules.workflow.engine import Actor
from thesis_repository.schemas.document import DocumentResponse
from thesis_repository.services.starred_service import StarredService

router = APIRouter()


@router.post("/{document_id}")
async def toggle_star(
    document_id: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    starred = await StarredService(db).toggle(document_id, actor)
    return {"document_id": document_id, "starred": starred}


@router.get("", response_model=List[DocumentResponse])
async def list_starred(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    documents = await StarredService(db).list_starred(actor.id)
    return [DocumentResponse.from_document(d) for d in documents]
