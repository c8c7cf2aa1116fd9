from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from thesis_repository.core.database import get_db
from thesis_repository.core.rate_limiter import upload_rate_limit
from thesis_repository.models.user import User
from thesis_repository.modules.auth.dependencies import (
    get_current_actor,
    get_optional_current_user,
)
from thesis_repository.modules.workflow.engine import Actor
from thesis_repository.schemas.document import (
    CitationResponse,
    DocumentCreate,
    DocumentFileResponse,
    DocumentListResponse,
    DocumentResponse,
    DownloadResponse,
)
from thesis_repository.services.citation_service import CitationSource, generate_citation
from thesis_repository.services.document_service import DocumentService

router = APIRouter()


def _optional_actor(user: Optional[User]) -> Optional[Actor]:
    return Actor.from_user(user) if user is not None else None


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    category: Optional[str] = None,
    search: Optional[str] = None,
    user_id: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db)
):
    """Published documents, newest first"""
    documents, total = await DocumentService(db).list_documents(
        category=category, search=search, user_id=user_id, limit=limit, offset=offset
    )
    return DocumentListResponse(
        items=[DocumentResponse.from_document(d) for d in documents],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    data: DocumentCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """Submit a new document; it starts in the workflow as pending"""
    document = await DocumentService(db).create_document(data, actor)
    return DocumentResponse.from_document(document)


@router.get("/search", response_model=List[DocumentResponse])
async def search_documents(
    q: str = Query(..., min_length=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    documents = await DocumentService(db).search_documents(q, limit=limit)
    return [DocumentResponse.from_document(d) for d in documents]


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: AsyncSession = Depends(get_db)
):
    service = DocumentService(db)
    document = await service.get_visible_document(document_id, _optional_actor(current_user))
    document = await service.record_view(document.id)
    return DocumentResponse.from_document(document)


@router.post("/{document_id}/file", response_model=DocumentFileResponse, status_code=status.HTTP_201_CREATED)
@upload_rate_limit()
async def upload_document_file(
    request: Request,
    document_id: str,
    file: UploadFile = File(...),
    pages: Optional[int] = Form(None, ge=1),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """Upload the primary PDF for a document"""
    content = await file.read()
    doc_file = await DocumentService(db).attach_file(
        document_id,
        file_name=file.filename or "document.pdf",
        content=content,
        content_type=file.content_type or "application/octet-stream",
        actor=actor,
        pages=pages,
    )
    return DocumentFileResponse.model_validate(doc_file)


@router.get("/{document_id}/download", response_model=DownloadResponse)
async def download_document(
    request: Request,
    document_id: str,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """Signed URL for the primary file; `available` is false when signing timed out"""
    document, url = await DocumentService(db).get_download_url(document_id, actor, request=request)
    return DownloadResponse(
        document_id=str(document.id),
        url=url,
        available=url is not None,
        download_count=document.download_count,
    )


@router.get("/{document_id}/citation", response_model=CitationResponse)
async def get_citation(
    document_id: str,
    style: str = Query("apa"),
    university: Optional[str] = None,
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: AsyncSession = Depends(get_db)
):
    document = await DocumentService(db).get_visible_document(document_id, _optional_actor(current_user))
    citation = generate_citation(CitationSource.from_document(document, university=university), style)
    return CitationResponse(document_id=str(document.id), style=style.lower(), citation=citation)
