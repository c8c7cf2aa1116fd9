from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime


class DocumentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    abstract: str = Field(..., min_length=1)
    program: str = Field(..., min_length=1, max_length=255)
    year: int = Field(..., ge=1900, le=2100)
    authors: List[str] = Field(..., min_length=1)
    keywords: List[str] = Field(default_factory=list)
    adviser_id: Optional[str] = None
    adviser_name: Optional[str] = None

    @field_validator('authors')
    @classmethod
    def strip_authors(cls, value: List[str]) -> List[str]:
        cleaned = [a.strip() for a in value if a and a.strip()]
        if not cleaned:
            raise ValueError("At least one author is required")
        return cleaned

    @field_validator('keywords')
    @classmethod
    def normalise_keywords(cls, value: List[str]) -> List[str]:
        seen = []
        for kw in value:
            kw = (kw or "").strip().lower()
            if kw and kw not in seen:
                seen.append(kw)
        return seen


class DocumentFileResponse(BaseModel):
    id: str
    file_name: str
    file_size: Optional[int] = None
    file_type: Optional[str] = None
    is_primary: bool

    class Config:
        from_attributes = True


class DocumentResponse(BaseModel):
    id: str
    title: str
    abstract: Optional[str] = None
    authors: List[str]
    adviser_id: Optional[str] = None
    adviser_name: Optional[str] = None
    program: Optional[str] = None
    year: Optional[int] = None
    keywords: List[str] = Field(default_factory=list)
    pages: Optional[int] = None
    file_size: Optional[int] = None
    status: str
    user_id: str
    download_count: int
    view_count: int
    created_at: datetime
    updated_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    files: List[DocumentFileResponse] = Field(default_factory=list)

    @classmethod
    def from_document(cls, doc) -> "DocumentResponse":
        return cls(
            id=str(doc.id),
            title=doc.title,
            abstract=doc.abstract,
            authors=list(doc.authors or []),
            adviser_id=str(doc.adviser_id) if doc.adviser_id else None,
            adviser_name=doc.adviser_name,
            program=doc.program,
            year=doc.year,
            keywords=doc.keyword_names,
            pages=doc.pages,
            file_size=doc.file_size,
            status=getattr(doc.status, "value", doc.status),
            user_id=str(doc.user_id),
            download_count=doc.download_count or 0,
            view_count=doc.view_count or 0,
            created_at=doc.created_at,
            updated_at=doc.updated_at,
            published_at=doc.published_at,
            files=[DocumentFileResponse.model_validate(f) for f in doc.files],
        )


class DocumentListResponse(BaseModel):
    items: List[DocumentResponse]
    total: int
    limit: int
    offset: int


class DownloadResponse(BaseModel):
    document_id: str
    url: Optional[str] = None
    available: bool
    download_count: int


class CitationResponse(BaseModel):
    document_id: str
    style: str
    citation: str
