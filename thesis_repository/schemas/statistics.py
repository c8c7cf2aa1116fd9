from pydantic import BaseModel
from typing import Dict, Optional


class StatusCountsResponse(BaseModel):
    scope: str
    value: Optional[str] = None
    counts: Dict[str, int]
    total: int


class RepositoryStatsBlock(BaseModel):
    total_theses: int
    this_month: int
    total_downloads: int


class RepositoryStatisticsResponse(BaseModel):
    total_documents: int
    recent_documents: int
    my_uploads: int
    starred_documents: int
    workflow_documents: int
    category_counts: Dict[str, int]
    repository_stats: RepositoryStatsBlock
