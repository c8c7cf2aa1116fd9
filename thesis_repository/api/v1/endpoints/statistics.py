from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, Optional

from thesis_repository.core.database import get_db
from thesis_repository.core.exceptions import PermissionDeniedError, ValidationError
from thesis_repository.modules.auth.dependencies import get_current_actor
from thesis_repository.modules.workflow.backend import SQLAlchemyWorkflowBackend
from thesis_repository.modules.workflow.engine import Actor
from thesis_repository.modules.workflow.permissions import Capability, has_capability
from thesis_repository.modules.workflow.statistics import StatisticsAggregator, StatsScope
from thesis_repository.schemas.statistics import (
    RepositoryStatisticsResponse,
    StatusCountsResponse,
)

router = APIRouter()


@router.get("/status-counts", response_model=StatusCountsResponse)
async def status_counts(
    scope: str = Query("all", pattern="^(all|user|category)$"),
    user_id: Optional[str] = None,
    category: Optional[str] = None,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Per-status document counts.

    scope=user defaults to the caller; counting someone else's documents
    or the whole collection needs can_view_analytics.
    """
    if scope == "user":
        target = user_id or actor.id
        if target != actor.id and not has_capability(actor.role, Capability.VIEW_ANALYTICS):
            raise PermissionDeniedError("Viewing other users' statistics is not allowed")
        stats_scope = StatsScope.for_user(target)
    else:
        if not has_capability(actor.role, Capability.VIEW_ANALYTICS):
            raise PermissionDeniedError(
                "Collection statistics require analytics access", required=[Capability.VIEW_ANALYTICS]
            )
        if scope == "category":
            if not category:
                raise ValidationError("category is required for scope=category", field="category")
            stats_scope = StatsScope.for_category(category)
        else:
            stats_scope = StatsScope.all()

    counts = await StatisticsAggregator(SQLAlchemyWorkflowBackend(db)).compute(stats_scope)
    data = counts.to_dict()
    total = data.pop("total")
    return StatusCountsResponse(scope=stats_scope.kind, value=stats_scope.value, counts=data, total=total)


@router.get("/workflow", response_model=Dict[str, int])
async def workflow_statistics(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    """Dashboard counts shaped by the caller's role"""
    return await StatisticsAggregator(SQLAlchemyWorkflowBackend(db)).workflow_statistics(actor)


@router.get("/repository", response_model=RepositoryStatisticsResponse)
async def repository_statistics(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db)
):
    return await StatisticsAggregator(SQLAlchemyWorkflowBackend(db)).repository_statistics(actor.id)
