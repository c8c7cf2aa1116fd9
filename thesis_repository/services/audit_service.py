from typing import Any, Dict, List, Optional

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from thesis_repository.core.logging_config import logger
from thesis_repository.models.audit_log import AuditLog


class AuditService:
    """Writes audit entries into the caller's unit of work (no commit here)"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log_event(
        self,
        action: str,
        resource_type: str,
        resource_id: Optional[str] = None,
        actor_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        request: Optional[Request] = None,
    ) -> AuditLog:
        entry = AuditLog(
            actor_id=actor_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details,
            ip_address=request.client.host if request is not None and request.client else None,
            user_agent=request.headers.get("user-agent") if request is not None else None,
        )
        self.db.add(entry)
        logger.debug(
            f"[Audit] {action} on {resource_type}:{resource_id} by {actor_id}",
            extra={"event_type": "audit", "audit_action": action},
        )
        return entry

    async def list_for_resource(self, resource_type: str, resource_id: str) -> List[AuditLog]:
        result = await self.db.execute(
            select(AuditLog)
            .where(AuditLog.resource_type == resource_type, AuditLog.resource_id == resource_id)
            .order_by(AuditLog.created_at.asc())
        )
        return list(result.scalars().all())
