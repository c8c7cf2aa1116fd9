from sqlalchemy import Column, String, DateTime, Text, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime

from thesis_repository.core.database import Base
from thesis_repository.core.types import GUID, generate_uuid


class AuditLog(Base):
    """Audit trail for downloads, status changes and account administration"""
    __tablename__ = "audit_logs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    actor_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Action details
    action = Column(String(100), nullable=False)  # e.g. 'document_downloaded', 'status_changed'
    resource_type = Column(String(50), nullable=False)  # 'document', 'user'
    resource_id = Column(GUID, nullable=True, index=True)

    details = Column(JSON, nullable=True)

    # Request metadata
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    actor = relationship("User", foreign_keys=[actor_id])

    def __repr__(self):
        return f"<AuditLog {self.action} by {self.actor_id}>"
