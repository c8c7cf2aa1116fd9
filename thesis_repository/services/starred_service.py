from typing import List

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from thesis_repository.models.document import Document
from thesis_repository.models.starred import StarredDocument
from thesis_repository.modules.workflow.engine import Actor
from thesis_repository.services.document_service import DocumentService


class StarredService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def toggle(self, document_id: str, actor: Actor) -> bool:
        """Star or unstar a document; returns the new starred state"""
        await DocumentService(self.db).get_visible_document(document_id, actor)

        result = await self.db.execute(
            select(StarredDocument).where(
                StarredDocument.user_id == str(actor.id),
                StarredDocument.document_id == str(document_id),
            )
        )
        existing = result.scalar_one_or_none()

        if existing is not None:
            await self.db.execute(delete(StarredDocument).where(StarredDocument.id == existing.id))
            starred = False
        else:
            self.db.add(StarredDocument(user_id=str(actor.id), document_id=str(document_id)))
            starred = True

        await self.db.commit()
        return starred

    async def list_starred(self, user_id: str) -> List[Document]:
        result = await self.db.execute(
            select(Document)
            .join(StarredDocument, StarredDocument.document_id == Document.id)
            .where(StarredDocument.user_id == str(user_id))
            .order_by(StarredDocument.created_at.desc())
        )
        return list(result.scalars().all())
