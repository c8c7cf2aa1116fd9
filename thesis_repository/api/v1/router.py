from fastapi import APIRouter
from thesis_repository.api.v1.endpoints import (
    auth,
    documents,
    health,
    reviews,
    starred,
    statistics,
    users,
    workflow,
)

api_router = APIRouter()

api_router.include_router(health.router)


@api_router.get("/health", tags=["Health"])
async def health_check():
    """Simple health check endpoint for load balancer"""
    return {"status": "healthy", "service": "thesis-repository"}


api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(documents.router, prefix="/documents", tags=["Documents"])
api_router.include_router(workflow.router, prefix="/workflow", tags=["Workflow"])
api_router.include_router(reviews.router, tags=["Reviews"])
api_router.include_router(statistics.router, prefix="/statistics", tags=["Statistics"])
api_router.include_router(starred.router, prefix="/starred", tags=["Starred"])
