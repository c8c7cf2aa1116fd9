# API endpoints
from . import auth, documents, health, reviews, starred, statistics, users, workflow

__all__ = ["auth", "documents", "health", "reviews", "starred", "statistics", "users", "workflow"]
