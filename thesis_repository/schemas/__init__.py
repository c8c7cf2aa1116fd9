# Pydantic schemas
from thesis_repository.schemas.auth import (
    UserRegister,
    UserLogin,
    Token,
    UserResponse,
)
from thesis_repository.schemas.document import (
    DocumentCreate,
    DocumentResponse,
    DocumentListResponse,
)
from thesis_repository.schemas.workflow import (
    TransitionRequest,
    TransitionResponse,
    HistoryEntryResponse,
)
