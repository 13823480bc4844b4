# Pydantic schemas
from app.schemas.base import CamelModel, MessageResponse

__all__ = [
    "CamelModel",
    "MessageResponse",
]
