"""API module."""

from .routes import router
from .schemas import (
    TextAnalysisResponse,
    StructuredAnalysisResponse,
    CleanImageResponse,
    ErrorResponse,
)

__all__ = [
    "router",
    "TextAnalysisResponse",
    "StructuredAnalysisResponse",
    "CleanImageResponse",
    "ErrorResponse",
]
