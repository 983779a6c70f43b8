"""
Pydantic schemas for API request/response models.
"""

from pydantic import BaseModel, Field
from typing import Dict, Union

from vision.response_parser import PlasticRecord, StructuredAnalysis


class TextAnalysisResponse(BaseModel):
    """Free-form analysis from the vision model."""
    analysis: str

    class Config:
        json_schema_extra = {
            "example": {
                "analysis": "This appears to be a PET (polyethylene terephthalate) bottle, recycling code 1..."
            }
        }


class StructuredAnalysisResponse(BaseModel):
    """Analysis parsed into plastic records."""
    analysis: StructuredAnalysis

    class Config:
        json_schema_extra = {
            "example": {
                "analysis": {
                    "plastics": [
                        {
                            "plasticType": "Polyethylene terephthalate (PET)",
                            "recyclingCode": "1",
                            "commonUses": ["bottles", "food containers"],
                            "recyclability": "Widely recycled",
                            "environmentalImpact": "Persists for centuries if not recycled",
                            "additionalInfo": "Avoid reusing single-use bottles",
                        }
                    ]
                }
            }
        }


AnalysisResponse = Union[StructuredAnalysisResponse, TextAnalysisResponse]


class CleanImageResponse(BaseModel):
    """Edited image location."""
    url: str
    request_id: str = Field(
        ...,
        alias="requestId",
        description="Reference id for this request, not a storage key",
    )

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "url": "https://example.com/generated/clean.png",
                "requestId": "3f2b9c1e8d7a4b6c9e0f1a2b3c4d5e6f",
            }
        }


class ErrorResponse(BaseModel):
    """Error body returned for every failure."""
    error: str


class PromptsResponse(BaseModel):
    """Default prompts and named presets."""
    defaults: Dict[str, str]
    presets: Dict[str, str]


__all__ = [
    "PlasticRecord",
    "StructuredAnalysis",
    "TextAnalysisResponse",
    "StructuredAnalysisResponse",
    "AnalysisResponse",
    "CleanImageResponse",
    "ErrorResponse",
    "PromptsResponse",
]
