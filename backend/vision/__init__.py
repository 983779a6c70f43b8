"""Plastic analysis and clean-image generation via the OpenAI API."""

from .prompt_templates import (
    DEFAULT_ANALYSIS_PROMPT,
    STRUCTURED_ANALYSIS_PROMPT,
    DEFAULT_EDIT_PROMPT,
    CLEAN_ENVIRONMENT_PROMPT,
    PROMPT_PRESETS,
)
from .request_builder import (
    AnalysisRequest,
    EditRequest,
    build_analysis_request,
    build_edit_request,
)
from .response_parser import (
    AnalysisResult,
    EditResult,
    PlasticRecord,
    StructuredAnalysis,
    parse_plastic_analysis,
    extract_analysis_text,
    extract_edit_url,
)
from .openai_client import OpenAIClient, with_deadline
from .pipeline import PlastixPipeline, AnalysisOutcome, EditOutcome

__all__ = [
    # Prompts
    "DEFAULT_ANALYSIS_PROMPT",
    "STRUCTURED_ANALYSIS_PROMPT",
    "DEFAULT_EDIT_PROMPT",
    "CLEAN_ENVIRONMENT_PROMPT",
    "PROMPT_PRESETS",
    # Requests
    "AnalysisRequest",
    "EditRequest",
    "build_analysis_request",
    "build_edit_request",
    # Responses
    "AnalysisResult",
    "EditResult",
    "PlasticRecord",
    "StructuredAnalysis",
    "parse_plastic_analysis",
    "extract_analysis_text",
    "extract_edit_url",
    # Client
    "OpenAIClient",
    "with_deadline",
    # Pipeline
    "PlastixPipeline",
    "AnalysisOutcome",
    "EditOutcome",
]
