"""
FastAPI routes for Plastix plastic analysis and clean-image generation.
"""

from typing import Optional
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from .schemas import (
    AnalysisResponse,
    CleanImageResponse,
    ErrorResponse,
    PromptsResponse,
    StructuredAnalysisResponse,
    TextAnalysisResponse,
)
from utils.image_processing import UploadedImage
from vision import (
    PlastixPipeline,
    StructuredAnalysis,
    DEFAULT_ANALYSIS_PROMPT,
    STRUCTURED_ANALYSIS_PROMPT,
    DEFAULT_EDIT_PROMPT,
    PROMPT_PRESETS,
)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


def get_pipeline(request: Request) -> PlastixPipeline:
    """Process-wide pipeline created at startup."""
    return request.app.state.pipeline


async def read_upload(
    image: Optional[UploadFile],
    pipeline: PlastixPipeline,
) -> Optional[UploadedImage]:
    """Read at most one byte past the upload limit into memory."""
    if image is None:
        return None
    pipeline.check_upload_size(image.size)
    data = await image.read(pipeline.max_upload_bytes + 1)
    pipeline.check_upload_size(len(data))
    return UploadedImage(data=data, content_type=image.content_type, filename=image.filename)


@router.post(
    "/analyze-plastic-type",
    response_model=AnalysisResponse,
    responses=ERROR_RESPONSES,
)
async def analyze_plastic_type(
    image: Optional[UploadFile] = File(None),
    prompt: Optional[str] = Form(None),
    structured: bool = Form(False),
    pipeline: PlastixPipeline = Depends(get_pipeline),
):
    """
    Identify the plastic in an uploaded image.

    With structured=true the model's answer is parsed into plastic records;
    otherwise the raw answer text is returned.
    """
    upload = await read_upload(image, pipeline)
    outcome = await pipeline.analyze(upload, prompt, structured=structured)

    if isinstance(outcome.analysis, StructuredAnalysis):
        return StructuredAnalysisResponse(analysis=outcome.analysis)
    return TextAnalysisResponse(analysis=outcome.analysis)


@router.post(
    "/generate-clean-image",
    response_model=CleanImageResponse,
    responses=ERROR_RESPONSES,
)
async def generate_clean_image(
    image: Optional[UploadFile] = File(None),
    prompt: Optional[str] = Form(None),
    pipeline: PlastixPipeline = Depends(get_pipeline),
):
    """Generate a version of the uploaded image with the plastic removed."""
    upload = await read_upload(image, pipeline)
    outcome = await pipeline.generate_clean_image(upload, prompt)

    return CleanImageResponse(url=outcome.url, request_id=outcome.request_id)


@router.get("/prompts", response_model=PromptsResponse)
async def get_prompts():
    """Default prompts per operation and the named presets."""
    return PromptsResponse(
        defaults={
            "analysis": DEFAULT_ANALYSIS_PROMPT,
            "structured_analysis": STRUCTURED_ANALYSIS_PROMPT,
            "edit": DEFAULT_EDIT_PROMPT,
        },
        presets=dict(PROMPT_PRESETS),
    )
