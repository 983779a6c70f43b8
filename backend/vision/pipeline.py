"""
Upload-to-result pipeline.

Each call is one strictly sequential run:
normalize -> (mask) -> build request -> call upstream -> interpret.
"""

import asyncio
import uuid
from dataclasses import dataclass
from typing import Optional, Union

from errors import UploadValidationError
from settings import Settings
from utils.image_processing import (
    UploadedImage,
    normalize_image,
    create_edit_mask,
)
from .openai_client import OpenAIClient
from .request_builder import build_analysis_request, build_edit_request
from .response_parser import StructuredAnalysis, parse_plastic_analysis


@dataclass
class AnalysisOutcome:
    """Analysis text, or its parsed form when structured output was requested."""
    analysis: Union[str, StructuredAnalysis]


@dataclass
class EditOutcome:
    """Edited image URL plus a reference id for this request."""
    url: str
    request_id: str


class PlastixPipeline:
    """Runs uploads through the shared upstream client."""

    def __init__(self, client: OpenAIClient, settings: Settings):
        self.client = client
        self.settings = settings

    @property
    def max_upload_bytes(self) -> int:
        return self.settings.max_upload_bytes

    def check_upload_size(self, size: Optional[int]) -> None:
        """Reject an upload whose size is known to exceed the limit."""
        limit = self.settings.max_upload_bytes
        if size is not None and size > limit:
            raise UploadValidationError(f"Image size must be less than {limit / 1024 / 1024:g}MB")

    def _check_upload(self, upload: Optional[UploadedImage]) -> UploadedImage:
        if upload is None or upload.size == 0:
            raise UploadValidationError("Image is required")
        self.check_upload_size(upload.size)
        return upload

    async def _normalize(self, upload: UploadedImage, with_alpha: bool):
        # Pillow work is CPU-bound; keep it off the event loop
        return await asyncio.to_thread(
            normalize_image,
            upload.data,
            upload.content_type,
            with_alpha,
            self.settings.max_dimension,
            self.settings.fallback_dimension,
            self.settings.max_encoded_bytes,
            self.settings.max_image_pixels,
        )

    async def analyze(
        self,
        upload: Optional[UploadedImage],
        prompt: Optional[str] = None,
        structured: bool = False,
    ) -> AnalysisOutcome:
        """
        Identify plastics in an uploaded image.

        Args:
            upload: The uploaded image
            prompt: Optional caller prompt
            structured: Parse the answer into a StructuredAnalysis

        Returns:
            AnalysisOutcome
        """
        upload = self._check_upload(upload)
        image = await self._normalize(upload, with_alpha=False)

        request = build_analysis_request(
            image,
            prompt,
            structured=structured,
            model=self.settings.analysis_model,
            max_output_tokens=self.settings.max_output_tokens,
        )
        result = await self.client.analyze(request)

        if structured:
            return AnalysisOutcome(analysis=parse_plastic_analysis(result.text))
        return AnalysisOutcome(analysis=result.text)

    async def generate_clean_image(
        self,
        upload: Optional[UploadedImage],
        prompt: Optional[str] = None,
    ) -> EditOutcome:
        """
        Ask the edit model for a version of the image without plastic.

        Args:
            upload: The uploaded image
            prompt: Optional caller prompt

        Returns:
            EditOutcome with the generated image URL
        """
        upload = self._check_upload(upload)
        request_id = uuid.uuid4().hex

        image = await self._normalize(upload, with_alpha=True)
        mask = create_edit_mask(image.width, image.height)

        request = build_edit_request(
            image,
            mask,
            prompt,
            model=self.settings.edit_model,
            size=self.settings.edit_size,
        )
        print(f"[INFO] Edit request {request_id} with prompt: {request.prompt}")
        result = await self.client.edit(request)

        return EditOutcome(url=result.url, request_id=request_id)
