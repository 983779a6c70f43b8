"""
Request builders for the two upstream operations.

- Analysis: chat completion with the image embedded as a base64 data URI
- Edit: multipart inpainting request with image + fully transparent mask
"""

from typing import Optional, Dict, Any, Tuple
from dataclasses import dataclass

from utils.image_processing import NormalizedImage, MaskImage
from .prompt_templates import get_analysis_prompt, get_edit_prompt


DEFAULT_ANALYSIS_MODEL = "gpt-4o"
DEFAULT_EDIT_MODEL = "dall-e-2"
DEFAULT_MAX_OUTPUT_TOKENS = 500
DEFAULT_EDIT_SIZE = "1024x1024"

ANALYSIS_PATH = "/chat/completions"
EDIT_PATH = "/images/edits"


@dataclass
class AnalysisRequest:
    """Vision analysis request (chat completion with image input)."""
    image: NormalizedImage
    prompt: str
    model: str = DEFAULT_ANALYSIS_MODEL
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS

    operation = "analysis"
    path = ANALYSIS_PATH

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for the chat completions endpoint."""
        return {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": self.prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": self.image.to_data_uri()},
                        },
                    ],
                }
            ],
            "max_tokens": self.max_output_tokens,
        }


@dataclass
class EditRequest:
    """Inpainting request over the whole image area."""
    image: NormalizedImage
    mask: MaskImage
    prompt: str
    model: str = DEFAULT_EDIT_MODEL
    n: int = 1
    size: str = DEFAULT_EDIT_SIZE

    operation = "edit"
    path = EDIT_PATH

    def to_files(self) -> Dict[str, Tuple[str, bytes, str]]:
        """Binary multipart parts."""
        return {
            "image": ("image.png", self.image.data, "image/png"),
            "mask": ("mask.png", self.mask.data, "image/png"),
        }

    def to_form(self) -> Dict[str, str]:
        """Text multipart fields."""
        return {
            "prompt": self.prompt,
            "model": self.model,
            "n": str(self.n),
            "size": self.size,
        }


def build_analysis_request(
    image: NormalizedImage,
    prompt: Optional[str] = None,
    structured: bool = False,
    model: str = DEFAULT_ANALYSIS_MODEL,
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
) -> AnalysisRequest:
    """
    Build an analysis request.

    Args:
        image: Normalized PNG to analyze
        prompt: Caller prompt; blank or missing falls back to the default
        structured: Use the JSON-schema prompt as the default
        model: Vision-capable chat model
        max_output_tokens: Output token ceiling

    Returns:
        AnalysisRequest
    """
    return AnalysisRequest(
        image=image,
        prompt=get_analysis_prompt(prompt, structured=structured),
        model=model,
        max_output_tokens=max_output_tokens,
    )


def build_edit_request(
    image: NormalizedImage,
    mask: MaskImage,
    prompt: Optional[str] = None,
    model: str = DEFAULT_EDIT_MODEL,
    size: str = DEFAULT_EDIT_SIZE,
) -> EditRequest:
    """Build a whole-image edit request. The mask must match the image size."""
    if (mask.width, mask.height) != (image.width, image.height):
        raise ValueError(
            f"Mask is {mask.width}x{mask.height} but image is {image.width}x{image.height}"
        )

    return EditRequest(
        image=image,
        mask=mask,
        prompt=get_edit_prompt(prompt),
        model=model,
        n=1,
        size=size,
    )
