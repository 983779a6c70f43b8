"""
Tests for upstream request construction
"""

import pytest
import io
from PIL import Image

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from utils.image_processing import normalize_image, create_edit_mask
from vision.prompt_templates import (
    DEFAULT_ANALYSIS_PROMPT,
    STRUCTURED_ANALYSIS_PROMPT,
    DEFAULT_EDIT_PROMPT,
)
from vision.request_builder import build_analysis_request, build_edit_request


def normalized(width: int = 10, height: int = 10, with_alpha: bool = True):
    img = Image.new('RGB', (width, height), (255, 0, 0))
    buffer = io.BytesIO()
    img.save(buffer, format='JPEG')
    return normalize_image(buffer.getvalue(), 'image/jpeg', with_alpha=with_alpha)


class TestBuildAnalysisRequest:
    def test_default_prompt(self):
        request = build_analysis_request(normalized(with_alpha=False))
        assert request.prompt == DEFAULT_ANALYSIS_PROMPT

    def test_blank_prompt_uses_default(self):
        request = build_analysis_request(normalized(with_alpha=False), "   ")
        assert request.prompt == DEFAULT_ANALYSIS_PROMPT

    def test_structured_default_prompt_asks_for_plastics_json(self):
        request = build_analysis_request(normalized(with_alpha=False), None, structured=True)
        assert request.prompt == STRUCTURED_ANALYSIS_PROMPT
        assert '"plastics"' in request.prompt

    def test_caller_prompt_wins(self):
        request = build_analysis_request(normalized(with_alpha=False), "What resin is this?", structured=True)
        assert request.prompt == "What resin is this?"

    def test_payload_shape(self):
        image = normalized(with_alpha=False)
        payload = build_analysis_request(image, max_output_tokens=500).to_payload()

        assert payload["model"] == "gpt-4o"
        assert payload["max_tokens"] == 500
        message = payload["messages"][0]
        assert message["role"] == "user"
        text_part, image_part = message["content"]
        assert text_part == {"type": "text", "text": DEFAULT_ANALYSIS_PROMPT}
        assert image_part["type"] == "image_url"
        assert image_part["image_url"]["url"] == "data:image/png;base64," + image.to_base64()


class TestBuildEditRequest:
    def test_default_prompt_removes_plastic(self):
        image = normalized()
        request = build_edit_request(image, create_edit_mask(image.width, image.height))
        assert request.prompt == DEFAULT_EDIT_PROMPT
        assert "remove all the plastic" in request.prompt

    def test_form_fields(self):
        image = normalized()
        request = build_edit_request(
            image, create_edit_mask(image.width, image.height), "clean beach"
        )
        assert request.to_form() == {
            "prompt": "clean beach",
            "model": "dall-e-2",
            "n": "1",
            "size": "1024x1024",
        }

    def test_binary_parts(self):
        image = normalized()
        mask = create_edit_mask(image.width, image.height)
        files = build_edit_request(image, mask).to_files()

        assert files["image"] == ("image.png", image.data, "image/png")
        assert files["mask"] == ("mask.png", mask.data, "image/png")

    def test_mask_must_match_image(self):
        image = normalized(20, 10)
        with pytest.raises(ValueError):
            build_edit_request(image, create_edit_mask(10, 10))
