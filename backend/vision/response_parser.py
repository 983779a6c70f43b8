"""
Parser for upstream vision/edit API responses.

Upstream payloads are validated right after receipt; the free-form
analysis text is mined for an embedded JSON object describing plastics.
"""

import re
import json
from typing import Any, Dict, List, Optional, Union
from dataclasses import dataclass

from pydantic import BaseModel, Field, ValidationError, field_validator

from errors import ResponseParseError, UpstreamResponseError


# Greedy: first "{" to last "}" across lines
JSON_BLOCK_PATTERN = re.compile(r"\{[\s\S]*\}")

UNKNOWN = "Unknown"
UNDETERMINED = "Could not determine"


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class AnalysisResult:
    """Text produced by the vision analysis call."""
    text: str


@dataclass
class EditResult:
    """Location of the edited image."""
    url: str


# =============================================================================
# UPSTREAM PAYLOADS
# =============================================================================

class ChatMessage(BaseModel):
    content: Optional[str] = None
    refusal: Optional[str] = None


class ChatChoice(BaseModel):
    message: ChatMessage


class ChatCompletionPayload(BaseModel):
    """Chat completions response body (only the fields we read)."""
    choices: List[ChatChoice] = Field(min_length=1)


class ImageItem(BaseModel):
    url: Optional[str] = None
    b64_json: Optional[str] = None


class ImageEditPayload(BaseModel):
    """Image edits response body (only the fields we read)."""
    data: List[ImageItem] = Field(min_length=1)


# =============================================================================
# STRUCTURED ANALYSIS
# =============================================================================

def _as_text(value: Any) -> Any:
    if value is None:
        return UNKNOWN
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return value


class PlasticRecord(BaseModel):
    """One plastic item identified in the image."""
    plastic_type: str = Field(UNKNOWN, alias="plasticType")
    recycling_code: str = Field(UNKNOWN, alias="recyclingCode")
    common_uses: List[str] = Field(default_factory=lambda: [UNKNOWN], alias="commonUses")
    recyclability: str = UNKNOWN
    environmental_impact: str = Field(UNKNOWN, alias="environmentalImpact")
    additional_info: str = Field(UNKNOWN, alias="additionalInfo")

    class Config:
        populate_by_name = True

    @field_validator(
        "plastic_type",
        "recycling_code",
        "recyclability",
        "environmental_impact",
        "additional_info",
        mode="before",
    )
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        # Models often emit recyclingCode as a bare number
        return _as_text(value)

    @field_validator("common_uses", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:
        if value is None:
            return [UNKNOWN]
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [_as_text(item) for item in value]
        return value


class StructuredAnalysis(BaseModel):
    """Parsed, shape-checked form of the analysis text."""
    plastics: List[PlasticRecord]


def fallback_analysis(raw_text: str) -> StructuredAnalysis:
    """Single placeholder record carrying the raw text."""
    return StructuredAnalysis(
        plastics=[
            PlasticRecord(
                plastic_type=UNKNOWN,
                recycling_code=UNKNOWN,
                common_uses=[UNKNOWN],
                recyclability=UNDETERMINED,
                environmental_impact=UNDETERMINED,
                additional_info=raw_text,
            )
        ]
    )


def _extract_structured(text: str) -> StructuredAnalysis:
    """Locate, decode and validate the plastics JSON in text."""
    match = JSON_BLOCK_PATTERN.search(text)
    if not match:
        raise ResponseParseError("No JSON structure found in response")

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Could not parse JSON structure: {e}")

    return _validate_structure(data)


def _validate_structure(data: Any) -> StructuredAnalysis:
    if not isinstance(data, dict) or not isinstance(data.get("plastics"), list):
        raise ResponseParseError("Invalid data structure: missing plastics array")

    try:
        return StructuredAnalysis.model_validate({"plastics": data["plastics"]})
    except ValidationError as e:
        raise ResponseParseError(f"Invalid plastic record: {e.error_count()} error(s)")


def parse_plastic_analysis(analysis: Union[str, Dict[str, Any]]) -> StructuredAnalysis:
    """
    Parse the plastics analysis out of the model's answer.

    The answer is usually prose wrapped around a JSON object such as:
        Here is the result:
        {"plastics": [{"plasticType": "PET", "recyclingCode": "1", ...}]}

    Never fails: if no valid structure is found the single fallback record
    is returned with the raw text in additionalInfo.

    Args:
        analysis: Raw analysis text (or an already-decoded mapping)

    Returns:
        StructuredAnalysis with the plastics in their original order
    """
    try:
        if isinstance(analysis, str):
            return _extract_structured(analysis)
        return _validate_structure(analysis)
    except ResponseParseError as e:
        print(f"[WARN] Structured analysis unavailable, using fallback: {e}")
        raw_text = analysis if isinstance(analysis, str) else json.dumps(analysis)
        return fallback_analysis(raw_text)


# =============================================================================
# PAYLOAD EXTRACTION
# =============================================================================

def extract_analysis_text(payload: Any) -> AnalysisResult:
    """Pull the generated message text out of a chat completions payload."""
    try:
        parsed = ChatCompletionPayload.model_validate(payload)
    except ValidationError:
        raise UpstreamResponseError("Unexpected response from the analysis service")

    message = parsed.choices[0].message
    text = message.content if message.content is not None else message.refusal
    if text is None:
        raise UpstreamResponseError("The analysis service returned no text")

    return AnalysisResult(text=text)


def extract_edit_url(payload: Any) -> EditResult:
    """
    Pull the first generated image out of an image edits payload.

    URL reachability is not checked. A base64-only result is returned as a
    data URI.
    """
    try:
        parsed = ImageEditPayload.model_validate(payload)
    except ValidationError:
        raise UpstreamResponseError("Unexpected response from the image editing service")

    item = parsed.data[0]
    if item.url:
        return EditResult(url=item.url)
    if item.b64_json:
        return EditResult(url=f"data:image/png;base64,{item.b64_json}")

    raise UpstreamResponseError("The image editing service returned no image")
