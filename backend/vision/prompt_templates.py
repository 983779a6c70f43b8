"""
Prompt templates for plastic analysis and clean-environment edits.

The structured analysis prompt asks the model for a JSON object that
`response_parser.parse_plastic_analysis` knows how to extract.
"""

from typing import Dict, Optional


DEFAULT_ANALYSIS_PROMPT = (
    "Analyze this image and identify what type of plastic this is. "
    "Provide details about the plastic type, its recycling code, common uses, and recyclability."
)


PLASTICS_JSON_SCHEMA = """```json
{
  "plastics": [
    {
      "plasticType": "Full name and chemical classification",
      "recyclingCode": "Numerical code (1-7)",
      "commonUses": ["List of primary applications"],
      "recyclability": "Detailed recyclability status",
      "environmentalImpact": "Environmental considerations",
      "additionalInfo": "Safety and handling guidelines"
    }
  ]
}
```"""


STRUCTURED_ANALYSIS_PROMPT = f"""Perform a comprehensive analysis of all the plastic items in the image. Identify the plastic type, recycling code, and provide detailed information about specific categories.

Ensure your analysis includes:

1. Material composition and properties.
2. Common industrial and consumer applications.
3. Recyclability status and best practices.
4. Environmental impact and degradation timeline.
5. Safety considerations and usage guidelines.

# Output Format

Format the response as a detailed JSON object according to the following JSON schema:

{PLASTICS_JSON_SCHEMA}"""


DEFAULT_EDIT_PROMPT = "Detect and remove all the plastic from this image."

CLEAN_ENVIRONMENT_PROMPT = (
    "Show this environment without any plastic pollution, clean and pristine nature"
)


PROMPT_PRESETS: Dict[str, str] = {
    "analysis": DEFAULT_ANALYSIS_PROMPT,
    "structured_analysis": STRUCTURED_ANALYSIS_PROMPT,
    "remove_plastic": DEFAULT_EDIT_PROMPT,
    "clean_environment": CLEAN_ENVIRONMENT_PROMPT,
}


def resolve_prompt(prompt: Optional[str], default: str) -> str:
    """Use the caller's prompt unless it is missing or blank."""
    if prompt is None or not prompt.strip():
        return default
    return prompt


def get_analysis_prompt(prompt: Optional[str] = None, structured: bool = False) -> str:
    default = STRUCTURED_ANALYSIS_PROMPT if structured else DEFAULT_ANALYSIS_PROMPT
    return resolve_prompt(prompt, default)


def get_edit_prompt(prompt: Optional[str] = None) -> str:
    return resolve_prompt(prompt, DEFAULT_EDIT_PROMPT)
