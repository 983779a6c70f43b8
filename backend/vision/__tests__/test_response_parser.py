"""
Tests for upstream response parsing and structured analysis extraction
"""

import pytest
import json

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from errors import UpstreamResponseError
from vision.response_parser import (
    StructuredAnalysis,
    parse_plastic_analysis,
    extract_analysis_text,
    extract_edit_url,
)


def plastic(plastic_type: str, code: str) -> dict:
    return {
        "plasticType": plastic_type,
        "recyclingCode": code,
        "commonUses": ["bottles"],
        "recyclability": "high",
        "environmentalImpact": "low degradation",
        "additionalInfo": "n/a",
    }


def assert_fallback(result: StructuredAnalysis, raw_text: str):
    assert len(result.plastics) == 1
    record = result.plastics[0]
    assert record.plastic_type == "Unknown"
    assert record.recycling_code == "Unknown"
    assert record.common_uses == ["Unknown"]
    assert record.recyclability == "Could not determine"
    assert record.environmental_impact == "Could not determine"
    assert record.additional_info == raw_text


class TestParsePlasticAnalysis:
    def test_json_embedded_in_prose(self):
        text = (
            "Here is the result:\n"
            "{\"plastics\":[{\"plasticType\":\"PET\",\"recyclingCode\":\"1\","
            "\"commonUses\":[\"bottles\"],\"recyclability\":\"high\","
            "\"environmentalImpact\":\"low degradation\",\"additionalInfo\":\"n/a\"}]}"
        )
        result = parse_plastic_analysis(text)

        assert len(result.plastics) == 1
        assert result.plastics[0].plastic_type == "PET"
        assert result.plastics[0].recycling_code == "1"
        assert result.plastics[0].common_uses == ["bottles"]

    def test_records_keep_order(self):
        records = [plastic("PET", "1"), plastic("HDPE", "2"), plastic("PVC", "3"), plastic("LDPE", "4")]
        text = "```json\n" + json.dumps({"plastics": records}, indent=2) + "\n```\nHope this helps!"
        result = parse_plastic_analysis(text)

        assert [p.plastic_type for p in result.plastics] == ["PET", "HDPE", "PVC", "LDPE"]
        assert [p.recycling_code for p in result.plastics] == ["1", "2", "3", "4"]

    def test_empty_plastics_list(self):
        result = parse_plastic_analysis('{"plastics": []}')
        assert result.plastics == []

    def test_no_braces_falls_back(self):
        text = "This looks like a PET bottle, recycling code 1."
        assert_fallback(parse_plastic_analysis(text), text)

    def test_malformed_json_falls_back(self):
        text = 'Result: {"plastics": [{"plasticType": "PET",}'
        assert_fallback(parse_plastic_analysis(text), text)

    def test_greedy_match_spanning_two_objects_falls_back(self):
        text = 'First {"a": 1} and then {"plastics": []}'
        assert_fallback(parse_plastic_analysis(text), text)

    def test_missing_plastics_key_falls_back(self):
        text = '{"items": [{"plasticType": "PET"}]}'
        assert_fallback(parse_plastic_analysis(text), text)

    def test_plastics_not_a_list_falls_back(self):
        text = '{"plastics": {"plasticType": "PET"}}'
        assert_fallback(parse_plastic_analysis(text), text)

    def test_record_not_an_object_falls_back(self):
        text = '{"plastics": ["PET"]}'
        assert_fallback(parse_plastic_analysis(text), text)

    def test_numeric_code_and_missing_fields(self):
        result = parse_plastic_analysis('{"plastics": [{"plasticType": "PP", "recyclingCode": 5}]}')
        record = result.plastics[0]
        assert record.recycling_code == "5"
        assert record.recyclability == "Unknown"
        assert record.common_uses == ["Unknown"]

    def test_single_string_common_uses(self):
        result = parse_plastic_analysis('{"plastics": [{"commonUses": "straws"}]}')
        assert result.plastics[0].common_uses == ["straws"]

    def test_mapping_input(self):
        result = parse_plastic_analysis({"plastics": [plastic("PS", "6")]})
        assert result.plastics[0].plastic_type == "PS"

    def test_serializes_with_camel_case_keys(self):
        result = parse_plastic_analysis(json.dumps({"plastics": [plastic("PET", "1")]}))
        dumped = result.model_dump(by_alias=True)
        assert dumped == {"plastics": [plastic("PET", "1")]}


class TestExtractAnalysisText:
    def test_reads_first_choice(self):
        payload = {"choices": [{"message": {"role": "assistant", "content": "PET bottle"}}]}
        assert extract_analysis_text(payload).text == "PET bottle"

    def test_refusal_is_returned_as_text(self):
        payload = {"choices": [{"message": {"content": None, "refusal": "I can't help with that."}}]}
        assert extract_analysis_text(payload).text == "I can't help with that."

    @pytest.mark.parametrize("payload", [
        {},
        {"choices": []},
        {"choices": [{"text": "legacy"}]},
        {"choices": [{"message": {"content": None}}]},
        ["not", "a", "mapping"],
    ])
    def test_unexpected_shapes(self, payload):
        with pytest.raises(UpstreamResponseError) as exc_info:
            extract_analysis_text(payload)
        assert exc_info.value.status_code == 502


class TestExtractEditUrl:
    def test_first_url(self):
        payload = {"created": 1, "data": [{"url": "https://img/1.png"}, {"url": "https://img/2.png"}]}
        assert extract_edit_url(payload).url == "https://img/1.png"

    def test_base64_result_becomes_data_uri(self):
        payload = {"data": [{"b64_json": "iVBORw0KGgo="}]}
        assert extract_edit_url(payload).url == "data:image/png;base64,iVBORw0KGgo="

    @pytest.mark.parametrize("payload", [{}, {"data": []}, {"data": [{}]}])
    def test_missing_image(self, payload):
        with pytest.raises(UpstreamResponseError):
            extract_edit_url(payload)
