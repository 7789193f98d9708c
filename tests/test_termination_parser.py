from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from errors import ExtractionParseError
from models import ExtractedData
from termination_parser import find_balanced_object, load_extracted_data, parse_reply


def test_marker_payload_and_closing() -> None:
    parsed = parse_reply('MARK {"confirmationId":"X1","deliveryEstimate":"2 days"} Thanks, bye.', "MARK")
    assert parsed.is_final
    assert parsed.extracted_data == ExtractedData(confirmation_id = "X1", delivery_estimate = "2 days")
    assert parsed.text == "Thanks, bye."


def test_malformed_json_is_final_without_data() -> None:
    parsed = parse_reply('MARK {"confirmationId": X1} Thanks, bye.', "MARK")
    assert parsed.is_final
    assert parsed.extracted_data is None
    assert parsed.text == "Thanks, bye."


def test_unbalanced_payload_speaks_whole_remainder() -> None:
    parsed = parse_reply('MARK {"confirmationId": "X1" Thanks', "MARK")
    assert parsed.is_final
    assert parsed.extracted_data is None
    assert parsed.text == '{"confirmationId": "X1" Thanks'


def test_marker_must_lead_the_reply() -> None:
    parsed = parse_reply('Sure. MARK {"confirmationId": "X1"}', "MARK")
    assert not parsed.is_final
    assert parsed.extracted_data is None
    assert parsed.text == 'Sure. MARK {"confirmationId": "X1"}'


def test_marker_without_payload() -> None:
    parsed = parse_reply("MARK Goodbye!", "MARK")
    assert parsed.is_final
    assert parsed.extracted_data is None
    assert parsed.text == "Goodbye!"


def test_braces_inside_strings_do_not_close_the_object() -> None:
    text = '{"confirmationId": "A}{1", "deliveryEstimate": "say \\"soon\\""} bye'
    start, end = find_balanced_object(text)
    assert text[end:] == " bye"
    data = load_extracted_data(text[start:end])
    assert data.confirmation_id == "A}{1"
    assert data.delivery_estimate == 'say "soon"'


def test_numeric_values_are_kept_as_text() -> None:
    data = load_extracted_data('{"confirmationId": 12345, "deliveryEstimate": "3 días"}')
    assert data.confirmation_id == "12345"


def test_non_object_payload_is_rejected() -> None:
    with pytest.raises(ExtractionParseError):
        load_extracted_data('["X1"]')


def test_nested_object_payload() -> None:
    parsed = parse_reply('MARK{"confirmationId": "N1", "meta": {"x": 1}}Adiós', "MARK")
    assert parsed.extracted_data.confirmation_id == "N1"
    assert parsed.text == "Adiós"


def test_parsed_reply_is_read_only() -> None:
    parsed = parse_reply("MARK {} Bye.", "MARK")
    assert parsed.model_dump() == {"is_final": True, "text": "Bye.", "extracted_data": {
        "confirmation_id": None, "delivery_estimate": None,
    }}
    with pytest.raises(PydanticValidationError):
        parsed.text = "Hello again"
