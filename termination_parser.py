import json
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from errors import ExtractionParseError
from models import ExtractedData
from utils import print_debug

class ParsedReply(BaseModel):
    model_config = ConfigDict(frozen = True)

    is_final: bool
    text: str
    extracted_data: Optional[ExtractedData] = None


def find_balanced_object(text: str) -> Optional[Tuple[int, int]]:
    """
    Locate the JSON object that opens at the start of ``text``.

    Returns ``(start, end)`` so that ``text[start:end]`` spans the braces,
    or None when ``text`` does not open with ``{`` or the braces never
    balance. Braces inside JSON strings are skipped.
    """
    start = len(text) - len(text.lstrip())
    if start >= len(text) or text[start] != "{":
        return None
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return start, index + 1
    return None


def load_extracted_data(payload: str) -> ExtractedData:
    try:
        data = json.loads(payload)
    except ValueError as e:
        raise ExtractionParseError(f"Payload is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ExtractionParseError(f"Payload is not a JSON object: {payload!r}")
    try:
        return ExtractedData.model_validate(data)
    except PydanticValidationError as e:
        raise ExtractionParseError(f"Payload has unexpected fields: {e}") from e


def parse_reply(reply: str, marker: str) -> ParsedReply:
    """
    Split a dialogue-model reply into its spoken text and, when it starts
    with ``marker``, the extracted data and closing statement.

    Extraction is best effort. A malformed payload leaves extracted_data
    empty but the reply is still final.
    """
    stripped = reply.strip()
    if not marker or not stripped.startswith(marker):
        return ParsedReply(is_final = False, text = stripped)

    remainder = stripped[len(marker):]
    span = find_balanced_object(remainder)
    if span is None:
        print_debug(f"No JSON object after termination marker: {remainder!r}", log_level = "error")
        return ParsedReply(is_final = True, text = remainder.strip())

    start, end = span
    closing = remainder[end:].strip()
    try:
        extracted = load_extracted_data(remainder[start:end])
    except ExtractionParseError as e:
        print_debug(f"Extraction failed, ending call without data: {e}", log_level = "error")
        extracted = None
    return ParsedReply(is_final = True, text = closing, extracted_data = extracted)
