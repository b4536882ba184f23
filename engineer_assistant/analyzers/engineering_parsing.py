from __future__ import annotations

import json

from pydantic import ValidationError

from engineer_assistant.analyzers.engineering_schema import EngineeringResponse
from engineer_assistant.analyzers.errors import ResponseFormatError


def parse_engineering_response(text: str) -> EngineeringResponse:
    """
    Strict parse of the model body.

    No JSON repair and no fishing for an object inside prose.
    """
    if not text or not text.strip():
        raise ResponseFormatError("Empty model output")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ResponseFormatError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ResponseFormatError(f"Model output JSON is a {type(data).__name__}, expected an object")

    try:
        return EngineeringResponse.model_validate(data)
    except ValidationError as e:
        raise ResponseFormatError(f"JSON does not match schema: {e}") from e
