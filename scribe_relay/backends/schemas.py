"""JSON schemas for provider responses and a decode-and-validate helper.

WHY: Provider payloads are trusted blindly by the poll loops (status
codes, nested result strings, segment lists). A malformed body should
fail the job with one clear parse error instead of a KeyError deep in
the formatter.

HOW: Each response shape is described with a JSON Schema (draft 7) and
checked with jsonschema before any field is read.

RULES:
- Schemas list only the fields the backends read; extra fields pass
- decode_json() raises ResponseFormatError for bad JSON or schema mismatch
"""

from __future__ import annotations

import json
from typing import Any, Dict, Union

import jsonschema

from scribe_relay.errors import ResponseFormatError

_NULLABLE_STRING = {"type": ["string", "null"]}

_SEGMENT_LIST = {
    "type": ["array", "null"],
    "items": {
        "type": "object",
        "required": ["start", "end"],
        "properties": {
            "start": {"type": "number"},
            "end": {"type": "number"},
            "text": _NULLABLE_STRING,
        },
    },
}

SPEECHFLOW_CREATE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["code"],
    "properties": {
        "code": {"type": "integer"},
        "taskId": _NULLABLE_STRING,
        "msg": _NULLABLE_STRING,
    },
}

SPEECHFLOW_QUERY_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["code"],
    "properties": {
        "code": {"type": "integer"},
        "result": _NULLABLE_STRING,
        "msg": _NULLABLE_STRING,
    },
}

SPEECHFLOW_SENTENCES_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["sentences"],
    "properties": {
        "sentences": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["s"],
                "properties": {"s": {"type": "string"}},
            },
        },
    },
}

SWIFTINK_TRANSCRIPT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["id"],
    "properties": {
        "id": {"type": ["string", "integer"]},
        "name": _NULLABLE_STRING,
        "status": _NULLABLE_STRING,
        "text": _NULLABLE_STRING,
        "summary": _NULLABLE_STRING,
        "text_segments": _SEGMENT_LIST,
        "heading_segments": _SEGMENT_LIST,
        "keywords": {"type": ["array", "null"], "items": {"type": "string"}},
    },
}


def decode_json(
    raw: Union[str, bytes],
    schema: Dict[str, Any],
    what: str,
) -> Dict[str, Any]:
    """Parse a JSON document and validate it against a schema.

    Args:
        raw: Response body.
        schema: JSON Schema the document must satisfy.
        what: Short description used in the error message.

    Raises:
        ResponseFormatError: the body is not JSON or does not match.
    """
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise ResponseFormatError("Malformed {}: {}".format(what, exc)) from exc

    try:
        jsonschema.validate(payload, schema)
    except jsonschema.ValidationError as exc:
        raise ResponseFormatError(
            "Unexpected {}: {}".format(what, exc.message)
        ) from exc
    return payload
