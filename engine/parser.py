"""Response parsing -- pulls the report object out of a noisy model reply.

Models wrap JSON in prose or markdown fences, and sometimes mention braces
in the prose itself, balanced or not. Every `{` is tried as the start of a
JSON object, left to right, and the first one that decodes to an object
wins. Nothing is guessed: if no such object exists, or it fails schema
validation, a NarrativeParseError with an excerpt of the reply is raised.
"""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from core.errors import NarrativeParseError
from core.models.report import NarrativeReport

logger = logging.getLogger(__name__)

_decoder = json.JSONDecoder()


def extract_json_object(text: str) -> dict:
    """Return the first JSON object embedded in `text`.

    Raises NarrativeParseError when the text has no `{`, or when no `{`
    starts a decodable object. The reason then names the first decode
    failure.
    """
    text = text or ""
    first_error: str | None = None

    start = text.find("{")
    while start != -1:
        try:
            value, _ = _decoder.raw_decode(text, start)
        except json.JSONDecodeError as e:
            if first_error is None:
                first_error = f"invalid JSON at offset {start}: {e.msg}"
        else:
            if isinstance(value, dict):
                return value
        start = text.find("{", start + 1)

    if first_error is not None:
        raise NarrativeParseError(first_error, text)
    raise NarrativeParseError("no JSON object found in response", text)


def parse_narrative(text: str) -> NarrativeReport:
    """Extract and validate the report object from a model reply."""
    data = extract_json_object(text)
    try:
        return NarrativeReport.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        logger.warning("Narrative failed schema validation: %s", problems)
        raise NarrativeParseError(f"schema validation failed: {problems}", text) from e
