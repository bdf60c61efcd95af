"""Extract and validate structured data from free-form model output.

Model text is untrusted input. Every failure mode here (missing delimiter,
missing code block, bad JSON, wrong shape) degrades to ``None`` and is logged;
nothing in this module raises to its caller.

Pipeline:
1. text between ``<tag>`` and ``</tag>``
2. the first fenced JSON block inside it
3. parse + validate against a pydantic ``TypeAdapter``
"""

from __future__ import annotations

import logging
import re
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_JSON_BLOCK_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)


def extract_tagged(text: Any, tag: str) -> str | None:
    """Return the content of the first ``<tag>...</tag>`` pair, or None."""
    if not isinstance(text, str):
        return None
    match = re.search(rf"<{re.escape(tag)}>(.*?)</{re.escape(tag)}>", text, re.DOTALL)
    if not match:
        logger.warning("Could not find <%s> tags in model output", tag)
        return None
    return match.group(1)


def extract_json_block(text: str) -> str | None:
    match = _JSON_BLOCK_RE.search(text)
    if not match:
        logger.warning("Could not find a fenced JSON block in model output")
        return None
    return match.group(1).strip()


def format_errors(error: ValidationError) -> list[str]:
    """One line per violation: ``objects.0.object: String should have at least 1 character``."""
    return [
        f"{'.'.join(str(part) for part in e['loc']) or '<root>'}: {e['msg']}"
        for e in error.errors(include_url=False)
    ]


def extract_structured(text: Any, tag: str, adapter: TypeAdapter[T]) -> T | None:
    """Run the full extract → parse → validate chain. Returns the validated value, or None."""
    content = extract_tagged(text, tag)
    if content is None:
        return None

    block = extract_json_block(content)
    if block is None:
        return None

    try:
        return adapter.validate_json(block)
    except ValidationError as e:
        logger.warning("Validation errors in model output:\n%s", "\n".join(format_errors(e)))
        return None
