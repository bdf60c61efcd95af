"""Inline object markers in narrative captions: ``<mark id="N">phrase</mark>``."""

from __future__ import annotations

import re
from collections.abc import Collection

_MARK_RE = re.compile(r"""<mark\s+id\s*=\s*["']?(\d+)["']?\s*>(.*?)</mark>""", re.DOTALL | re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")

MAX_ID_DIGITS = 9


def _marker_id(match: re.Match[str]) -> int | None:
    digits = match.group(1)
    if len(digits) > MAX_ID_DIGITS:
        return None
    return int(digits)


def find_marker_ids(text: str) -> list[int]:
    """Marker ids in order of appearance (repeats kept). Oversized ids are skipped."""
    ids = (_marker_id(m) for m in _MARK_RE.finditer(text or ""))
    return [i for i in ids if i is not None]


def sanitize_markers(text: str, valid_ids: Collection[int]) -> str:
    """Unwrap markers whose id is not a known object id, keeping the phrase."""

    def _replace(match: re.Match[str]) -> str:
        marker_id = _marker_id(match)
        if marker_id is not None and marker_id in valid_ids:
            return f'<mark id="{marker_id}">{match.group(2)}</mark>'
        return match.group(2)

    return _MARK_RE.sub(_replace, text)


def strip_markup(text: str) -> str:
    """Plain text for speech synthesis."""
    return _TAG_RE.sub("", text or "").strip()


def split_segments(text: str) -> list[dict[str, object]]:
    """Split a marked caption into ordered text runs, each bound to an object id or None."""
    text = text or ""
    segments: list[dict[str, object]] = []
    pos = 0
    for match in _MARK_RE.finditer(text):
        segments.append({"text": text[pos : match.start()], "object_id": None})
        segments.append({"text": match.group(2), "object_id": _marker_id(match)})
        pos = match.end()
    segments.append({"text": text[pos:], "object_id": None})
    return [s for s in segments if s["text"]]
