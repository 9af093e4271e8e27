"""Segment recovery from raw model output.

The model is asked for a JSON object with a ``segments`` array, but its output
is sometimes wrapped in Markdown fences, cut off by the length limit, or
quoted inconsistently. Recovery is attempted in three tiers, first success
wins:

1. direct parse of the whole text
2. truncation repair: cut after the last ``}`` and close the array/object
3. pattern scraping of ``{"startTime", "endTime", "text"}`` fragments

Only when all three fail is the response considered unrecoverable.
"""

import enum
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union

from .exceptions import UnrecoverableResponseError

logger = logging.getLogger(__name__)

UNRECOVERABLE_MESSAGE = "Response structure invalid and could not be repaired."

_OPEN_FENCE_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_CLOSE_FENCE_RE = re.compile(r"\s*```$")


class RecoveryTier(enum.Enum):
    DIRECT = "direct"
    TRUNCATION_REPAIR = "truncation_repair"
    PATTERN_SCRAPE = "pattern_scrape"


@dataclass(frozen=True)
class Recovered:
    """Segments recovered by one of the tiers."""

    segments: List[Any]
    tier: RecoveryTier


@dataclass(frozen=True)
class Unrecoverable:
    reason: str = UNRECOVERABLE_MESSAGE
    attempted: List[RecoveryTier] = field(default_factory=list)


RecoveryResult = Union[Recovered, Unrecoverable]


def strip_code_fences(text: str) -> str:
    """Remove a leading ```/```json marker and a trailing ``` marker."""
    t = (text or "").strip()
    if not t.startswith("```"):
        return t
    t = _OPEN_FENCE_RE.sub("", t, count=1)
    return _CLOSE_FENCE_RE.sub("", t, count=1)


def parse_segments_document(text: str) -> Optional[List[Any]]:
    """Parse ``{"segments": [...]}``; None on any parse error or shape mismatch."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    segments = data.get("segments")
    if not isinstance(segments, list):
        return None
    return segments


def repair_truncated(text: str) -> Optional[str]:
    """Close a document cut off after its last complete segment object."""
    last_object_end = text.rfind("}")
    if last_object_end == -1:
        return None
    return text[: last_object_end + 1] + "]}"


def _unescape_fragment(raw: str, quote: str) -> str:
    """Unescape a scraped string body the way a JSON string literal would be."""
    body = raw
    if quote == "'":
        # \' is not a JSON escape and bare double quotes would end the literal
        body = body.replace("\\'", "'")
        body = re.sub(r'(?<!\\)"', '\\"', body)
    try:
        # raw newlines and tabs inside the text are allowed
        value = json.loads(f'"{body}"', strict=False)
        if isinstance(value, str):
            return value
    except (json.JSONDecodeError, ValueError):
        pass
    return raw.replace('\\"', '"').replace("\\'", "'").replace("\\\\", "\\")


class SegmentScanner:
    """Tokenizer for segment-shaped fragments in otherwise broken JSON.

    Recognizes, in this key order and with arbitrary whitespace::

        { "startTime" : "<value>" , "endTime" : "<value>" , "text" : <string>

    where ``<string>`` is double-quoted (standard escapes) or single-quoted.
    Anything after the text value is ignored. Matches never overlap: scanning
    resumes after the end of the previous match.
    """

    _WS = re.compile(r"\s*")
    _TIME_VALUE = re.compile(r'"([^"]+)"')
    _DOUBLE_QUOTED = re.compile(r'"((?:[^"\\]|\\.)*)"', re.DOTALL)
    _SINGLE_QUOTED = re.compile(r"'((?:[^'\\]|\\.)*)'", re.DOTALL)

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def __iter__(self) -> Iterator[Dict[str, str]]:
        while True:
            start = self.text.find("{", self.pos)
            if start == -1:
                return
            parsed = self._parse_fragment(start)
            if parsed is None:
                self.pos = start + 1
                continue
            segment, end = parsed
            self.pos = end
            yield segment

    def _skip_ws(self, pos: int) -> int:
        return self._WS.match(self.text, pos).end()

    def _literal(self, pos: int, token: str) -> Optional[int]:
        pos = self._skip_ws(pos)
        if self.text.startswith(token, pos):
            return pos + len(token)
        return None

    def _key(self, pos: int, name: str) -> Optional[int]:
        pos = self._literal(pos, f'"{name}"')
        if pos is None:
            return None
        return self._literal(pos, ":")

    def _time_value(self, pos: int):
        m = self._TIME_VALUE.match(self.text, self._skip_ws(pos))
        if not m:
            return None
        return m.group(1), m.end()

    def _text_value(self, pos: int):
        pos = self._skip_ws(pos)
        for quote, pattern in (('"', self._DOUBLE_QUOTED), ("'", self._SINGLE_QUOTED)):
            m = pattern.match(self.text, pos)
            if m:
                return _unescape_fragment(m.group(1), quote), m.end()
        return None

    def _parse_fragment(self, start: int):
        pos = start + 1
        pos = self._key(pos, "startTime")
        if pos is None:
            return None
        start_value = self._time_value(pos)
        if start_value is None:
            return None
        start_time, pos = start_value
        pos = self._literal(pos, ",")
        if pos is None:
            return None
        pos = self._key(pos, "endTime")
        if pos is None:
            return None
        end_value = self._time_value(pos)
        if end_value is None:
            return None
        end_time, pos = end_value
        pos = self._literal(pos, ",")
        if pos is None:
            return None
        pos = self._key(pos, "text")
        if pos is None:
            return None
        text_value = self._text_value(pos)
        if text_value is None:
            return None
        text, pos = text_value
        return {"startTime": start_time, "endTime": end_time, "text": text}, pos


def scrape_segments(text: str) -> List[Dict[str, str]]:
    return list(SegmentScanner(text))


def try_recover(text: str) -> RecoveryResult:
    """Run the recovery tiers in order and report which one succeeded."""
    trimmed = (text or "").strip()
    attempted: List[RecoveryTier] = []

    attempted.append(RecoveryTier.DIRECT)
    segments = parse_segments_document(trimmed)
    if segments is not None:
        logger.debug("[REC] direct parse ok: %d segments", len(segments))
        return Recovered(segments, RecoveryTier.DIRECT)

    attempted.append(RecoveryTier.TRUNCATION_REPAIR)
    repaired = repair_truncated(trimmed)
    if repaired is not None:
        segments = parse_segments_document(repaired)
        if segments is not None:
            logger.warning("[REC] repaired truncated response: %d segments", len(segments))
            return Recovered(segments, RecoveryTier.TRUNCATION_REPAIR)

    attempted.append(RecoveryTier.PATTERN_SCRAPE)
    scraped = scrape_segments(trimmed)
    if scraped:
        logger.warning("[REC] scraped %d segments from malformed response", len(scraped))
        return Recovered(scraped, RecoveryTier.PATTERN_SCRAPE)

    return Unrecoverable(attempted=attempted)


def recover_segments(text: str) -> Recovered:
    """Like try_recover, but raise UnrecoverableResponseError on failure."""
    result = try_recover(text)
    if isinstance(result, Unrecoverable):
        logger.error("[REC] %s (tried: %s)", result.reason,
                     ", ".join(t.value for t in result.attempted))
        raise UnrecoverableResponseError(result.reason)
    return result
