"""Free-form time range input: ``"10-18, 930-1400"`` -> normalized spans.

Regional input variants (full-width colons, wave dashes, ideographic
commas) are folded into ASCII before parsing. Spans never cross midnight;
``24:00`` is accepted only as an end time.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from .model import END_OF_DAY, NormalizedSpan, SpanParseResult, to_minutes

_LINE_SPLIT = re.compile(r"\r?\n")
_SEGMENT_SPLIT = re.compile(r"[,;；]")
_IDEOGRAPHIC_COMMAS = re.compile(r"[、，]")
_COLON_VARIANTS = re.compile(r"[：﹕꞉｡]")
_DASH_VARIANTS = re.compile(r"[‐-―−∼〜～~ｰー－-]")
_WHITESPACE = re.compile(r"[\s ]+")
_DASH_RUN = re.compile(r"-+")
_NON_TIME_CHARS = re.compile(r"[^0-9:]")
_COMPACT_TIME = re.compile(r"^\d{1,4}$")


def _segments(text: str) -> list[str]:
    out: list[str] = []
    for line in _LINE_SPLIT.split(text or ""):
        line = _IDEOGRAPHIC_COMMAS.sub(",", line.strip())
        out.extend(part.strip() for part in _SEGMENT_SPLIT.split(line) if part.strip())
    return out


def normalize_segment(segment: str) -> str:
    result = _COLON_VARIANTS.sub(":", segment.strip())
    result = _DASH_VARIANTS.sub("-", result)
    result = _WHITESPACE.sub("", result)
    return _DASH_RUN.sub("-", result)


def parse_time_token(token: str, *, allow_end_of_day: bool = False) -> Optional[str]:
    """Parse a compact time code.

    1-2 digits are an hour, 3 digits are H+MM and 4 digits are HH+MM, with
    any colons ignored (``"9"``, ``"930"``, ``"09:30"`` and ``"0930"`` agree).
    """

    cleaned = _NON_TIME_CHARS.sub("", token)
    compact = cleaned.replace(":", "")
    if not _COMPACT_TIME.match(compact):
        return None

    if len(compact) <= 2:
        hours, minutes = int(compact), 0
    elif len(compact) == 3:
        hours, minutes = int(compact[:1]), int(compact[1:])
    else:
        hours, minutes = int(compact[:2]), int(compact[2:])

    if hours == 24 and minutes == 0 and allow_end_of_day:
        return END_OF_DAY
    if not 0 <= hours <= 23 or not 0 <= minutes <= 59:
        return None
    return f"{hours:02d}:{minutes:02d}"


def compare_times(a: str, b: str) -> int:
    return to_minutes(a) - to_minutes(b)


def _sort_key(span: NormalizedSpan) -> tuple[int, int]:
    return to_minutes(span.start), to_minutes(span.end)


def parse_span_input(text: str) -> SpanParseResult:
    spans: list[NormalizedSpan] = []
    errors: list[str] = []
    warnings: list[str] = []
    seen: set[tuple[str, str]] = set()

    for segment in _segments(text):
        normalized = normalize_segment(segment)
        if not normalized:
            continue

        parts = [p for p in normalized.split("-") if p]
        if len(parts) != 2:
            errors.append(f'"{segment}" is not in a recognised range format. Try 10-18 or 10:00-18:00.')
            continue

        start = parse_time_token(parts[0])
        end = parse_time_token(parts[1], allow_end_of_day=True)
        if start is None or end is None:
            errors.append(f'Could not interpret the time range in "{segment}".')
            continue

        if compare_times(start, end) >= 0:
            errors.append(f'"{segment}" must end after it starts.')
            continue

        if (start, end) in seen:
            warnings.append(f"The range {start}-{end} is duplicated and was ignored.")
            continue

        seen.add((start, end))
        spans.append(NormalizedSpan(start, end))

    spans.sort(key=_sort_key)
    return SpanParseResult(
        spans=tuple(spans),
        errors=tuple(errors),
        warnings=tuple(warnings),
        normalized_text="\n".join(str(s) for s in spans),
    )


def spans_to_multiline(spans: Iterable[NormalizedSpan]) -> str:
    return "\n".join(str(s) for s in sorted(spans, key=_sort_key))
