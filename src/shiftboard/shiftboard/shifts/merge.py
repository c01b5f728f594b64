from __future__ import annotations

from typing import Iterable, Sequence

from .model import ShiftEntry


def merge_entries(entries: Iterable[ShiftEntry]) -> list[ShiftEntry]:
    """Drop exact duplicate entries, keeping first-occurrence order.

    Overlapping ranges are left alone: resolving them is the caller's call
    (e.g. an explicit overwrite confirmation), never a silent merge.
    """

    seen: set[tuple[str, str, str, str]] = set()
    out: list[ShiftEntry] = []
    for entry in entries:
        if entry.key in seen:
            continue
        seen.add(entry.key)
        out.append(entry)
    return out


def entries_equal(a: Sequence[ShiftEntry], b: Sequence[ShiftEntry]) -> bool:
    if len(a) != len(b):
        return False
    return all(left.key == right.key for left, right in zip(a, b))
