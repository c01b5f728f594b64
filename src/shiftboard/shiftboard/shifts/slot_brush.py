"""Fixed 30-minute slot grid used for read-only day previews.

The grid is lossy: an entry covering part of a slot tags the whole slot.
"""

from __future__ import annotations

from typing import Iterable, Optional

from ..core.constants import MINUTES_PER_DAY, SLOT_MINUTES
from .merge import merge_entries
from .model import ShiftEntry, Slot, to_hhmm, to_minutes


def build_slots(step_minutes: int = SLOT_MINUTES, start_minutes: int = 0, end_minutes: int = MINUTES_PER_DAY) -> list[Slot]:
    total = (end_minutes - start_minutes) // step_minutes
    slots = []
    for index in range(total):
        start = start_minutes + index * step_minutes
        slots.append(Slot(index=index, start=to_hhmm(start), end=to_hhmm(start + step_minutes)))
    return slots


def entries_to_slots(entries: Iterable[ShiftEntry], step_minutes: int = SLOT_MINUTES) -> list[Slot]:
    slots = build_slots(step_minutes)
    for entry in entries:
        start, end = to_minutes(entry.start), to_minutes(entry.end)
        for slot in slots:
            if to_minutes(slot.end) <= start or to_minutes(slot.start) >= end:
                continue
            slot.store_id = entry.store_id
    return slots


def apply_brush(slots: list[Slot], from_index: int, to_index: int, store_id: Optional[str]) -> list[Slot]:
    """Paint an inclusive index range; ``store_id=None`` erases it."""

    lo, hi = sorted((from_index, to_index))
    return [
        slot if not lo <= slot.index <= hi else Slot(slot.index, slot.start, slot.end, store_id)
        for slot in slots
    ]


def slots_to_entries(slots: Iterable[Slot]) -> list[ShiftEntry]:
    entries: list[ShiftEntry] = []
    run: Optional[Slot] = None

    for slot in slots:
        if run is not None and slot.store_id == run.store_id and slot.start == run.end:
            run.end = slot.end
            continue
        if run is not None:
            entries.append(ShiftEntry(run.store_id, run.start, run.end))
        run = Slot(slot.index, slot.start, slot.end, slot.store_id) if slot.store_id else None

    if run is not None:
        entries.append(ShiftEntry(run.store_id, run.start, run.end))
    return merge_entries(entries)
