from shiftboard.core.constants import SLOTS_PER_DAY
from shiftboard.shifts.model import ShiftEntry
from shiftboard.shifts.slot_brush import apply_brush, build_slots, entries_to_slots, slots_to_entries


def test_day_has_48_half_hour_slots():
    slots = build_slots()

    assert len(slots) == SLOTS_PER_DAY == 48
    assert (slots[0].start, slots[0].end) == ("00:00", "00:30")
    assert slots[-1].end == "24:00"


def test_partial_coverage_tags_whole_slot():
    slots = entries_to_slots([ShiftEntry("s1", "10:15", "11:00")])
    tagged = [s.index for s in slots if s.store_id == "s1"]

    assert tagged == [20, 21]


def test_later_entry_wins_on_overlap():
    slots = entries_to_slots([ShiftEntry("s1", "10:00", "12:00"), ShiftEntry("s2", "11:00", "13:00")])

    assert slots[21].store_id == "s1"
    assert slots[22].store_id == "s2"


def test_brush_range_is_inclusive_and_order_insensitive():
    slots = apply_brush(build_slots(), 21, 20, "s1")

    assert [s.index for s in slots if s.store_id] == [20, 21]

    erased = apply_brush(slots, 21, 21, None)
    assert [s.index for s in erased if s.store_id] == [20]


def test_slots_back_to_entries():
    slots = apply_brush(build_slots(), 20, 23, "s1")
    slots = apply_brush(slots, 24, 25, "s2")
    slots = apply_brush(slots, 30, 30, "s1")

    assert slots_to_entries(slots) == [
        ShiftEntry("s1", "10:00", "12:00"),
        ShiftEntry("s2", "12:00", "13:00"),
        ShiftEntry("s1", "15:00", "15:30"),
    ]


def test_run_to_end_of_day():
    slots = apply_brush(build_slots(), 46, 47, "s1")

    assert slots_to_entries(slots) == [ShiftEntry("s1", "23:00", "24:00")]
