import pytest

from shiftboard.core.exceptions import TransportError
from shiftboard.documents.memory_store import InMemoryDocumentStore
from shiftboard.shifts.window import ShiftWindow, ShiftWindowGate

WINDOW_PATH = "submitWindows/202406"


class FlakyStore(InMemoryDocumentStore):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.offline = False

    def _read(self, path):
        if self.offline:
            raise TransportError("offline")
        return super()._read(path)


def test_missing_document_is_unconfigured_not_an_error(store):
    gate = ShiftWindowGate(store, "202406").subscribe()

    assert gate.window == ShiftWindow.unconfigured()
    assert not gate.window.configured
    assert gate.error is None
    assert not gate.locked


def test_live_updates_reach_window_and_listeners(store):
    seen = []
    gate = ShiftWindowGate(store, "202406")
    gate.add_listener(seen.append)
    gate.subscribe()

    store.set(WINDOW_PATH, {"startDate": "2024-06-01", "endDate": "2024-06-15", "locked": False})
    assert gate.window.contains("2024-06-10")
    assert not gate.window.contains("2024-06-20")

    store.set(WINDOW_PATH, {"locked": True, "adminMessage": "Closed for review"}, merge=True)
    assert gate.locked
    assert gate.window.admin_message == "Closed for review"
    assert len(seen) == 3


def test_close_stops_updates(store):
    gate = ShiftWindowGate(store, "202406").subscribe()
    gate.close()

    store.set(WINDOW_PATH, {"locked": True})

    assert not gate.locked
    assert not gate.subscribed


def test_non_boolean_lock_flag_is_unlocked():
    window = ShiftWindow.from_document({"locked": "yes"})

    assert window.configured
    assert not window.locked


def test_dates_cover_inclusive_range():
    window = ShiftWindow.from_document({"startDate": "2024-06-28", "endDate": "2024-07-02"})

    assert window.dates() == ["2024-06-28", "2024-06-29", "2024-06-30", "2024-07-01", "2024-07-02"]


def test_inverted_or_partial_range_has_no_dates():
    inverted = ShiftWindow.from_document({"startDate": "2024-06-20", "endDate": "2024-06-10"})
    partial = ShiftWindow.from_document({"startDate": "2024-06-20"})

    assert not inverted.has_range
    assert inverted.dates() == []
    assert partial.dates() == []
    assert ShiftWindow.unconfigured().dates() == []


def test_subscription_error_resets_to_unconfigured(clock):
    store = FlakyStore(clock=clock)
    store.set(WINDOW_PATH, {"locked": True})
    store.offline = True

    gate = ShiftWindowGate(store, "202406").subscribe()

    assert gate.window == ShiftWindow.unconfigured()
    assert gate.error == "offline"


def test_refresh_reads_once_and_reraises_failures(clock):
    store = FlakyStore(clock=clock)
    store.set(WINDOW_PATH, {"startDate": "2024-06-01", "endDate": "2024-06-30", "locked": True})
    gate = ShiftWindowGate(store, "202406")

    assert gate.refresh().locked

    store.offline = True
    with pytest.raises(TransportError):
        gate.refresh()
    assert gate.error == "offline"
