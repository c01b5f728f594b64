import threading

import pytest

from shiftboard.core.enums import DayPhase
from shiftboard.core.exceptions import ErrorCode, SubmissionLockedError, TransportError, ValidationError
from shiftboard.documents.memory_store import InMemoryDocumentStore
from shiftboard.shifts.day_sync import DayRequestSync
from shiftboard.shifts.model import ShiftEntry
from shiftboard.shifts.repository import ShiftRequestRepository
from shiftboard.shifts.window import ShiftWindowGate

DAY = "2024-06-10"
DAY_PATH = "shiftRequests/u1/months/202406/days/2024-06-10"
MONTH_PATH = "shiftRequests/u1/months/202406"


class CountingStore(InMemoryDocumentStore):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.commits = 0
        self.fail_writes = False
        self.fail_reads = False

    def _commit(self, ops):
        if self.fail_writes:
            raise TransportError("write rejected")
        self.commits += 1
        return super()._commit(ops)

    def _read(self, path):
        if self.fail_reads:
            raise TransportError("read failed")
        return super()._read(path)


@pytest.fixture
def counting_store(clock):
    return CountingStore(clock=clock)


def _sync(store, **kwargs):
    return DayRequestSync(ShiftRequestRepository(store), user_id="u1", month_key="202406", **kwargs)


def test_save_writes_day_and_month_marker(counting_store, fixed_now):
    sync = _sync(counting_store)

    sync.save_day_diff(DAY, [ShiftEntry("s1", "10:00", "18:00")])

    docs = counting_store.dump()
    assert docs[DAY_PATH]["entries"] == [{"storeId": "s1", "start": "10:00", "end": "18:00"}]
    assert docs[DAY_PATH]["updatedAt"] == fixed_now
    assert docs[MONTH_PATH] == {"userId": "u1", "month": "202406", "updatedAt": fixed_now}
    assert counting_store.commits == 1
    state = sync.day(DAY)
    assert state.phase == DayPhase.LOADED
    assert not sync.is_saving


def test_unchanged_entries_write_nothing(counting_store):
    sync = _sync(counting_store)
    entries = [ShiftEntry("s1", "10:00", "18:00")]
    sync.save_day_diff(DAY, entries)

    sync.save_day_diff(DAY, entries)
    sync.save_day_diff(DAY, entries + entries)

    assert counting_store.commits == 1


def test_empty_entries_on_unknown_day_is_a_noop(counting_store):
    _sync(counting_store).remove_day(DAY)

    assert counting_store.commits == 0


def test_clearing_deletes_the_day_document(counting_store):
    sync = _sync(counting_store)
    sync.save_day_diff(DAY, [ShiftEntry("s1", "10:00", "18:00")])

    sync.remove_day(DAY)

    assert DAY_PATH not in counting_store.dump()
    assert MONTH_PATH in counting_store.dump()
    assert sync.day(DAY).entries == []
    assert sync.load_day(DAY, force=True) is None


def test_failed_write_rolls_back(counting_store):
    sync = _sync(counting_store)
    first = [ShiftEntry("s1", "10:00", "18:00")]
    sync.save_day_diff(DAY, first)
    counting_store.fail_writes = True

    with pytest.raises(TransportError):
        sync.save_day_diff(DAY, [ShiftEntry("s1", "12:00", "20:00")])

    state = sync.day(DAY)
    assert state.entries == first
    assert not state.pending
    assert state.error == "write rejected"
    assert state.phase == DayPhase.ERROR
    assert sync.last_error == "write rejected"
    assert not sync.is_saving


def test_load_missing_day_is_loaded_empty(store):
    sync = _sync(store)

    assert sync.load_day(DAY) is None
    state = sync.day(DAY)
    assert state.phase == DayPhase.LOADED
    assert state.entries == []


def test_load_is_cached_unless_forced(store):
    sync = _sync(store)
    sync.load_day(DAY)
    store.set(DAY_PATH, {"userId": "u1", "date": DAY, "entries": [{"storeId": "s1", "start": "09:00", "end": "10:00"}]})

    assert sync.load_day(DAY) is None
    request = sync.load_day(DAY, force=True)
    assert [e.start for e in request.entries] == ["09:00"]


def test_load_failure_records_error_and_reraises(counting_store):
    sync = _sync(counting_store)
    counting_store.fail_reads = True

    with pytest.raises(TransportError):
        sync.load_day(DAY)

    state = sync.day(DAY)
    assert state.phase == DayPhase.ERROR
    assert not state.loading
    assert sync.last_error == "read failed"


def test_dates_outside_month_are_rejected(store):
    sync = _sync(store)

    with pytest.raises(ValidationError):
        sync.save_day_diff("2024-07-01", [ShiftEntry("s1", "10:00", "11:00")])
    with pytest.raises(ValidationError):
        sync.load_day("not-a-date")


def test_subscription_reflects_remote_writes(store):
    sync = _sync(store).subscribe()

    store.set(DAY_PATH, {"userId": "u1", "date": DAY, "entries": [{"storeId": "s2", "start": "08:00", "end": "12:00"}]})
    assert [e.store_id for e in sync.day(DAY).entries] == ["s2"]

    store.delete(DAY_PATH)
    state = sync.day(DAY)
    assert state.entries == []
    assert state.phase == DayPhase.LOADED

    sync.close()
    store.set(DAY_PATH, {"userId": "u1", "date": DAY, "entries": [{"storeId": "s3", "start": "08:00", "end": "12:00"}]})
    assert sync.day(DAY).entries == []


def test_malformed_remote_entries_are_skipped(store):
    sync = _sync(store).subscribe()

    store.set(
        DAY_PATH,
        {
            "userId": "u1",
            "date": DAY,
            "entries": [
                {"storeId": "s1", "start": "18:00", "end": "10:00"},
                "garbage",
                {"storeId": "s1", "start": "10:00", "end": "11:00"},
            ],
        },
    )

    assert [(e.start, e.end) for e in sync.day(DAY).entries] == [("10:00", "11:00")]


class InterleavingRepository(ShiftRequestRepository):
    """Lets a stale remote write land while the local write is in flight."""

    def __init__(self, store, before_save):
        super().__init__(store)
        self._before_save = before_save

    def save_day(self, **kwargs):
        self._before_save()
        super().save_day(**kwargs)


def test_pending_day_is_not_overwritten_by_snapshot(store):
    mine = [ShiftEntry("s1", "10:00", "18:00")]
    observed = []

    def stale_remote_write():
        store.set(DAY_PATH, {"userId": "u1", "date": DAY, "entries": [{"storeId": "s9", "start": "01:00", "end": "02:00"}]})
        observed.append(sync.day(DAY))

    sync = DayRequestSync(
        InterleavingRepository(store, stale_remote_write), user_id="u1", month_key="202406"
    ).subscribe()
    sync.save_day_diff(DAY, mine)

    assert observed[0].pending
    assert observed[0].entries == mine
    state = sync.day(DAY)
    assert state.entries == mine
    assert not state.pending
    assert state.updated_at is not None


def test_pending_day_absent_from_snapshot_is_kept(store):
    other_day = "shiftRequests/u1/months/202406/days/2024-06-11"
    observed = []

    def unrelated_write():
        store.set(other_day, {"userId": "u1", "date": "2024-06-11", "entries": []})
        observed.append(sync.day(DAY))

    sync = DayRequestSync(InterleavingRepository(store, unrelated_write), user_id="u1", month_key="202406").subscribe()
    sync.save_day_diff(DAY, [ShiftEntry("s1", "10:00", "18:00")])

    assert observed[0].pending
    assert len(observed[0].entries) == 1


def test_locked_window_refuses_before_any_change(counting_store):
    counting_store.set("submitWindows/202406", {"locked": True, "adminMessage": "Closed"})
    commits = counting_store.commits
    gate = ShiftWindowGate(counting_store, "202406").subscribe()
    sync = _sync(counting_store, window_gate=gate)

    with pytest.raises(SubmissionLockedError) as exc:
        sync.save_day_diff(DAY, [ShiftEntry("s1", "10:00", "18:00")])

    assert exc.value.code == ErrorCode.WINDOW_LOCKED
    assert str(exc.value) == "Closed"
    assert counting_store.commits == commits
    assert sync.day(DAY).phase == DayPhase.UNLOADED


def test_dates_outside_configured_range_are_refused(store):
    store.set("submitWindows/202406", {"startDate": "2024-06-15", "endDate": "2024-06-30", "locked": False})
    gate = ShiftWindowGate(store, "202406").subscribe()
    sync = _sync(store, window_gate=gate)

    with pytest.raises(ValidationError) as exc:
        sync.save_day_diff(DAY, [ShiftEntry("s1", "10:00", "18:00")])
    assert exc.value.code == ErrorCode.DATE_OUTSIDE_WINDOW

    sync.save_day_diff("2024-06-20", [ShiftEntry("s1", "10:00", "18:00")])
    assert len(sync.day("2024-06-20").entries) == 1


def test_unconfigured_window_allows_writes(store):
    gate = ShiftWindowGate(store, "202406").subscribe()
    sync = _sync(store, window_gate=gate)

    sync.save_day_diff(DAY, [ShiftEntry("s1", "10:00", "18:00")])

    assert len(sync.day(DAY).entries) == 1


def test_gate_for_other_month_is_rejected(store):
    with pytest.raises(ValidationError):
        _sync(store, window_gate=ShiftWindowGate(store, "202407"))


def test_same_date_writes_are_serialized(store):
    in_save = threading.Event()
    release = threading.Event()
    active = []
    overlap = []

    def slow_save():
        active.append(1)
        if len(active) > 1:
            overlap.append(True)
        in_save.set()
        release.wait(timeout=2)
        active.pop()

    sync = DayRequestSync(InterleavingRepository(store, slow_save), user_id="u1", month_key="202406")
    first = threading.Thread(target=sync.save_day_diff, args=(DAY, [ShiftEntry("s1", "10:00", "11:00")]))
    second = threading.Thread(target=sync.save_day_diff, args=(DAY, [ShiftEntry("s1", "12:00", "13:00")]))

    first.start()
    assert in_save.wait(timeout=2)
    assert sync.is_saving
    second.start()
    release.set()
    first.join(timeout=2)
    second.join(timeout=2)

    assert overlap == []
    assert not sync.is_saving
    assert len(sync.day(DAY).entries) == 1
