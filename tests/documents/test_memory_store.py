import pytest

from shiftboard.core.exceptions import ErrorCode, NotFoundError, TransactionContention, ValidationError
from shiftboard.documents.memory_store import InMemoryDocumentStore
from shiftboard.documents.model import SERVER_TIMESTAMP, collection_path, document_path


def test_set_merge_is_deep(store):
    store.set("roles/u1_s1", {"role": "staff", "commute": {"mode": "perDay", "amount": 500}})

    store.set("roles/u1_s1", {"commute": {"amount": 800}}, merge=True)

    assert store.get("roles/u1_s1").data == {"role": "staff", "commute": {"mode": "perDay", "amount": 800}}


def test_update_replaces_top_level_fields(store):
    store.set("roles/u1_s1", {"role": "staff", "commute": {"mode": "perDay", "amount": 500}})

    store.update("roles/u1_s1", {"commute": {"amount": 800}})

    assert store.get("roles/u1_s1").data["commute"] == {"amount": 800}


def test_update_missing_document_fails(store):
    with pytest.raises(NotFoundError) as exc:
        store.update("roles/nobody", {"role": "staff"})

    assert exc.value.code == ErrorCode.DOCUMENT_NOT_FOUND


def test_server_timestamp_resolves_to_store_clock(store, fixed_now):
    store.set("a/b", {"at": SERVER_TIMESTAMP, "nested": {"at": SERVER_TIMESTAMP}})

    assert store.get("a/b").data == {"at": fixed_now, "nested": {"at": fixed_now}}


def test_batch_is_all_or_nothing(store):
    store.set("a/keep", {"v": 1})
    batch = store.batch()
    batch.set("a/new", {"v": 2})
    batch.update("a/missing", {"v": 3})

    with pytest.raises(NotFoundError):
        batch.commit()

    assert not store.get("a/new").exists
    assert store.get("a/keep").data == {"v": 1}


def test_batch_commits_once(store):
    batch = store.batch().set("a/x", {"v": 1})
    batch.commit()

    with pytest.raises(RuntimeError):
        batch.commit()


def test_transaction_failure_discards_writes(store):
    store.set("a/x", {"v": 1})

    def fn(txn):
        current = txn.get("a/x").data["v"]
        txn.set("a/x", {"v": current + 1})
        raise ValidationError("nope")

    with pytest.raises(ValidationError):
        store.run_transaction(fn)
    assert store.get("a/x").data == {"v": 1}


def test_transaction_retries_contention(clock):
    class ContendedStore(InMemoryDocumentStore):
        attempts = 0

        def _run_transaction_once(self, fn):
            ContendedStore.attempts += 1
            if ContendedStore.attempts < 3:
                raise TransactionContention("deadlock")
            return super()._run_transaction_once(fn)

    store = ContendedStore(clock=clock, transaction_attempts=3)

    assert store.run_transaction(lambda txn: "done") == "done"
    assert ContendedStore.attempts == 3


def test_transaction_gives_up_after_attempts(clock):
    class AlwaysContended(InMemoryDocumentStore):
        def _run_transaction_once(self, fn):
            raise TransactionContention("deadlock")

    with pytest.raises(TransactionContention):
        AlwaysContended(clock=clock, transaction_attempts=2).run_transaction(lambda txn: None)


def test_query_and_list_are_scoped_to_collection(store):
    store.set("approvals/a1", {"storeId": "s1", "status": "pending"})
    store.set("approvals/a2", {"storeId": "s2", "status": "pending"})
    store.set("approvals/a1/notes/n1", {"storeId": "s1"})

    assert [s.id for s in store.list("approvals")] == ["a1", "a2"]
    assert [s.id for s in store.query("approvals", storeId="s1", status="pending")] == ["a1"]


def test_watchers_get_initial_snapshot_and_changes(store):
    docs, cols = [], []
    stop_doc = store.watch_document("a/x", docs.append)
    stop_col = store.watch_collection("a", lambda snaps: cols.append([s.id for s in snaps]))

    store.set("a/x", {"v": 1})
    stop_doc()
    stop_col()
    store.set("a/y", {"v": 2})

    assert [d.exists for d in docs] == [False, True]
    assert cols == [[], ["x"]]


def test_add_generates_ids(store):
    doc_id = store.add("approvalLogs", {"action": "approved"})

    assert store.get(f"approvalLogs/{doc_id}").data == {"action": "approved"}


def test_paths_are_validated():
    assert document_path("a", "b", "c", "d") == "a/b/c/d"
    assert collection_path("a", "b", "c") == "a/b/c"
    with pytest.raises(ValidationError):
        document_path("a")
    with pytest.raises(ValidationError):
        document_path("a", "b/c")
