import pytest

from shiftboard.container import build_container
from shiftboard.documents.model import SERVER_TIMESTAMP
from shiftboard.main import create_app


@pytest.fixture
def container(store):
    return build_container(store=store)


@pytest.fixture
def client(monkeypatch, container):
    monkeypatch.setenv("APP_ENV", "testing")
    app = create_app(container)
    yield app.test_client()
    container.shift_request_service.close()


def _login(client, user_id, name=None):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        if name:
            sess["name"] = name


def test_requires_login(client):
    assert client.get("/api/shift-requests/202406/days/2024-06-10").status_code == 401
    assert client.get("/api/approvals").status_code == 401


def test_parse_endpoint(client):
    _login(client, "u1")

    body = client.post("/api/shift-requests/parse", json={"text": "9-12、13-15"}).get_json()

    assert body["spans"] == [{"start": "09:00", "end": "12:00"}, {"start": "13:00", "end": "15:00"}]
    assert body["errors"] == []


def test_locked_window_blocks_writes(client, store):
    _login(client, "u1")
    url = "/api/shift-requests/202406/days/2024-06-10"

    saved = client.put(url, json={"text": "10-18", "storeId": "s1"})
    assert saved.status_code == 200
    assert saved.get_json()["entries"] == [{"storeId": "s1", "start": "10:00", "end": "18:00"}]

    store.set("submitWindows/202406", {"locked": True, "adminMessage": "June is closed"})
    refused = client.put(url, json={"text": "12-20", "storeId": "s1"})

    assert refused.status_code == 423
    assert refused.get_json() == {"error": "June is closed", "code": "WINDOW_LOCKED"}
    assert store.get("shiftRequests/u1/months/202406/days/2024-06-10").data["entries"][0]["start"] == "10:00"
    assert client.get(url).get_json()["entries"][0]["end"] == "18:00"
    assert client.get("/api/submit-windows/202406").get_json()["locked"] is True


def test_day_includes_slot_preview(client):
    _login(client, "u1")
    url = "/api/shift-requests/202406/days/2024-06-10"
    client.put(url, json={"text": "10-11:30", "storeId": "s1"})

    slots = client.get(url).get_json()["slots"]

    assert len(slots) == 48
    assert [s["index"] for s in slots if s["storeId"] == "s1"] == [20, 21, 22]
    assert slots[20] == {"index": 20, "start": "10:00", "end": "10:30", "storeId": "s1"}
    assert slots[23]["storeId"] is None


def test_impossible_entry_times_are_rejected(client, store):
    _login(client, "u1")
    url = "/api/shift-requests/202406/days/2024-06-10"

    for start, end in (("10:00", "25:00"), ("9:00", "10:00"), ("10:00", "10:75")):
        response = client.put(url, json={"entries": [{"storeId": "s1", "start": start, "end": end}]})
        assert response.status_code == 400

    assert not store.get("shiftRequests/u1/months/202406/days/2024-06-10").exists


def test_day_must_belong_to_month(client):
    _login(client, "u1")

    assert client.get("/api/shift-requests/202406/days/2024-07-01").status_code == 400


def test_structured_entries_and_clear(client):
    _login(client, "u1")
    url = "/api/shift-requests/202406/days/2024-06-11"
    entries = [{"storeId": "s1", "start": "09:00", "end": "12:00"}, {"storeId": "s1", "start": "09:00", "end": "12:00"}]

    assert len(client.put(url, json={"entries": entries}).get_json()["entries"]) == 1
    assert client.delete(url).get_json()["entries"] == []


def test_window_dates(client, store):
    _login(client, "u1")
    store.set("submitWindows/202406", {"startDate": "2024-06-28", "endDate": "2024-06-30"})

    body = client.get("/api/submit-windows/202406").get_json()

    assert body["dates"] == ["2024-06-28", "2024-06-29", "2024-06-30"]
    assert client.put(
        "/api/shift-requests/202406/days/2024-06-10", json={"text": "10-12", "storeId": "s1"}
    ).get_json()["code"] == "DATE_OUTSIDE_WINDOW"


def _seed_roles(store):
    for user_id, role in (("mgr", "manager"), ("senior1", "senior"), ("u1", "staff")):
        store.set(
            f"userStoreRoles/{user_id}_s1",
            {"userId": user_id, "storeId": "s1", "role": role, "updatedAt": SERVER_TIMESTAMP},
        )


def test_approval_endpoints(client, store, clock):
    _seed_roles(store)
    _login(client, "senior1", "Sato")
    created = client.post(
        "/api/approvals/batches",
        json={
            "storeId": "s1",
            "type": "commute_update",
            "targetRoleDocIds": ["u1_s1"],
            "payload": {"commute": {"mode": "perDay", "amount": 300}},
        },
    )
    assert created.status_code == 201
    [approval_id] = created.get_json()["approvalIds"]
    assert client.get("/api/approvals?storeId=s1").status_code == 403

    clock.advance(minutes=1)
    _login(client, "mgr", "Mika")
    listed = client.get("/api/approvals?storeId=s1&status=pending").get_json()
    assert [a["id"] for a in listed] == [approval_id]

    approved = client.post(f"/api/approvals/{approval_id}/approve", json={"comment": "ok"}).get_json()
    assert (approved["status"], approved["decidedByName"]) == ("approved", "Mika")

    again = client.post(f"/api/approvals/{approval_id}/reject", json={})
    assert again.status_code == 400
    assert again.get_json()["code"] == "APPROVAL_ALREADY_DECIDED"
    assert client.post("/api/approvals/missing/approve", json={}).status_code == 404


def test_bulk_endpoint_validates_ids(client, store):
    _seed_roles(store)
    _login(client, "mgr")

    assert client.post("/api/approvals/bulk/approve", json={"approvalIds": "a1"}).status_code == 400
    assert client.post("/api/approvals/bulk/reject", json={"approvalIds": []}).get_json() == {"applied": []}
    assert client.get("/api/approvals?type=overtime").status_code == 400
