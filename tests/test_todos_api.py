from datetime import datetime
from typing import Any, List, Mapping

from bson import ObjectId
from fastapi.testclient import TestClient

from todo_service.errors import StoreError
from todo_service.main import create_app
from todo_service.models import TodoRecord
from todo_service.repositories import InMemoryTodoStore, TodoStore
from todo_service.settings import Settings

SETTINGS = Settings(mongo_uri=None, store_backend="memory")

store = InMemoryTodoStore()
client = TestClient(create_app(SETTINGS, store))


class RecordingStore(InMemoryTodoStore):
    """In-memory store that remembers which operations were called."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: List[str] = []

    def find_all(self):
        self.calls.append("find_all")
        return super().find_all()

    def insert(self, record):
        self.calls.append("insert")
        return super().insert(record)

    def delete_by_id(self, todo_id):
        self.calls.append("delete_by_id")
        return super().delete_by_id(todo_id)

    def update_by_id(self, todo_id, fields):
        self.calls.append("update_by_id")
        return super().update_by_id(todo_id, fields)


class FailingStore(TodoStore):
    def find_all(self) -> List[TodoRecord]:
        raise StoreError("Failed to fetch todo", error="connection refused")

    def insert(self, record: TodoRecord) -> ObjectId:
        raise StoreError("Failed to save todo", error="connection refused")

    def delete_by_id(self, todo_id: ObjectId) -> int:
        raise StoreError("Failed to delete todo", error="operation timed out")

    def update_by_id(self, todo_id: ObjectId, fields: Mapping[str, Any]) -> int:
        raise StoreError("Failed to update todo", error="operation timed out")


def create_todo(title="Test Task") -> str:
    res = client.post("/todo/", json={"title": title})
    assert res.status_code == 200
    return res.json()["Todo ID"]


def find_todo(todo_id: str):
    res = client.get("/todo/")
    assert res.status_code == 200
    matches = [t for t in res.json()["data"] if t["id"] == todo_id]
    return matches[0] if matches else None


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def assert_todo_shape(todo: dict):
    for key in ["id", "title", "completed", "create_at"]:
        assert key in todo
    assert ObjectId.is_valid(todo["id"])
    assert isinstance(todo["title"], str)
    assert isinstance(todo["completed"], bool)
    parse_timestamp(todo["create_at"])


class TestHome:
    def test_home_page(self):
        res = client.get("/")
        assert res.status_code == 200
        assert res.headers["content-type"].startswith("text/html")
        assert "<title>Todo</title>" in res.text


class TestTodosCRUD:
    def test_create_todo(self):
        res = client.post("/todo/", json={"title": "Buy milk"})
        assert res.status_code == 200
        body = res.json()
        assert body["message"] == "Todo successfully saved"
        assert ObjectId.is_valid(body["Todo ID"])

        todo = find_todo(body["Todo ID"])
        assert_todo_shape(todo)
        assert todo["title"] == "Buy milk"
        assert todo["completed"] is False

    def test_create_ignores_completed_flag(self):
        res = client.post("/todo/", json={"title": "Already done?", "completed": True})
        assert res.status_code == 200
        assert find_todo(res.json()["Todo ID"])["completed"] is False

    def test_create_keeps_title_as_sent(self):
        todo_id = create_todo("  Water plants ")
        assert find_todo(todo_id)["title"] == "  Water plants "

        res = client.put(f"/todo/{todo_id}", json={"title": " Water plants twice  "})
        assert res.status_code == 200
        assert find_todo(todo_id)["title"] == " Water plants twice  "

    def test_list_returns_data_envelope(self):
        todo_id = create_todo("Listed")
        res = client.get("/todo/")
        assert res.status_code == 200
        data = res.json()["data"]
        assert isinstance(data, list)
        for todo in data:
            assert_todo_shape(todo)
        assert any(t["id"] == todo_id for t in data)

    def test_update_todo(self):
        todo_id = create_todo("Initial")
        before = find_todo(todo_id)

        res = client.put(f"/todo/{todo_id}", json={"title": "Replaced", "completed": True})
        assert res.status_code == 200
        assert res.json()["message"] == "Successfully updated TODO"

        after = find_todo(todo_id)
        assert after["id"] == before["id"]
        assert after["create_at"] == before["create_at"]
        assert after["title"] == "Replaced"
        assert after["completed"] is True

    def test_update_without_completed_resets_flag(self):
        todo_id = create_todo("Reset flag")
        client.put(f"/todo/{todo_id}", json={"title": "Reset flag", "completed": True})
        assert find_todo(todo_id)["completed"] is True

        res = client.put(f"/todo/{todo_id}", json={"title": "Renamed"})
        assert res.status_code == 200
        after = find_todo(todo_id)
        assert after["title"] == "Renamed"
        assert after["completed"] is False

    def test_update_not_found(self):
        res = client.put(f"/todo/{ObjectId()}", json={"title": "Nope"})
        assert res.status_code == 404
        assert res.json()["message"] == "Todo not found"

    def test_delete_todo(self):
        todo_id = create_todo("ToDelete")

        res = client.delete(f"/todo/{todo_id}")
        assert res.status_code == 200
        assert res.json()["message"] == "Successfully deleted TODO"
        assert find_todo(todo_id) is None

        res_again = client.delete(f"/todo/{todo_id}")
        assert res_again.status_code == 404
        assert res_again.json()["message"] == "Todo not found"

    def test_delete_trims_identifier(self):
        todo_id = create_todo("Padded id")
        res = client.delete(f"/todo/%20{todo_id}%20")
        assert res.status_code == 200
        assert find_todo(todo_id) is None

    def test_full_lifecycle(self):
        res = client.post("/todo/", json={"title": "Buy milk"})
        assert res.status_code == 200
        todo_id = res.json()["Todo ID"]

        todo = find_todo(todo_id)
        assert todo["title"] == "Buy milk"
        assert todo["completed"] is False

        res = client.put(f"/todo/{todo_id}", json={"title": "Buy milk", "completed": True})
        assert res.status_code == 200
        assert find_todo(todo_id)["completed"] is True

        assert client.delete(f"/todo/{todo_id}").status_code == 200
        assert client.delete(f"/todo/{todo_id}").status_code == 404


class TestValidationErrors:
    def test_create_empty_title(self):
        count = len(store.find_all())
        for payload in ({"title": ""}, {}):
            res = client.post("/todo/", json=payload)
            assert res.status_code == 400
            body = res.json()
            assert body["message"] == "Title field is required"
            assert body["error"] == "ValidationError"
        assert len(store.find_all()) == count

    def test_create_bad_json(self):
        count = len(store.find_all())
        res = client.post(
            "/todo/",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )
        assert res.status_code == 400
        body = res.json()
        assert body["message"] == "Invalid request payload"
        assert isinstance(body["detail"], list)
        assert len(store.find_all()) == count

    def test_create_wrong_type(self):
        res = client.post("/todo/", json={"title": ["not", "a", "string"]})
        assert res.status_code == 400
        assert res.json()["message"] == "Invalid request payload"

    def test_create_mistyped_completed(self):
        count = len(store.find_all())
        res = client.post("/todo/", json={"title": "x", "completed": "yes"})
        assert res.status_code == 400
        assert res.json()["message"] == "Invalid request payload"
        assert len(store.find_all()) == count

    def test_update_mistyped_completed(self):
        todo_id = create_todo("Typed flag")
        res = client.put(f"/todo/{todo_id}", json={"title": "Typed flag", "completed": "yes"})
        assert res.status_code == 400
        assert res.json()["message"] == "Invalid request payload"
        assert find_todo(todo_id)["completed"] is False

    def test_update_empty_title(self):
        todo_id = create_todo("Has title")
        res = client.put(f"/todo/{todo_id}", json={"title": "", "completed": True})
        assert res.status_code == 400
        assert res.json()["message"] == "Title field is required"
        assert find_todo(todo_id)["title"] == "Has title"
        assert find_todo(todo_id)["completed"] is False

    def test_invalid_id_does_not_reach_store(self):
        recording = RecordingStore()
        local = TestClient(create_app(SETTINGS, recording))

        res_put = local.put("/todo/not-an-id", json={"title": "x"})
        assert res_put.status_code == 400
        assert res_put.json()["message"] == "Invalid ID"

        res_del = local.delete("/todo/not-an-id")
        assert res_del.status_code == 400
        assert res_del.json()["message"] == "Invalid ID"

        assert recording.calls == []


class TestStoreFailures:
    client = TestClient(create_app(SETTINGS, FailingStore()))

    def test_list_store_failure(self):
        res = self.client.get("/todo/")
        assert res.status_code == 500
        body = res.json()
        assert body["message"] == "Failed to fetch todo"
        assert body["error"] == "connection refused"

    def test_create_store_failure(self):
        res = self.client.post("/todo/", json={"title": "Buy milk"})
        assert res.status_code == 500
        assert res.json()["message"] == "Failed to save todo"

    def test_update_store_failure(self):
        res = self.client.put(f"/todo/{ObjectId()}", json={"title": "Buy milk"})
        assert res.status_code == 500
        assert res.json()["error"] == "operation timed out"

    def test_delete_store_failure(self):
        res = self.client.delete(f"/todo/{ObjectId()}")
        assert res.status_code == 500
        assert res.json()["message"] == "Failed to delete todo"


class TestLifespan:
    def test_store_closed_on_shutdown(self):
        class ClosingStore(InMemoryTodoStore):
            closed = False

            def close(self) -> None:
                self.closed = True

        closing = ClosingStore()
        with TestClient(create_app(SETTINGS, closing)) as local:
            assert local.get("/todo/").status_code == 200
            assert closing.closed is False
        assert closing.closed is True
