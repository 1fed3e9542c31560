import pytest
from fastapi.testclient import TestClient

from core.config import Settings
from main import app
from middleware import redact_emails
from services.blob_store import LocalBlobStore, UploadPolicy
from services.container import build_container, get_container
from services.document_store import InMemoryDocumentStore
from services.enrollments import EnrollmentReader
from services.payment_client import CheckoutClient, CheckoutResult


class FakeCheckout(CheckoutClient):
    def __init__(self):
        super().__init__("http://payments.invalid")

    async def create_checkout_session(self, product_type, amount, currency, customer, success_url, cancel_url):
        if amount <= 0:
            return CheckoutResult(error="Invalid amount. Amount must be greater than 0")
        return CheckoutResult(url="https://checkout.example.com/s/1")


class UnlockedEnrollments(EnrollmentReader):
    def __init__(self, emails):
        super().__init__(InMemoryDocumentStore())
        self.emails = emails

    async def has_starter_pack_access(self, email):
        return (email or "").lower() in self.emails


@pytest.fixture
def client(tmp_path):
    store = InMemoryDocumentStore()
    container = build_container(
        Settings(),
        store=store,
        blob_store=LocalBlobStore(str(tmp_path), base_url="/blobs"),
        checkout=FakeCheckout(),
    )
    app.dependency_overrides[get_container] = lambda: container
    client = TestClient(app)
    client.post("/api/v1/admin/course-settings/seed")
    yield client
    # Clean up override
    app.dependency_overrides.clear()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_dashboard_courses_envelope(client):
    resp = client.get("/api/v1/courses", headers={"X-Request-ID": "req-123"})
    assert resp.status_code == 200
    assert resp.headers["X-Request-ID"] == "req-123"
    body = resp.json()
    # Envelope fields
    assert body["request_id"] == "req-123"
    assert body["status"] == "ok"

    courses = body["data"]
    assert courses[0]["id"] == "starter-pack"
    assert courses[0]["requires_start_form"] is True
    assert courses[0]["is_locked"] is True
    by_id = {c["id"]: c for c in courses}
    assert by_id["masterclass"]["price"] == "£297"
    assert by_id["masterclass"]["is_locked"] is True


def test_curriculum_endpoint_falls_back_to_static(client):
    resp = client.get("/api/v1/courses/beginner-course/curriculum")
    assert resp.status_code == 200
    modules = resp.json()["data"]
    assert modules[-1]["is_bonus"] is True
    assert modules[0]["number"] == 1


def test_progress_toggle_and_summary(client):
    payload = {"user_id": "u1", "course_id": "masterclass", "module_number": 1, "lesson_index": 0, "completed": True}
    assert client.put("/api/v1/progress", json=payload).status_code == 200
    assert client.put("/api/v1/progress", json=payload).status_code == 200

    resp = client.get("/api/v1/courses/masterclass/progress", params={"user_id": "u1"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert len(data["entries"]) == 1
    summary = data["summary"]
    assert summary["completed"] == 1
    assert summary["total"] == 24
    assert summary["modules"][0]["percent"] == 33
    assert summary["next_lesson"]["lesson_index"] == 1


def test_invalid_progress_body_returns_error(client):
    resp = client.put("/api/v1/progress", json={"user_id": "u1", "course_id": "c1", "module_number": -1,
                                                 "lesson_index": 0, "completed": True})
    assert resp.status_code == 422
    assert "error" in resp.json()


def test_notes_round_trip(client):
    assert client.get("/api/v1/notes", params={
        "user_id": "u1", "course_id": "masterclass", "module_number": 2, "lesson_index": 1,
    }).json()["data"] is None

    saved = client.put("/api/v1/notes", json={
        "user_id": "u1", "course_id": "masterclass", "module_number": 2, "lesson_index": 1, "content": "Check yields",
    })
    assert saved.status_code == 200

    resp = client.get("/api/v1/notes", params={
        "user_id": "u1", "course_id": "masterclass", "module_number": 2, "lesson_index": 1,
    })
    assert resp.json()["data"]["content"] == "Check yields"


def test_admin_course_setting_lifecycle(client):
    created = client.post("/api/v1/admin/course-settings", json={"course_id": "webinar", "title": "Live Webinar"})
    assert created.status_code == 201
    duplicate = client.post("/api/v1/admin/course-settings", json={"course_id": "webinar"})
    assert duplicate.status_code == 400

    updated = client.patch("/api/v1/admin/course-settings/webinar", json={"visible": False})
    assert updated.json()["data"]["visible"] is False
    ids = [c["id"] for c in client.get("/api/v1/courses").json()["data"]]
    assert "webinar" not in ids

    assert client.delete("/api/v1/admin/course-settings/webinar").status_code == 200
    missing = client.patch("/api/v1/admin/course-settings/webinar", json={"title": "x"})
    assert missing.status_code == 404
    assert "error" in missing.json()


def test_seed_is_idempotent(client):
    resp = client.post("/api/v1/admin/course-settings/seed")
    assert resp.json()["data"] == []
    assert len(client.get("/api/v1/admin/course-settings").json()["data"]) == 3


def test_admin_content_drives_curriculum(client):
    created = client.post("/api/v1/admin/content", json={
        "course_id": "masterclass",
        "module_number": 1,
        "module_title": "Uploaded module",
        "episode_index": 0,
        "episode_title": "Welcome",
        "files": [{"url": "/blobs/w.mp4", "type": "video", "name": "w.mp4"}],
    })
    assert created.status_code == 201
    entry_id = created.json()["data"]["id"]

    modules = client.get("/api/v1/courses/masterclass/curriculum").json()["data"]
    assert [m["title"] for m in modules] == ["Uploaded module"]
    assert modules[0]["episodes"][0]["entry_id"] == entry_id

    lesson = client.get("/api/v1/courses/masterclass/lessons/1/0").json()["data"]
    assert lesson["files"][0]["type"] == "video"

    patched = client.patch(f"/api/v1/admin/content/{entry_id}", json={"episode_title": "Hello"})
    assert patched.json()["data"]["episode_title"] == "Hello"
    assert client.patch("/api/v1/admin/content/missing", json={"order": 1}).status_code == 404

    assert client.delete(f"/api/v1/admin/content/{entry_id}").status_code == 200
    assert client.get("/api/v1/admin/content", params={"course_id": "masterclass"}).json()["data"] == []


def test_upload_course_file(client, tmp_path):
    resp = client.post(
        "/api/v1/admin/content/upload",
        data={"course_id": "masterclass", "module_number": "1", "episode_index": "0"},
        files={"file": ("intro.mp4", b"\x00\x01\x02", "video/mp4")},
    )
    assert resp.status_code == 201
    content_file = resp.json()["data"]
    assert content_file["type"] == "video"
    assert content_file["size"] == 3
    assert content_file["url"].startswith("/blobs/course_content/masterclass/1_0_")
    assert any(tmp_path.rglob("*intro.mp4"))


def test_checkout(client):
    ok = client.post("/api/v1/checkout", json={
        "amount": 97, "success_url": "https://site/ok", "cancel_url": "https://site/cancel",
    })
    assert ok.status_code == 200
    assert ok.json()["data"]["url"] == "https://checkout.example.com/s/1"

    bad = client.post("/api/v1/checkout", json={"amount": 0})
    assert bad.status_code == 400
    assert bad.json() == {"error": "Invalid amount. Amount must be greater than 0"}


def test_emails_are_redacted_from_logged_paths():
    assert redact_emails("user_id=u1&email=learner%40example.com") == "user_id=u1&email=[REDACTED]"
    assert redact_emails("/courses?email=Learner@Example.co.uk") == "/courses?email=[REDACTED]"


def test_oversized_upload_rejected_without_writing(client, tmp_path):
    container = app.dependency_overrides[get_container]()
    container.course_upload_policy = UploadPolicy("course_content", 2)
    resp = client.post(
        "/api/v1/admin/content/upload",
        data={"course_id": "masterclass", "module_number": "1", "episode_index": "0"},
        files={"file": ("intro.mp4", b"\x00\x01\x02", "video/mp4")},
    )
    assert resp.status_code == 400
    assert "too large" in resp.json()["error"]
    assert not any(tmp_path.rglob("*intro.mp4"))


def test_starter_resources_locked_until_form_submitted(client):
    created = client.post("/api/v1/admin/starter-resources", json={
        "title": "Welcome video", "file_url": "/blobs/starter_pack/1_w.mp4", "file_type": "video", "order": 1,
    })
    assert created.status_code == 201

    locked = client.get("/api/v1/starter-resources", params={"email": "new@example.com"})
    assert locked.status_code == 403
    assert "error" in locked.json()

    app.dependency_overrides[get_container]().enrollments = UnlockedEnrollments({"new@example.com"})

    unlocked = client.get("/api/v1/starter-resources", params={"email": "New@Example.com"})
    assert unlocked.status_code == 200
    assert [r["title"] for r in unlocked.json()["data"]] == ["Welcome video"]


def test_admin_starter_resource_lifecycle(client, tmp_path):
    uploaded = client.post(
        "/api/v1/admin/starter-resources/upload",
        files={"file": ("deal checklist.pdf", b"%PDF-1.7", "application/pdf")},
    )
    assert uploaded.status_code == 201
    content_file = uploaded.json()["data"]
    assert content_file["type"] == "pdf"
    assert content_file["url"].startswith("/blobs/starter_pack/")
    assert any(tmp_path.rglob("*deal_checklist.pdf"))

    created = client.post("/api/v1/admin/starter-resources", json={
        "title": "Deal checklist",
        "file_url": content_file["url"],
        "file_name": content_file["name"],
        "file_type": content_file["type"],
        "file_size": content_file["size"],
    })
    resource_id = created.json()["data"]["id"]

    patched = client.patch(f"/api/v1/admin/starter-resources/{resource_id}", json={"order": 5})
    assert patched.json()["data"]["order"] == 5
    assert client.patch("/api/v1/admin/starter-resources/missing", json={"order": 1}).status_code == 404

    assert client.delete(f"/api/v1/admin/starter-resources/{resource_id}").status_code == 200
    assert client.get("/api/v1/admin/starter-resources").json()["data"] == []
