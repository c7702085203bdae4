import json

import pytest
from fastapi.testclient import TestClient
from google.genai import errors

from app.main import app, get_gemini_client, get_session_manager
from app.services.gemini_client import GeminiClient
from app.services.session_manager import SessionManager


@pytest.fixture
def manager():
    return SessionManager()


@pytest.fixture
def client(manager):
    app.dependency_overrides[get_session_manager] = lambda: manager
    yield TestClient(app)
    app.dependency_overrides.clear()


def _use_gemini(fake, api_key="test-key") -> None:
    gemini = GeminiClient(api_key=api_key, model_name="gemini-test", client_factory=lambda key: fake)
    app.dependency_overrides[get_gemini_client] = lambda: gemini


def _upload(client, session_id, data, name="switchboard.jpg", content_type="image/jpeg"):
    return client.post(f"/v1/sessions/{session_id}/image", files={"file": (name, data, content_type)})


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_full_audit_scenario(client, fake_genai, jpeg_bytes, analysis_payload) -> None:
    fake = fake_genai(text=json.dumps(analysis_payload, ensure_ascii=False))
    _use_gemini(fake)
    session_id = client.post("/v1/sessions").json()["session_id"]

    loaded = _upload(client, session_id, jpeg_bytes).json()
    assert loaded["status"] == "loaded"
    preview = client.get(loaded["preview_url"])
    assert preview.status_code == 200
    assert preview.content == jpeg_bytes

    ready = client.post(f"/v1/sessions/{session_id}/analyze").json()
    assert ready["status"] == "ready"
    assert ready["view"] == "technical"
    assert ready["result"] == analysis_payload
    technical = ready["presentation"]["content"]
    assert technical["title"] == "Audyt rozdzielnicy"
    assert technical["components"] == [{"name": "S301", "type": "wylacznik", "description": "sprawny"}]
    assert len(fake.calls) == 1

    offer = client.post(f"/v1/sessions/{session_id}/view", json={"view": "offer"}).json()
    assert [p["line"] for p in offer["presentation"]["content"]["prices"]] == ["S301 — 120 PLN"]
    assert offer["presentation"]["safety_clause"] == analysis_payload["klauzula_bezpieczenstwa"]

    email = client.post(f"/v1/sessions/{session_id}/view", json={"view": "email"}).json()
    assert email["presentation"]["content"]["email_draft"] == analysis_payload["email_draft"]

    page = client.get(f"/sessions/{session_id}")
    assert page.status_code == 200
    assert "Kopiuj treść" in page.text


def test_rejected_key_keeps_preview(client, fake_genai, jpeg_bytes) -> None:
    error = errors.ClientError(
        400,
        {"error": {"code": 400, "message": "API key not valid.", "status": "INVALID_ARGUMENT",
                   "details": [{"reason": "API_KEY_INVALID"}]}},
    )
    _use_gemini(fake_genai(error=error))
    session_id = client.post("/v1/sessions").json()["session_id"]
    loaded = _upload(client, session_id, jpeg_bytes).json()

    failed = client.post(f"/v1/sessions/{session_id}/analyze").json()

    assert failed["status"] == "failed"
    assert "OpenAI" in failed["error"]
    assert failed["retryable"] is False
    assert failed["preview_url"] == loaded["preview_url"]
    assert client.get(failed["preview_url"]).status_code == 200


def test_missing_key_fails_without_calling_gemini(client, fake_genai, jpeg_bytes) -> None:
    fake = fake_genai(text="{}")
    _use_gemini(fake, api_key="")
    session_id = client.post("/v1/sessions").json()["session_id"]
    _upload(client, session_id, jpeg_bytes)

    failed = client.post(f"/v1/sessions/{session_id}/analyze").json()

    assert failed["status"] == "failed"
    assert "Brak klucza API" in failed["error"]
    assert fake.calls == []


def test_reset_releases_preview(client, manager, jpeg_bytes) -> None:
    session_id = client.post("/v1/sessions").json()["session_id"]
    loaded = _upload(client, session_id, jpeg_bytes).json()

    reset = client.post(f"/v1/sessions/{session_id}/reset").json()

    assert reset["status"] == "empty"
    assert len(manager.previews) == 0
    assert client.get(loaded["preview_url"]).status_code == 404


def test_analyze_without_image_conflicts(client) -> None:
    session_id = client.post("/v1/sessions").json()["session_id"]
    assert client.post(f"/v1/sessions/{session_id}/analyze").status_code == 409


def test_view_requires_result_and_known_name(client, jpeg_bytes) -> None:
    session_id = client.post("/v1/sessions").json()["session_id"]
    _upload(client, session_id, jpeg_bytes)

    assert client.post(f"/v1/sessions/{session_id}/view", json={"view": "offer"}).status_code == 409
    assert client.post(f"/v1/sessions/{session_id}/view", json={"view": "totals"}).status_code == 422


def test_unknown_session_is_404(client) -> None:
    assert client.get("/v1/sessions/nope").status_code == 404
    assert client.delete("/v1/sessions/nope").status_code == 404


def test_delete_session_releases_preview(client, manager, jpeg_bytes) -> None:
    session_id = client.post("/v1/sessions").json()["session_id"]
    _upload(client, session_id, jpeg_bytes)

    assert client.delete(f"/v1/sessions/{session_id}").status_code == 200
    assert len(manager) == 0
    assert len(manager.previews) == 0


def test_index_redirects_to_session_page(client, manager) -> None:
    response = client.get("/", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"].startswith("/sessions/")
    assert len(manager) == 1
