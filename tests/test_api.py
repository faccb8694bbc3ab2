import pytest
from fastapi.testclient import TestClient

from storyboard_studio.config import Settings
from storyboard_studio.llm.chat import ChatClient
from storyboard_studio.main import create_application
from storyboard_studio.models import MessageRole

from .fakes import FakeChatClient, FakeVideoClient

SCENARIO = '{"shots":[{"description":"A","duration":5},{"description":"B","duration":10}]}'


def make_app(runway_client=None, chat_client=None, settings=None):
    return create_application(
        settings=settings or Settings(runway_api_secret="secret", poll_interval=0.01, retry_delay=0),
        runway_client=runway_client,
        chat_client=chat_client or FakeChatClient([]),
    )


@pytest.fixture
def client():
    app = make_app(runway_client=FakeVideoClient(hang_status=True))
    with TestClient(app) as test_client:
        yield test_client


def load_storyboard(client, content=SCENARIO):
    response = client.post("/api/v1/storyboard/parse", json={"content": content})
    assert response.status_code == 200
    return response.json()["storyboard"]


def test_healthcheck(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_storyboard_missing_before_parse(client):
    assert client.get("/api/v1/storyboard").status_code == 404


def test_parse_returns_camel_case_storyboard(client):
    storyboard = load_storyboard(client)

    assert storyboard["totalDuration"] == 15
    assert storyboard["title"] == "Untitled Storyboard"
    assert storyboard["shots"][1]["timing"] == {"start": 5, "end": 15}
    assert storyboard["shots"][0]["cameraAngle"] == "Medium Shot"
    assert storyboard["shots"][0]["runwayPrompt"] == "A"
    assert client.get("/api/v1/storyboard").json()["id"] == storyboard["id"]


def test_parse_without_storyboard_keeps_current(client):
    storyboard = load_storyboard(client)

    response = client.post("/api/v1/storyboard/parse", json={"content": "What mood are you after?"})

    assert response.json() == {"storyboard": None}
    assert client.get("/api/v1/storyboard").json()["id"] == storyboard["id"]


def test_reorder_endpoint(client):
    storyboard = load_storyboard(client)
    first, second = (shot["id"] for shot in storyboard["shots"])

    response = client.put("/api/v1/storyboard/shots/order", json={"shotIds": [second, first]})

    assert response.status_code == 200
    shots = response.json()["shots"]
    assert [shot["id"] for shot in shots] == [second, first]
    assert [shot["number"] for shot in shots] == [1, 2]
    assert [shot["timing"] for shot in shots] == [{"start": 0, "end": 10}, {"start": 10, "end": 15}]

    bad = client.put("/api/v1/storyboard/shots/order", json={"shotIds": [first]})
    assert bad.status_code == 422


def test_shot_edit_add_and_remove(client):
    storyboard = load_storyboard(client)
    first_id = storyboard["shots"][0]["id"]

    patched = client.patch(f"/api/v1/storyboard/shots/{first_id}", json={"duration": 7, "notes": "slower"})
    assert patched.status_code == 200
    assert patched.json()["timing"] == {"start": 0, "end": 7}
    assert patched.json()["notes"] == "slower"

    added = client.post("/api/v1/storyboard/shots", json={"description": "C", "duration": 3})
    assert added.status_code == 201
    assert added.json()["number"] == 3
    assert added.json()["timing"] == {"start": 17, "end": 20}

    assert client.delete(f"/api/v1/storyboard/shots/{first_id}").status_code == 204
    current = client.get("/api/v1/storyboard").json()
    assert [shot["description"] for shot in current["shots"]] == ["B", "C"]
    assert current["totalDuration"] == 13

    assert client.patch("/api/v1/storyboard/shots/missing", json={"notes": "x"}).status_code == 404


def test_selection(client):
    storyboard = load_storyboard(client)
    shot_id = storyboard["shots"][1]["id"]

    assert client.put("/api/v1/storyboard/selection", json={"shotId": shot_id}).json() == {"selectedShotId": shot_id}
    assert client.put("/api/v1/storyboard/selection", json={"shotId": None}).json() == {"selectedShotId": None}
    assert client.put("/api/v1/storyboard/selection", json={"shotId": "missing"}).status_code == 404


def test_start_generation_endpoint(client):
    storyboard = load_storyboard(client)
    shot_id = storyboard["shots"][0]["id"]

    response = client.post(f"/api/v1/storyboard/shots/{shot_id}/generation", json={})

    assert response.status_code == 202
    body = response.json()
    assert body["taskId"] == "task-1"
    assert body["status"] == "PENDING"
    assert body["isGenerating"] is True
    assert body["error"] is None

    state = client.get(f"/api/v1/storyboard/shots/{shot_id}/generation").json()
    assert state["status"] == "PENDING"

    cancelled = client.delete(f"/api/v1/storyboard/shots/{shot_id}/generation").json()
    assert cancelled["status"] == "PENDING"


def test_start_generation_failure_is_reported_on_shot():
    from storyboard_studio.runway_client import RunwayServiceError

    app = make_app(runway_client=FakeVideoClient(fail_generate=RunwayServiceError("Runway API error: 401 - bad key")))
    with TestClient(app) as client:
        shot_id = load_storyboard(client)["shots"][0]["id"]

        body = client.post(f"/api/v1/storyboard/shots/{shot_id}/generation", json={}).json()

    assert body["status"] == "FAILED"
    assert body["isGenerating"] is False
    assert body["error"] == "Runway API error: 401 - bad key"


def test_missing_runway_secret_is_request_error():
    app = make_app(settings=Settings(runway_api_secret=None))
    with TestClient(app) as client:
        shot_id = load_storyboard(client)["shots"][0]["id"]

        response = client.post(f"/api/v1/storyboard/shots/{shot_id}/generation", json={})
        assert response.status_code == 500
        assert response.json() == {"error": "Runway API credentials not configured"}

        # the storyboard itself is untouched
        assert client.get("/api/v1/storyboard").json()["shots"][0]["status"] is None


def test_runway_proxy_routes(client):
    assert client.post("/api/v1/runway/generate", json={}).json() == {"error": "Prompt is required"}
    assert client.post("/api/v1/runway/generate", json={}).status_code == 400
    assert client.get("/api/v1/runway/status").status_code == 400

    submitted = client.post("/api/v1/runway/generate", json={"prompt": "Ocean waves", "duration": 9})
    assert submitted.status_code == 200
    assert submitted.json()["taskId"] == "task-1"
    assert submitted.json()["status"] == "PENDING"


def test_runway_status_proxy():
    app = make_app(runway_client=FakeVideoClient(statuses=[{"status": "RUNNING", "progressRatio": 0.25}]))
    with TestClient(app) as client:
        body = client.get("/api/v1/runway/status", params={"taskId": "task-7"}).json()

    assert body["taskId"] == "task-7"
    assert body["status"] == "RUNNING"
    assert body["progress"] == 0.25


def test_chat_streams_and_updates_storyboard():
    chunks = ["Here you go:\n```json\n", SCENARIO, "\n```"]
    chat_client = FakeChatClient(chunks)
    app = make_app(runway_client=FakeVideoClient(), chat_client=chat_client)

    with TestClient(app) as client:
        response = client.post(
            "/api/v1/chat",
            json={"messages": [{"role": "user", "content": "A 15 second harbor video"}]},
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert all(line.startswith("0:") for line in response.text.splitlines())
        assert "".join(line[2:] for line in response.text.splitlines()).count("shots") == 1

        messages = client.get("/api/v1/messages").json()
        storyboard = client.get("/api/v1/storyboard").json()

    assert [message["role"] for message in messages] == ["user", "assistant"]
    assert messages[1]["content"] == "".join(chunks)
    assert storyboard["totalDuration"] == 15
    assert chat_client.received[0][0].role is MessageRole.USER


def test_chat_without_api_key_is_request_error():
    app = make_app(chat_client=ChatClient(api_key=None))
    with TestClient(app) as client:
        response = client.post("/api/v1/chat", json={"messages": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 500
    assert response.json() == {"error": "OPENAI_API_KEY not set"}


def test_generation_state_readable_without_runway_secret():
    app = make_app(settings=Settings(runway_api_secret=None))
    with TestClient(app) as client:
        shot_id = load_storyboard(client)["shots"][0]["id"]

        state = client.get(f"/api/v1/storyboard/shots/{shot_id}/generation")
        cancelled = client.delete(f"/api/v1/storyboard/shots/{shot_id}/generation")

    assert state.status_code == 200
    assert state.json()["status"] is None
    assert state.json()["isGenerating"] is False
    assert cancelled.status_code == 200


def test_rejected_shot_update_is_unprocessable(client, monkeypatch):
    shot_id = load_storyboard(client)["shots"][0]["id"]
    store = client.app.state.store

    def reject(shot_id, updates):
        raise ValueError("Cannot update derived shot fields: timing")

    monkeypatch.setattr(store, "update_shot", reject)
    response = client.patch(f"/api/v1/storyboard/shots/{shot_id}", json={"notes": "x"})

    assert response.status_code == 422
    assert response.json()["detail"] == "Cannot update derived shot fields: timing"
