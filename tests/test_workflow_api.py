"""API tests for server-side workflow sessions"""

import pytest

from studio_core.workflow import WorkflowSessionManager

pytestmark = pytest.mark.api


def test_new_session(api_client):
    response = api_client.get("/api/workflow/session-1")

    assert response.status_code == 200
    data = response.json()
    assert data["sessionId"] == "session-1"
    assert data["state"]["currentStep"] == "prompt"
    assert data["progress"] == 25.0
    assert data["nextStep"] == "generate"
    assert data["reachable"] == {"prompt": True, "generate": False, "enhance": False, "export": False}


def test_unreachable_step(api_client):
    response = api_client.post("/api/workflow/session-1/step", json={"step": "export"})
    assert response.status_code == 409
    assert "export" in response.json()["error"]


def test_complete_then_advance(api_client):
    api_client.post("/api/workflow/session-1/complete", json={"step": "prompt"})
    response = api_client.post("/api/workflow/session-1/step", json={"step": "generate"})

    assert response.status_code == 200
    data = response.json()
    assert data["state"]["currentStep"] == "generate"
    assert data["state"]["completedSteps"] == ["prompt"]
    assert data["progress"] == 50.0


def test_unknown_step_value(api_client):
    response = api_client.post("/api/workflow/session-1/step", json={"step": "publish"})
    assert response.status_code == 400


def test_prompt_and_history(api_client):
    api_client.post("/api/workflow/session-1/prompt", json={"prompt": "a red fox"})
    response = api_client.post("/api/workflow/session-1/prompt", json={"prompt": "draft", "addToHistory": False})

    state = response.json()["state"]
    assert state["prompt"] == "draft"
    assert state["promptHistory"] == ["a red fox"]


def test_adding_image_auto_advances(api_client):
    response = api_client.post("/api/workflow/session-1/images", json={
        "id": "img-1",
        "url": "https://replicate.delivery/fox.png",
        "prompt": "a red fox",
        "metadata": {"model": "Imagen 4 Fast", "aspectRatio": "1:1"},
    })

    state = response.json()["state"]
    assert state["currentStep"] == "enhance"
    assert state["selectedImageId"] == "img-1"
    assert state["completedSteps"] == ["prompt", "generate"]
    assert state["generatedImages"][0]["metadata"]["aspectRatio"] == "1:1"


def test_background_removed_and_selection(api_client):
    for image_id in ("img-1", "img-2"):
        api_client.post("/api/workflow/session-1/images", json={
            "id": image_id, "url": f"https://replicate.delivery/{image_id}.png", "prompt": "fox",
        })

    api_client.patch(
        "/api/workflow/session-1/images/img-1/background",
        json={"backgroundRemovedUrl": "https://cdn.example.com/img-1-cutout.png"},
    )
    response = api_client.post("/api/workflow/session-1/select", json={"imageId": "img-1"})

    state = response.json()["state"]
    assert state["selectedImageId"] == "img-1"
    image = next(image for image in state["generatedImages"] if image["id"] == "img-1")
    assert image["backgroundRemovedUrl"] == "https://cdn.example.com/img-1-cutout.png"


def test_select_unknown_image(api_client):
    response = api_client.post("/api/workflow/session-1/select", json={"imageId": "missing"})
    assert response.status_code == 404


def test_add_model(api_client):
    response = api_client.post("/api/workflow/session-1/models", json={
        "url": "https://replicate.delivery/fox.glb",
        "sourceImageId": "img-1",
        "metadata": {"generationTime": 95.5},
    })
    model = response.json()["state"]["generatedModels"][0]
    assert model["sourceImageId"] == "img-1"
    assert model["metadata"]["generationTime"] == 95.5


def test_ui_preferences_and_reset(api_client):
    api_client.post("/api/workflow/session-1/prompt", json={"prompt": "a red fox"})
    api_client.patch("/api/workflow/session-1/ui", json={"sidebarCollapsed": True})
    api_client.post("/api/workflow/session-1/images", json={"url": "https://replicate.delivery/fox.png"})

    response = api_client.post("/api/workflow/session-1/reset")

    state = response.json()["state"]
    assert state["currentStep"] == "prompt"
    assert state["generatedImages"] == []
    assert state["promptHistory"] == ["a red fox"]
    assert state["sidebarCollapsed"] is True
    assert state["showOnboarding"] is False


def test_sessions_are_independent(api_client):
    api_client.post("/api/workflow/session-1/prompt", json={"prompt": "a red fox"})
    state = api_client.get("/api/workflow/session-2").json()["state"]
    assert state["prompt"] == ""


def test_delete_session(api_client, session_manager):
    api_client.get("/api/workflow/session-1")
    assert len(session_manager) == 1

    assert api_client.delete("/api/workflow/session-1").status_code == 200
    assert len(session_manager) == 0
    assert api_client.delete("/api/workflow/session-1").status_code == 404


def test_idle_sessions_expire():
    now = [0.0]
    manager = WorkflowSessionManager(ttl=10, clock=lambda: now[0])
    session = manager.get_or_create("session-1")
    now[0] = 5.0
    assert manager.get("session-1") is session

    now[0] = 20.0
    assert manager.purge_expired() == 1
    assert not session.sequencer.attached
    assert len(manager) == 0
