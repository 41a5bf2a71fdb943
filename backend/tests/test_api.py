import time

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import FakePage, box, make_session_factory
from db.models import InMemoryJobStore
from orchestrator import Orchestrator
from routers.videos import router

WORKFLOW = {
    "id": "signup",
    "url": "https://x.test",
    "steps": [
        {"type": "goto", "value": "https://x.test"},
        {"type": "click", "selector": "#btn", "label": "Submit"},
        {"type": "wait", "duration": 500},
    ],
}


def _fake_render(video_path, events_path, output_path, options):
    return {"output_path": output_path, "duration_in_frames": 90, "duration_in_seconds": 3.0}


@pytest.fixture
def app(tmp_path):
    app = FastAPI()
    app.include_router(router)
    app.state.orchestrator = Orchestrator(
        InMemoryJobStore(),
        session_factory=make_session_factory(FakePage({"#btn": {"box": box(10, 10, 100, 40)}})),
        render_fn=_fake_render,
        artifacts_dir=str(tmp_path),
    )
    return app


@pytest.fixture
def dispatched(app):
    calls = []
    app.state.dispatch = lambda job_id, request: calls.append((job_id, request))
    return calls


def test_generate_returns_pending_job(app, dispatched):
    client = TestClient(app)
    resp = client.post("/videos/generate", json={"workflow": WORKFLOW})
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "pending"
    assert len(body["jobId"]) == 8
    assert dispatched[0][0] == body["jobId"]
    assert dispatched[0][1].workflow.id == "signup"

    status = client.get(f"/videos/status/{body['jobId']}").json()
    assert status["id"] == body["jobId"]
    assert status["status"] == "pending"
    assert status["progress"] == 0
    assert "startedAt" in status
    assert "outputPath" not in status


def test_generate_accepts_render_options(app, dispatched):
    client = TestClient(app)
    resp = client.post("/videos/generate", json={
        "workflow": WORKFLOW,
        "renderOptions": {"showCursor": False, "enableZoom": False},
    })
    assert resp.status_code == 200
    options = dispatched[0][1].render_options
    assert (options.show_cursor, options.enable_zoom, options.show_ripples) == (False, False, True)


@pytest.mark.parametrize("workflow", [
    {**WORKFLOW, "id": ""},
    {**WORKFLOW, "url": ""},
    {**WORKFLOW, "steps": []},
    {**WORKFLOW, "steps": [{"type": "fill", "selector": "#x"}]},
])
def test_invalid_workflow_is_400(app, dispatched, workflow):
    resp = TestClient(app).post("/videos/generate", json={"workflow": workflow})
    assert resp.status_code == 400
    assert "Invalid" in resp.json()["detail"]
    assert dispatched == []


def test_unknown_step_type_is_422(app, dispatched):
    workflow = {**WORKFLOW, "steps": [{"type": "hover", "selector": "#x"}]}
    assert TestClient(app).post("/videos/generate", json={"workflow": workflow}).status_code == 422


def test_unknown_job_is_404(app):
    resp = TestClient(app).get("/videos/status/nope")
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Generation not found"}


def test_list_jobs(app, dispatched):
    client = TestClient(app)
    ids = {client.post("/videos/generate", json={"workflow": WORKFLOW}).json()["jobId"] for _ in range(2)}
    jobs = client.get("/videos").json()["jobs"]
    assert {j["id"] for j in jobs} == ids


def test_templates(app):
    templates = TestClient(app).get("/videos/templates").json()["templates"]
    assert set(templates) == {"login-flow", "search-flow", "form-flow"}
    assert templates["login-flow"]["steps"][0] == {"type": "goto", "value": ""}


def test_background_job_runs_to_completion(app):
    with TestClient(app) as client:
        job_id = client.post("/videos/generate", json={"workflow": WORKFLOW}).json()["jobId"]
        deadline = time.monotonic() + 10
        status = {}
        while time.monotonic() < deadline:
            status = client.get(f"/videos/status/{job_id}").json()
            if status["status"] in ("completed", "failed"):
                break
            time.sleep(0.05)
    assert status["status"] == "completed"
    assert status["progress"] == 100
    assert status["outputPath"].endswith(f"signup-{job_id}.mp4")
    assert "completedAt" in status


def test_dispatch_failure_marks_job_failed(app):
    def unreachable(job_id, request):
        raise ConnectionError("broker unreachable")

    app.state.dispatch = unreachable
    client = TestClient(app)
    resp = client.post("/videos/generate", json={"workflow": WORKFLOW})
    assert resp.status_code == 503
    assert "broker unreachable" in resp.json()["detail"]

    (job,) = client.get("/videos").json()["jobs"]
    assert job["status"] == "failed"
    assert job["error"] == "broker unreachable"
    assert "completedAt" in job
