import render.demo_video
from celery_app import app, run_generation_task, run_render_task
from demo.workflow import RenderOptions


def test_tasks_registered():
    assert "generation.run" in app.tasks
    assert "render.run" in app.tasks


def test_render_task_parses_options(monkeypatch):
    calls = []

    def fake_render(video_path, events_path, output_path, options):
        calls.append((video_path, events_path, output_path, options))
        return {"output_path": output_path, "duration_in_frames": 90, "duration_in_seconds": 3.0}

    monkeypatch.setattr(render.demo_video, "render_demo_video", fake_render)
    result = run_render_task.apply(
        args=("raw.webm", "raw.events.json", "out.mp4", {"showCursor": False}),
    ).get()
    assert result["output_path"] == "out.mp4"
    assert calls[0][3] == RenderOptions(show_cursor=False)


def test_generation_task_runs_job(monkeypatch):
    import orchestrator

    seen = []

    async def fake_run_job(self, job_id, request):
        seen.append((job_id, request.workflow.id))

    monkeypatch.setattr(orchestrator.Orchestrator, "run_job", fake_run_job)
    monkeypatch.setenv("JOB_STORE", "memory")
    payload = {"workflow": {"id": "wf", "url": "https://x.test", "steps": [{"type": "wait"}]}}
    run_generation_task.apply(args=("job1", payload)).get()
    assert seen == [("job1", "wf")]
