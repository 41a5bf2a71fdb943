from __future__ import annotations

import asyncio
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Any, AsyncContextManager, Callable

from db.models import JobStore
from demo.track import DemoMeta
from demo.tracker import Tracker
from demo.workflow import (
    GenerationJob,
    GenerationRequest,
    RenderOptions,
    Workflow,
    WorkflowStep,
    validate_workflow,
)
from executor import run_steps
from render.demo_video import render_demo_video
from tools.browser_tools import RecordingSession, StepOutcome, recording_session

logger = logging.getLogger(__name__)

ARTIFACTS_DIR = os.getenv("ARTIFACTS_DIR", "outputs")

# Progress checkpoints (percent)
CAPTURE_START = 10
STEPS_START = 20
STEPS_SPAN = 30
CAPTURE_END = 50
RENDER_START = 60

SessionFactory = Callable[[int, int, str], AsyncContextManager[RecordingSession]]
RenderFn = Callable[[str, str, str, RenderOptions], dict[str, Any]]


class CaptureError(RuntimeError):
    """The capture phase finished without producing a video file."""


class JobNotFoundError(KeyError):
    """No generation job with the given id."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _step_message(index: int, total: int, step: WorkflowStep) -> str:
    return f"Step {index + 1}/{total}: {step.describe()}"


class Orchestrator:
    """Runs capture then render for each submitted workflow as a background task.

    Job records live in the injected store; the orchestrator is the only
    place that turns pipeline exceptions into a ``failed`` status.
    """

    def __init__(
        self,
        store: JobStore,
        session_factory: SessionFactory = recording_session,
        render_fn: RenderFn = render_demo_video,
        artifacts_dir: str = ARTIFACTS_DIR,
    ) -> None:
        self.store = store
        self._session_factory = session_factory
        self._render_fn = render_fn
        self.artifacts_dir = artifacts_dir
        self._running_tasks: dict[str, asyncio.Task] = {}

    # ── Submission / status ───────────────────

    def create_job(self, request: GenerationRequest) -> str:
        """Validate the request and store a pending job. Does not start it."""
        validate_workflow(request.workflow)
        job_id = uuid.uuid4().hex[:8]
        self.store.create_job(GenerationJob(
            id=job_id,
            status="pending",
            progress=0,
            message="Initializing...",
            started_at=_now(),
        ))
        logger.info("[%s] created job for workflow %s", job_id, request.workflow.id)
        return job_id

    def submit(self, request: GenerationRequest) -> str:
        """Create a job and start its pipeline on the running event loop."""
        job_id = self.create_job(request)
        task = asyncio.get_running_loop().create_task(self.run_job(job_id, request))
        self._running_tasks[job_id] = task
        task.add_done_callback(lambda _t: self._running_tasks.pop(job_id, None))
        return job_id

    def status(self, job_id: str) -> GenerationJob | None:
        return self.store.get_job(job_id)

    def require_status(self, job_id: str) -> GenerationJob:
        job = self.store.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def list_jobs(self) -> list[GenerationJob]:
        return self.store.list_jobs()

    def fail_job(self, job_id: str, error: Exception) -> None:
        self.store.update_job(
            job_id,
            status="failed",
            error=str(error) or type(error).__name__,
            completed_at=_now(),
        )

    async def wait(self) -> None:
        """Wait for every job started by this orchestrator to finish."""
        while self._running_tasks:
            await asyncio.gather(*list(self._running_tasks.values()), return_exceptions=True)

    # ── Pipeline ──────────────────────────────

    async def run_job(self, job_id: str, request: GenerationRequest) -> None:
        """Capture, persist the event track, render. Never raises."""
        workflow = request.workflow
        try:
            capture = await self._capture(job_id, workflow)

            self.store.update_job(
                job_id,
                status="rendering",
                progress=RENDER_START,
                message="Rendering video...",
            )
            output_path = os.path.join(
                self.artifacts_dir, "videos", f"{workflow.id}-{job_id}.mp4",
            )
            logger.info("[%s] render: starting -> %s", job_id, output_path)
            result = await asyncio.to_thread(
                self._render_fn,
                capture["raw_video_path"],
                capture["events_path"],
                output_path,
                request.render_options,
            )

            self.store.update_job(
                job_id,
                status="completed",
                progress=100,
                message="Video generation complete",
                output_path=result.get("output_path", output_path),
                completed_at=_now(),
            )
            logger.info("[%s] completed: %s", job_id, output_path)

        except Exception as e:
            logger.exception("Generation failed for job %s", job_id)
            self.fail_job(job_id, e)

    async def _capture(self, job_id: str, workflow: Workflow) -> dict[str, Any]:
        raw_dir = os.path.join(self.artifacts_dir, "raw", job_id)
        self.store.update_job(
            job_id,
            status="capturing",
            progress=CAPTURE_START,
            message="Launching browser...",
        )
        logger.info("[%s] capture: %s (%d steps)", job_id, workflow.url, len(workflow.steps))

        def on_step(index: int, total: int, step: WorkflowStep) -> None:
            self.store.update_job(
                job_id,
                progress=STEPS_START + int(index / total * STEPS_SPAN),
                message=_step_message(index, total, step),
            )

        async with self._session_factory(workflow.width, workflow.height, raw_dir) as session:
            # t0 as close as possible to the start of the recording
            tracker = Tracker(DemoMeta(width=workflow.width, height=workflow.height, fps=workflow.fps))
            self.store.update_job(job_id, progress=STEPS_START, message="Executing workflow steps...")
            outcomes = await run_steps(session.page, tracker, workflow.steps, on_step=on_step)
            self.store.update_job(job_id, progress=CAPTURE_END, message="Finishing capture...")

        video_path = session.video_path
        if not video_path or not os.path.exists(video_path):
            raise CaptureError("No video file was created")

        raw_video_path = os.path.join(raw_dir, f"{workflow.id}.webm")
        if os.path.abspath(video_path) != os.path.abspath(raw_video_path):
            os.replace(video_path, raw_video_path)

        events_path = os.path.join(raw_dir, f"{workflow.id}.events.json")
        tracker.save(events_path)

        self.store.update_job(job_id, raw_video_path=raw_video_path, events_path=events_path)
        logger.info(
            "[%s] capture: %d events, %d/%d steps ok",
            job_id,
            len(tracker.events),
            sum(1 for o in outcomes if o is StepOutcome.OK),
            len(outcomes),
        )
        return {
            "raw_video_path": raw_video_path,
            "events_path": events_path,
            "outcomes": outcomes,
        }
