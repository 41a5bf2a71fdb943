"""Celery app + thin task wrappers around the generation pipeline.

Each task calls asyncio.run() so the async capture code (Playwright)
runs untouched inside the worker's own event loop. Render-only tasks
are synchronous and need nothing but the files on disk.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys

# Ensure backend/ is on sys.path so forked workers can resolve imports
# (orchestrator, db.*, render.*, etc.) regardless of cwd.
_backend_dir = os.path.dirname(os.path.abspath(__file__))
if _backend_dir not in sys.path:
    sys.path.insert(0, _backend_dir)

from celery import Celery
from celery.signals import worker_process_init
from dotenv import load_dotenv

load_dotenv(os.path.join(_backend_dir, ".env"))

logger = logging.getLogger(__name__)

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

app = Celery("demovideo", broker=REDIS_URL, backend=REDIS_URL)

app.conf.update(
    # Capture + render is long-running; don't let a single worker hoard messages
    worker_prefetch_multiplier=1,
    # Requeue if worker crashes mid-task
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_default_queue="generation",
)


def _ensure_backend_path():
    """Ensure backend/ is on sys.path.

    Called in worker_process_init (after fork) and at the top of each
    task so imports like ``from orchestrator import ...`` always resolve.
    """
    if _backend_dir not in sys.path:
        sys.path.insert(0, _backend_dir)


@worker_process_init.connect
def _on_worker_init(**kwargs):
    """Post-fork setup: fix sys.path and reset the DB connection pool.

    psycopg2 connections aren't safe across fork boundaries, so we
    discard the parent's pool and let each worker build its own lazily.
    """
    _ensure_backend_path()
    from db.connection import reset_pool

    reset_pool()
    logger.info("DB connection pool reset after fork")


# ── Task wrappers ──────────────────────────────────────────────


@app.task(name="generation.run", bind=True, max_retries=0)
def run_generation_task(self, job_id: str, payload: dict):
    """Capture + render for a job already created by the API process."""
    _ensure_backend_path()
    from db.models import get_job_store
    from demo.workflow import GenerationRequest
    from orchestrator import Orchestrator

    logger.info("Celery task started: run_job(%s)", job_id)
    request = GenerationRequest.model_validate(payload)
    asyncio.run(Orchestrator(get_job_store()).run_job(job_id, request))


@app.task(name="render.run", bind=True, max_retries=0)
def run_render_task(
    self,
    video_path: str,
    events_path: str,
    output_path: str,
    options: dict | None = None,
):
    """Standalone render of an existing capture."""
    _ensure_backend_path()
    from demo.workflow import RenderOptions
    from render.demo_video import render_demo_video

    logger.info("Celery task started: render(%s -> %s)", events_path, output_path)
    render_options = RenderOptions.model_validate(options or {})
    return render_demo_video(video_path, events_path, output_path, render_options)
