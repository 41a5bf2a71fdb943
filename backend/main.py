from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from db.models import get_job_store
from demo.workflow import GenerationRequest
from orchestrator import ARTIFACTS_DIR, Orchestrator
from routers.videos import router as videos_router

logging.basicConfig(level=logging.INFO, format="%(levelname)s  %(name)s  %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Demo Video API")
app.include_router(videos_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rendered videos are served from here
os.makedirs(ARTIFACTS_DIR, exist_ok=True)
app.mount("/outputs", StaticFiles(directory=ARTIFACTS_DIR), name="outputs")

app.state.orchestrator = Orchestrator(get_job_store())


def _dispatch_to_celery(job_id: str, request: GenerationRequest) -> None:
    from celery_app import run_generation_task

    run_generation_task.delay(job_id, request.model_dump(mode="json", by_alias=True))
    logger.info("[%s] dispatched to celery", job_id)


# Jobs run in a worker only when the store is shared with it
if os.getenv("USE_CELERY") == "1":
    app.state.dispatch = _dispatch_to_celery
