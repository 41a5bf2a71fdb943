from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from demo.workflow import GenerationRequest, WorkflowValidationError
from orchestrator import Orchestrator
from workflows.templates import WORKFLOW_TEMPLATES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/videos", tags=["videos"])


class GenerateResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_id: str
    status: str = "pending"


def get_orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


@router.post("/generate", response_model=GenerateResponse, response_model_by_alias=True)
async def generate(
    body: GenerationRequest,
    request: Request,
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    """Start capture + render in the background and return the job id.

    If the app has a ``dispatch`` hook (Celery), the job is created here and
    handed off to it; otherwise it runs as a task on this event loop.
    """
    dispatch = getattr(request.app.state, "dispatch", None)
    try:
        if dispatch is None:
            return GenerateResponse(job_id=orchestrator.submit(body))
        job_id = orchestrator.create_job(body)
    except WorkflowValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        dispatch(job_id, body)
    except Exception as e:
        logger.exception("[%s] dispatch failed", job_id)
        orchestrator.fail_job(job_id, e)
        raise HTTPException(status_code=503, detail=f"Could not queue generation: {e}")
    return GenerateResponse(job_id=job_id)


@router.get("/status/{job_id}")
def status(job_id: str, orchestrator: Orchestrator = Depends(get_orchestrator)):
    job = orchestrator.status(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Generation not found")
    return job.to_api()


@router.get("/templates")
def templates():
    """Predefined workflows; the leading goto is filled with the target URL on use."""
    return {"templates": WORKFLOW_TEMPLATES}


@router.get("")
def list_jobs(orchestrator: Orchestrator = Depends(get_orchestrator)):
    return {"jobs": [j.to_api() for j in orchestrator.list_jobs()]}
