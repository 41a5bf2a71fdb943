"""Workflow definition language and the generation request/job records."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_WIDTH = 1920
DEFAULT_HEIGHT = 1080
DEFAULT_FPS = 30

StepType = Literal["goto", "click", "fill", "wait", "scroll", "callout"]
JobStatus = Literal["pending", "capturing", "rendering", "completed", "failed"]


class WorkflowValidationError(ValueError):
    """Submission is missing required fields."""


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WorkflowStep(_CamelModel):
    type: StepType
    selector: str | None = None
    value: str | None = None
    duration: float | None = None
    label: str | None = None

    def describe(self) -> str:
        return f"{self.type} ({self.label})" if self.label else self.type


class Workflow(_CamelModel):
    id: str = ""
    name: str | None = None
    url: str = ""
    steps: list[WorkflowStep] = Field(default_factory=list)
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    fps: int = DEFAULT_FPS


class RenderOptions(_CamelModel):
    show_cursor: bool = True
    show_ripples: bool = True
    show_callouts: bool = True
    enable_zoom: bool = True


class GenerationRequest(_CamelModel):
    workflow: Workflow
    render_options: RenderOptions = Field(default_factory=RenderOptions)


class GenerationJob(_CamelModel):
    id: str
    status: JobStatus = "pending"
    progress: int = 0
    message: str | None = None
    raw_video_path: str | None = None
    events_path: str | None = None
    output_path: str | None = None
    error: str | None = None
    started_at: str
    completed_at: str | None = None

    def to_api(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# Fields each step type cannot run without.
_REQUIRED_STEP_FIELDS: dict[str, tuple[str, ...]] = {
    "goto": ("value",),
    "click": ("selector",),
    "fill": ("selector", "value"),
    "wait": (),
    "scroll": (),
    "callout": ("selector", "label"),
}


def validate_workflow(workflow: Workflow) -> None:
    """Raise WorkflowValidationError unless the workflow can be executed."""
    if not workflow.id or not workflow.url or not workflow.steps:
        raise WorkflowValidationError("Invalid workflow: id, url, and steps are required")
    if workflow.width <= 0 or workflow.height <= 0 or workflow.fps <= 0:
        raise WorkflowValidationError("Invalid workflow: width, height and fps must be positive")
    for i, step in enumerate(workflow.steps):
        # fill may legitimately clear a field with an empty value
        missing = [
            f for f in _REQUIRED_STEP_FIELDS[step.type]
            if getattr(step, f) is None
            or (getattr(step, f) == "" and not (step.type == "fill" and f == "value"))
        ]
        if missing:
            raise WorkflowValidationError(
                f"Invalid step {i + 1} ({step.type}): missing {', '.join(missing)}"
            )
