"""Predefined workflow templates. The leading goto gets the target URL."""
from __future__ import annotations

from typing import Any

from demo.workflow import Workflow, WorkflowStep

WORKFLOW_TEMPLATES: dict[str, dict[str, Any]] = {
    "login-flow": {
        "name": "Login Flow",
        "steps": [
            {"type": "goto", "value": ""},
            {"type": "fill", "selector": '[type="email"]', "value": "user@example.com", "label": "Email"},
            {"type": "fill", "selector": '[type="password"]', "value": "password", "label": "Password"},
            {"type": "click", "selector": 'button[type="submit"]', "label": "Login"},
            {"type": "wait", "duration": 2000, "label": "Loading"},
        ],
    },
    "search-flow": {
        "name": "Search Flow",
        "steps": [
            {"type": "goto", "value": ""},
            {"type": "fill", "selector": '[type="search"], [role="searchbox"]', "value": "demo query", "label": "Search"},
            {"type": "click", "selector": 'button[type="submit"], [aria-label="Search"]', "label": "Search"},
            {"type": "wait", "duration": 2000, "label": "Results"},
        ],
    },
    "form-flow": {
        "name": "Form Submission",
        "steps": [
            {"type": "goto", "value": ""},
            {"type": "fill", "selector": 'input[name="name"]', "value": "John Doe", "label": "Name"},
            {"type": "fill", "selector": 'input[name="email"]', "value": "john@example.com", "label": "Email"},
            {"type": "click", "selector": 'button[type="submit"]', "label": "Submit"},
            {"type": "wait", "duration": 1500, "label": "Processing"},
        ],
    },
}


def build_workflow_from_template(key: str, workflow_id: str, url: str, **overrides: Any) -> Workflow:
    """Instantiate a template, pointing every empty goto at ``url``."""
    if key not in WORKFLOW_TEMPLATES:
        raise KeyError(f"Unknown workflow template: {key}")
    template = WORKFLOW_TEMPLATES[key]
    steps = []
    for raw in template["steps"]:
        step = WorkflowStep(**raw)
        if step.type == "goto" and not step.value:
            step = step.model_copy(update={"value": url})
        steps.append(step)
    return Workflow(id=workflow_id, name=template["name"], url=url, steps=steps, **overrides)
