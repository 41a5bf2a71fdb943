from __future__ import annotations

import logging
from typing import Awaitable, Callable

from playwright.async_api import Page

from demo.tracker import Tracker
from demo.workflow import WorkflowStep, WorkflowValidationError
from tools.browser_tools import (
    StepOutcome,
    click_locator,
    fill_locator,
    navigate,
    resolve_element,
    scroll_page,
)

logger = logging.getLogger(__name__)

# Settle delays (ms) after each interaction
GOTO_SETTLE_MS = 500
CLICK_SETTLE_MS = 300
FILL_SETTLE_MS = 200
SCROLL_SETTLE_MS = 300
CALLOUT_HOLD_MS = 1000

DEFAULT_WAIT_MS = 1000
DEFAULT_SCROLL_PX = 300

StepCallback = Callable[[int, int, WorkflowStep], Awaitable[None] | None]


def _require(step: WorkflowStep, *fields: str) -> None:
    missing = [f for f in fields if getattr(step, f) is None]
    if missing:
        raise WorkflowValidationError(f"{step.type} step missing {', '.join(missing)}")


# ── Step handlers ──────────────────────────────


async def _execute_goto(page: Page, tr: Tracker, step: WorkflowStep) -> StepOutcome:
    _require(step, "value")
    await navigate(page, step.value, settle_ms=GOTO_SETTLE_MS)
    return StepOutcome.OK


async def _execute_click(page: Page, tr: Tracker, step: WorkflowStep) -> StepOutcome:
    _require(step, "selector")
    locator, box = await resolve_element(page, step.selector)
    if box is None:
        logger.warning("click: element not found for %s, skipping", step.selector)
        return StepOutcome.ELEMENT_NOT_FOUND
    # Record before acting so the timestamp lines up with the visual change
    tr.add_focus(box, step.label)
    tr.add_click(box.center, box, step.label)
    outcome = await click_locator(locator)
    await page.wait_for_timeout(CLICK_SETTLE_MS)
    return outcome


async def _execute_fill(page: Page, tr: Tracker, step: WorkflowStep) -> StepOutcome:
    _require(step, "selector", "value")
    locator, box = await resolve_element(page, step.selector)
    if box is None:
        logger.warning("fill: element not found for %s, skipping", step.selector)
        return StepOutcome.ELEMENT_NOT_FOUND
    tr.add_focus(box, step.label)
    tr.add_type(step.value, box, step.label)
    outcome = await fill_locator(locator, step.value)
    await page.wait_for_timeout(FILL_SETTLE_MS)
    return outcome


async def _execute_wait(page: Page, tr: Tracker, step: WorkflowStep) -> StepOutcome:
    duration_ms = step.duration if step.duration is not None else DEFAULT_WAIT_MS
    tr.add_wait(duration_ms / 1000, step.label)
    await page.wait_for_timeout(duration_ms)
    return StepOutcome.OK


async def _execute_scroll(page: Page, tr: Tracker, step: WorkflowStep) -> StepOutcome:
    # duration doubles as the scroll amount in pixels
    amount = step.duration if step.duration is not None else DEFAULT_SCROLL_PX
    tr.add_scroll("down", amount)
    await scroll_page(page, "down", amount)
    await page.wait_for_timeout(SCROLL_SETTLE_MS)
    return StepOutcome.OK


async def _execute_callout(page: Page, tr: Tracker, step: WorkflowStep) -> StepOutcome:
    _require(step, "selector", "label")
    _, box = await resolve_element(page, step.selector)
    if box is None:
        logger.warning("callout: element not found for %s, skipping", step.selector)
        return StepOutcome.ELEMENT_NOT_FOUND
    tr.add_callout(box, step.label)
    await page.wait_for_timeout(CALLOUT_HOLD_MS)
    return StepOutcome.OK


# ── Handler registry ───────────────────────────

_STEP_HANDLERS = {
    "goto": _execute_goto,
    "click": _execute_click,
    "fill": _execute_fill,
    "wait": _execute_wait,
    "scroll": _execute_scroll,
    "callout": _execute_callout,
}


async def execute_step(page: Page, tr: Tracker, step: WorkflowStep) -> StepOutcome:
    """Run one step against the page, recording tracker events as it goes.

    Missing elements and failed clicks/fills come back as a StepOutcome;
    navigation failures and anything unexpected propagate.
    """
    handler = _STEP_HANDLERS.get(step.type)
    if handler is None:
        raise WorkflowValidationError(f"Unknown step type: {step.type}")
    return await handler(page, tr, step)


async def run_steps(
    page: Page,
    tr: Tracker,
    steps: list[WorkflowStep],
    on_step: StepCallback | None = None,
) -> list[StepOutcome]:
    """Execute steps strictly in order. ``on_step(index, total, step)`` runs before each."""
    outcomes: list[StepOutcome] = []
    total = len(steps)
    for i, step in enumerate(steps):
        if on_step is not None:
            maybe = on_step(i, total, step)
            if maybe is not None:
                await maybe
        outcome = await execute_step(page, tr, step)
        if outcome is not StepOutcome.OK:
            logger.warning("Step %d/%d (%s) %s", i + 1, total, step.describe(), outcome.value)
        outcomes.append(outcome)
    return outcomes
