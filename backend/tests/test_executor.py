import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError

from conftest import FakePage, box
from demo.track import Box, Point
from demo.workflow import WorkflowStep
from executor import execute_step, run_steps
from tools.browser_tools import StepOutcome

SUBMIT = {"box": box(100, 200, 80, 40)}


def _run(page, tracker, step):
    return asyncio.run(execute_step(page, tracker, WorkflowStep(**step)))


def test_goto_navigates_and_settles(tracker):
    page = FakePage()
    outcome = _run(page, tracker, {"type": "goto", "value": "https://example.com"})
    assert outcome is StepOutcome.OK
    assert page.actions == [("goto", "https://example.com"), ("wait", 500)]
    assert tracker.events == []


def test_goto_failure_propagates(tracker):
    page = FakePage(goto_error=PlaywrightError("net::ERR_NAME_NOT_RESOLVED"))
    with pytest.raises(PlaywrightError):
        _run(page, tracker, {"type": "goto", "value": "https://nope.invalid"})


def test_click_records_focus_then_click_before_acting(tracker, clock):
    page = FakePage({"#go": SUBMIT}, clock=clock)
    outcome = _run(page, tracker, {"type": "click", "selector": "#go", "label": "Go"})
    assert outcome is StepOutcome.OK
    focus, click = tracker.events
    assert focus.type == "focus" and focus.label == "Go"
    assert focus.box == Box(x=100, y=200, w=80, h=40)
    assert click.type == "click"
    assert click.point == Point(x=140, y=220)
    assert click.box == focus.box
    # both stamped before the 300ms settle
    assert focus.t == click.t == 0
    assert page.actions == [("click", "#go"), ("wait", 300)]


def test_click_missing_element_records_nothing(tracker):
    page = FakePage()
    outcome = _run(page, tracker, {"type": "click", "selector": "#missing"})
    assert outcome is StepOutcome.ELEMENT_NOT_FOUND
    assert tracker.events == []
    assert page.actions == []


def test_click_without_box_is_not_found(tracker):
    # attached but hidden: no bounding box
    page = FakePage({"#hidden": {"box": None, "visible": False}})
    outcome = _run(page, tracker, {"type": "click", "selector": "#hidden"})
    assert outcome is StepOutcome.ELEMENT_NOT_FOUND
    assert tracker.events == []


def test_failed_click_keeps_events(tracker):
    page = FakePage({"#go": {**SUBMIT, "click_error": True}})
    outcome = _run(page, tracker, {"type": "click", "selector": "#go"})
    assert outcome is StepOutcome.ACTION_FAILED
    assert [e.type for e in tracker.events] == ["focus", "click"]


def test_fill_records_focus_and_type(tracker):
    page = FakePage({"#email": {"box": box(0, 0, 200, 30)}})
    outcome = _run(page, tracker, {"type": "fill", "selector": "#email", "value": "a@b.c", "label": "Email"})
    assert outcome is StepOutcome.OK
    assert [e.type for e in tracker.events] == ["focus", "type"]
    assert tracker.events[1].text == "a@b.c"
    assert page.actions == [("fill", "#email", "a@b.c"), ("wait", 200)]


def test_fill_failure_is_swallowed(tracker):
    page = FakePage({"#email": {"box": box(0, 0, 200, 30), "fill_error": True}})
    outcome = _run(page, tracker, {"type": "fill", "selector": "#email", "value": "x"})
    assert outcome is StepOutcome.ACTION_FAILED


def test_wait_uses_duration_in_seconds(tracker, clock):
    page = FakePage(clock=clock)
    _run(page, tracker, {"type": "wait", "duration": 2000, "label": "Loading"})
    assert tracker.events[0].duration == 2.0
    assert page.actions == [("wait", 2000)]
    assert tracker.now() == 2.0


def test_wait_default(tracker):
    page = FakePage()
    _run(page, tracker, {"type": "wait"})
    assert tracker.events[0].duration == 1.0
    assert page.actions == [("wait", 1000)]


def test_scroll_uses_duration_as_pixels(tracker):
    page = FakePage()
    _run(page, tracker, {"type": "scroll", "duration": 600})
    event = tracker.events[0]
    assert (event.direction, event.amount) == ("down", 600)
    assert page.actions == [("wheel", 0, 600), ("wait", 300)]


def test_scroll_default_amount(tracker):
    page = FakePage()
    _run(page, tracker, {"type": "scroll"})
    assert tracker.events[0].amount == 300


def test_callout_holds(tracker):
    page = FakePage({"#hero": {"box": box(10, 10, 500, 300)}})
    outcome = _run(page, tracker, {"type": "callout", "selector": "#hero", "label": "New!"})
    assert outcome is StepOutcome.OK
    assert tracker.events[0].type == "callout"
    assert tracker.events[0].label == "New!"
    assert page.actions == [("wait", 1000)]


def test_callout_missing_element(tracker):
    outcome = _run(FakePage(), tracker, {"type": "callout", "selector": "#x", "label": "y"})
    assert outcome is StepOutcome.ELEMENT_NOT_FOUND
    assert tracker.events == []


def test_run_steps_continues_past_missing_elements(tracker):
    page = FakePage({"#ok": SUBMIT})
    steps = [
        WorkflowStep(type="goto", value="https://example.com"),
        WorkflowStep(type="click", selector="#missing"),
        WorkflowStep(type="click", selector="#ok"),
    ]
    seen = []
    outcomes = asyncio.run(run_steps(page, tracker, steps, on_step=lambda i, n, s: seen.append((i, n))))
    assert outcomes == [StepOutcome.OK, StepOutcome.ELEMENT_NOT_FOUND, StepOutcome.OK]
    assert seen == [(0, 3), (1, 3), (2, 3)]
    assert [e.type for e in tracker.events] == ["focus", "click"]


def test_run_steps_accepts_async_callback(tracker):
    seen = []

    async def on_step(i, n, step):
        seen.append(step.type)

    asyncio.run(run_steps(FakePage(), tracker, [WorkflowStep(type="wait", duration=1)], on_step=on_step))
    assert seen == ["wait"]


BAD_SELECTOR = {"wait_error": 'Unexpected token "[" while parsing css selector "#[bad"'}


@pytest.mark.parametrize("step", [
    {"type": "click", "selector": "#[bad"},
    {"type": "fill", "selector": "#[bad", "value": "x"},
    {"type": "callout", "selector": "#[bad", "label": "y"},
])
def test_rejected_selector_is_not_found(tracker, step):
    page = FakePage({"#[bad": BAD_SELECTOR})
    assert _run(page, tracker, step) is StepOutcome.ELEMENT_NOT_FOUND
    assert tracker.events == []
    assert page.actions == []
