"""Shared fakes: a scripted Playwright page and a recording session that
writes a placeholder video file instead of launching a browser."""
from __future__ import annotations

import os
from contextlib import asynccontextmanager

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from db.models import InMemoryJobStore
from demo.track import DemoMeta
from demo.tracker import Tracker
from tools.browser_tools import RecordingSession


class FakeClock:
    def __init__(self, start: float = 100.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str, element: dict | None):
        self.page = page
        self.selector = selector
        self.element = element

    @property
    def first(self) -> "FakeLocator":
        return self

    async def wait_for(self, state: str = "visible", timeout: float | None = None) -> None:
        if self.element is not None and self.element.get("wait_error"):
            raise PlaywrightError(self.element["wait_error"])
        if self.element is None or not self.element.get("visible", True):
            raise PlaywrightTimeoutError(f"Timeout waiting for {self.selector}")

    async def count(self) -> int:
        return 0 if self.element is None else 1

    async def bounding_box(self, timeout: float | None = None):
        if self.element is None:
            raise PlaywrightError(f"No element for {self.selector}")
        return self.element.get("box")

    async def click(self, timeout: float | None = None) -> None:
        if self.element.get("click_error"):
            raise PlaywrightError("Element is not attached to the DOM")
        self.page.actions.append(("click", self.selector))

    async def fill(self, text: str, timeout: float | None = None) -> None:
        if self.element.get("fill_error"):
            raise PlaywrightError("Element is not an <input>")
        self.page.actions.append(("fill", self.selector, text))


class FakeMouse:
    def __init__(self, page: "FakePage"):
        self.page = page

    async def wheel(self, delta_x: float, delta_y: float) -> None:
        self.page.actions.append(("wheel", delta_x, delta_y))


class FakePage:
    """Page stand-in. ``elements`` maps selector -> {box, visible, wait_error, click_error, fill_error}.

    ``wait_for_timeout`` advances the attached clock instead of sleeping.
    """

    def __init__(self, elements: dict | None = None, clock: FakeClock | None = None,
                 goto_error: Exception | None = None):
        self.elements = elements or {}
        self.clock = clock
        self.goto_error = goto_error
        self.actions: list[tuple] = []
        self.mouse = FakeMouse(self)

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector, self.elements.get(selector))

    async def goto(self, url: str, wait_until: str | None = None) -> None:
        if self.goto_error is not None:
            raise self.goto_error
        self.actions.append(("goto", url))

    async def wait_for_timeout(self, ms: float) -> None:
        self.actions.append(("wait", ms))
        if self.clock is not None:
            self.clock.advance(ms / 1000)


def box(x, y, w, h) -> dict:
    return {"x": x, "y": y, "width": w, "height": h}


def make_session_factory(page: FakePage, write_video: bool = True):
    """Recording session factory that hands out ``page`` and drops a fake .webm."""
    calls: list[tuple[int, int, str]] = []

    @asynccontextmanager
    async def factory(width: int, height: int, video_dir: str):
        calls.append((width, height, video_dir))
        os.makedirs(video_dir, exist_ok=True)
        session = RecordingSession(page)
        try:
            yield session
        finally:
            if write_video:
                path = os.path.join(video_dir, "page@abc123.webm")
                with open(path, "wb") as f:
                    f.write(b"webm")
                session.video_path = path

    factory.calls = calls
    return factory


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def meta() -> DemoMeta:
    return DemoMeta(width=1920, height=1080, fps=30)


@pytest.fixture
def tracker(meta, clock) -> Tracker:
    return Tracker(meta, clock=clock)


@pytest.fixture
def store() -> InMemoryJobStore:
    return InMemoryJobStore()
