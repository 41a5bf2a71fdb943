from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from demo.track import Box

logger = logging.getLogger(__name__)

HEADLESS = os.getenv("HEADLESS", "1") != "0"
VISIBILITY_TIMEOUT_MS = int(os.getenv("VISIBILITY_TIMEOUT_MS", "5000"))


class StepOutcome(str, Enum):
    """Result of a best-effort interaction with the page."""

    OK = "ok"
    ELEMENT_NOT_FOUND = "element_not_found"
    ACTION_FAILED = "action_failed"


class RecordingSession:
    """A page whose context records video. ``video_path`` is set on close."""

    def __init__(self, page: Page):
        self.page = page
        self.video_path: str | None = None


@asynccontextmanager
async def recording_session(
    width: int, height: int, video_dir: str,
) -> AsyncIterator[RecordingSession]:
    """Launch Chromium with video recording into ``video_dir``.

    Closing the context finalizes the video file; the path Playwright
    reports for this page is stored on the session afterwards.
    """
    os.makedirs(video_dir, exist_ok=True)
    pw = await async_playwright().start()
    browser = await pw.chromium.launch(headless=HEADLESS)
    try:
        context = await browser.new_context(
            viewport={"width": width, "height": height},
            record_video_dir=video_dir,
            record_video_size={"width": width, "height": height},
        )
        page = await context.new_page()
        session = RecordingSession(page)
        try:
            yield session
        finally:
            video = page.video
            await context.close()
            if video:
                session.video_path = str(await video.path())
    finally:
        await browser.close()
        await pw.stop()


def to_box(bb: dict[str, Any] | None) -> Box | None:
    """Convert a Playwright bounding box dict into a Box."""
    if not bb:
        return None
    return Box(x=bb["x"], y=bb["y"], w=bb["width"], h=bb["height"])


async def wait_visible(locator: Locator, timeout_ms: int = VISIBILITY_TIMEOUT_MS) -> bool:
    """Wait for the element to become visible. A timeout is not an error."""
    try:
        await locator.wait_for(state="visible", timeout=timeout_ms)
        return True
    except PlaywrightTimeoutError:
        return False


async def resolve_element(
    page: Page, selector: str, timeout_ms: int = VISIBILITY_TIMEOUT_MS,
) -> tuple[Locator, Box | None]:
    """Locate the first element matching ``selector`` and read its box.

    Returns ``(locator, None)`` when the element never shows up or has
    no on-screen box, or when the selector itself is rejected.
    """
    locator = page.locator(selector).first
    try:
        visible = await wait_visible(locator, timeout_ms)
        if not visible and await locator.count() == 0:
            return locator, None
    except PlaywrightError as e:
        logger.warning("Could not resolve %s: %s", selector, e)
        return locator, None
    try:
        box = to_box(await locator.bounding_box(timeout=timeout_ms))
    except PlaywrightError as e:
        logger.warning("Could not read bounding box for %s: %s", selector, e)
        box = None
    return locator, box


async def click_locator(locator: Locator, timeout_ms: int = VISIBILITY_TIMEOUT_MS) -> StepOutcome:
    try:
        await locator.click(timeout=timeout_ms)
    except PlaywrightError as e:
        logger.warning("Click failed: %s", e)
        return StepOutcome.ACTION_FAILED
    return StepOutcome.OK


async def fill_locator(
    locator: Locator, text: str, timeout_ms: int = VISIBILITY_TIMEOUT_MS,
) -> StepOutcome:
    try:
        await locator.fill(text, timeout=timeout_ms)
    except PlaywrightError as e:
        logger.warning("Fill failed: %s", e)
        return StepOutcome.ACTION_FAILED
    return StepOutcome.OK


async def scroll_page(page: Page, direction: str, amount: float) -> None:
    """Scroll the page using the mouse wheel."""
    delta_y = amount if direction == "down" else -amount
    await page.mouse.wheel(0, delta_y)


async def navigate(page: Page, url: str, settle_ms: int = 500) -> None:
    """Open ``url`` and wait for DOM content plus a short settle delay."""
    await page.goto(url, wait_until="domcontentloaded")
    await page.wait_for_timeout(settle_ms)
