from __future__ import annotations

import time
from typing import Callable, Literal

from demo.track import (
    Box,
    CalloutEvent,
    ClickEvent,
    DemoEvent,
    DemoMeta,
    DemoTrack,
    FocusEvent,
    Point,
    ScrollEvent,
    TypeEvent,
    WaitEvent,
    save_track,
)


class Tracker:
    """Records demo events with timestamps relative to construction time.

    Every ``add_*`` call stamps the event with ``now()`` at call time, so
    callers should report an interaction immediately before performing it.
    One tracker belongs to exactly one capture session.
    """

    def __init__(self, meta: DemoMeta, clock: Callable[[], float] = time.monotonic):
        self.meta = meta
        self.events: list[DemoEvent] = []
        self._clock = clock
        self._t0 = clock()

    def now(self) -> float:
        return self._clock() - self._t0

    def add_focus(self, box: Box, label: str | None = None) -> None:
        self.events.append(FocusEvent(t=self.now(), box=box, label=label))

    def add_click(self, point: Point, box: Box | None = None, label: str | None = None) -> None:
        self.events.append(ClickEvent(t=self.now(), point=point, box=box, label=label))

    def add_type(self, text: str, box: Box | None = None, label: str | None = None) -> None:
        self.events.append(TypeEvent(t=self.now(), text=text, box=box, label=label))

    def add_scroll(self, direction: Literal["up", "down"], amount: float) -> None:
        self.events.append(ScrollEvent(t=self.now(), direction=direction, amount=amount))

    def add_wait(self, duration: float, label: str | None = None) -> None:
        self.events.append(WaitEvent(t=self.now(), duration=duration, label=label))

    def add_callout(self, box: Box, label: str) -> None:
        self.events.append(CalloutEvent(t=self.now(), box=box, label=label))

    def get_track(self) -> DemoTrack:
        return DemoTrack(meta=self.meta, events=list(self.events))

    def save(self, path: str) -> None:
        save_track(self.get_track(), path)
