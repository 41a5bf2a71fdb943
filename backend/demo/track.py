"""Event track data model: the hand-off artifact between capture and render.

A track is ``{meta: {width, height, fps}, events: [...]}`` where every event
carries ``t`` (seconds since capture start) and a ``type`` tag. Optional
fields are left out of the JSON when unset so a load/dump cycle gives back
exactly what was written.
"""
from __future__ import annotations

import json
import os
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class Box(BaseModel):
    """Axis-aligned rectangle in capture-viewport pixels (top-left origin)."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    w: float
    h: float

    @property
    def center(self) -> Point:
        return Point(x=self.x + self.w / 2, y=self.y + self.h / 2)


class Point(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    t: float


class FocusEvent(_Event):
    type: Literal["focus"] = "focus"
    box: Box
    label: str | None = None


class ClickEvent(_Event):
    type: Literal["click"] = "click"
    point: Point
    box: Box | None = None
    label: str | None = None


class TypeEvent(_Event):
    type: Literal["type"] = "type"
    text: str
    box: Box | None = None
    label: str | None = None


class ScrollEvent(_Event):
    type: Literal["scroll"] = "scroll"
    direction: Literal["up", "down"]
    amount: float


class WaitEvent(_Event):
    type: Literal["wait"] = "wait"
    duration: float
    label: str | None = None


class CalloutEvent(_Event):
    type: Literal["callout"] = "callout"
    box: Box
    label: str


DemoEvent = Annotated[
    Union[FocusEvent, ClickEvent, TypeEvent, ScrollEvent, WaitEvent, CalloutEvent],
    Field(discriminator="type"),
]

# Events that carry a box (or may carry one).
BOXED_TYPES = ("focus", "click", "type", "callout")


class DemoMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int
    height: int
    fps: int


class DemoTrack(BaseModel):
    meta: DemoMeta
    events: list[DemoEvent] = Field(default_factory=list)


_track_adapter = TypeAdapter(DemoTrack)


def event_box(event: DemoEvent) -> Box | None:
    """Return the event's bounding box, or None for events without one."""
    return getattr(event, "box", None)


def dump_track(track: DemoTrack) -> dict:
    return track.model_dump(mode="json", exclude_none=True)


def load_track_dict(data: dict) -> DemoTrack:
    return _track_adapter.validate_python(data)


def serialize_track(track: DemoTrack) -> str:
    return json.dumps(dump_track(track), indent=2)


def deserialize_track(raw: str | bytes) -> DemoTrack:
    return load_track_dict(json.loads(raw))


def save_track(track: DemoTrack, path: str) -> None:
    """Write the track to ``path``, creating parent directories. Overwrites."""
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w") as f:
        f.write(serialize_track(track))


def load_track(path: str) -> DemoTrack:
    with open(path) as f:
        return deserialize_track(f.read())


# ─── Display windows ─────────────────────────────────────────────

# Seconds each event type stays "on screen" for annotation purposes.
DISPLAY_DURATIONS = {
    "click": 0.5,
    "callout": 2.0,
    "focus": 1.0,
    "type": 1.5,
}


def active_events(events: list[DemoEvent], t: float) -> list[DemoEvent]:
    """Events whose display window ``[event.t, event.t + duration]`` contains ``t``."""
    return [
        e for e in events
        if e.t <= t <= e.t + DISPLAY_DURATIONS.get(e.type, 0.0)
    ]


def active_callout(
    events: list[DemoEvent], t: float, duration: float = 2.0,
) -> CalloutEvent | None:
    """First callout visible at ``t``."""
    for event in events:
        if event.type == "callout" and event.t <= t <= event.t + duration:
            return event
    return None
