from __future__ import annotations

import math
from bisect import bisect_right
from dataclasses import dataclass

from demo.track import DemoEvent, DemoMeta, Point
from render.easing import ease_out_cubic, interpolate, lerp

MOVE_FRAMES = 12
CLICK_FLAG_FRAMES = 6
DEFAULT_POINT = Point(x=960, y=540)


@dataclass(frozen=True)
class CursorKeyframe:
    frame: int
    point: Point
    is_click: bool


@dataclass(frozen=True)
class CursorState:
    point: Point
    is_clicking: bool


def viewport_center(meta: DemoMeta) -> Point:
    return Point(x=meta.width / 2, y=meta.height / 2)


def _event_point(event: DemoEvent) -> Point | None:
    if event.type == "click":
        return event.point
    if event.type in ("focus", "type", "callout") and event.box is not None:
        return event.box.center
    return None


def build_cursor_keyframes(
    events: list[DemoEvent], fps: int, origin: Point = DEFAULT_POINT,
) -> list[CursorKeyframe]:
    """Seed keyframe at ``origin`` on frame 0, then one per positioned event."""
    keyframes = [CursorKeyframe(frame=0, point=origin, is_click=False)]
    for event in events:
        point = _event_point(event)
        if point is None:
            continue
        keyframes.append(CursorKeyframe(
            frame=math.floor(event.t * fps),
            point=point,
            is_click=event.type == "click",
        ))
    return keyframes


def is_clicking(frame: int, keyframes: list[CursorKeyframe], window: int = CLICK_FLAG_FRAMES) -> bool:
    return any(kf.is_click and abs(frame - kf.frame) < window for kf in keyframes)


def cursor_state(
    frame: int, keyframes: list[CursorKeyframe], move_frames: int = MOVE_FRAMES,
) -> CursorState:
    """Cursor position for ``frame``.

    The cursor sits on the previous keyframe and only moves during the last
    ``move_frames`` frames before the next one, easing out as it arrives.
    When several keyframes share a frame, the last one recorded wins.
    """
    if not keyframes:
        return CursorState(point=DEFAULT_POINT, is_clicking=False)

    clicking = is_clicking(frame, keyframes)

    frames = [kf.frame for kf in keyframes]
    idx = bisect_right(frames, frame)
    prev = keyframes[max(idx - 1, 0)]
    if idx >= len(keyframes):
        return CursorState(point=prev.point, is_clicking=clicking)
    nxt = keyframes[idx]

    move_start = max(prev.frame, nxt.frame - move_frames)
    if frame < move_start:
        return CursorState(point=prev.point, is_clicking=clicking)

    progress = interpolate(
        frame,
        [move_start, nxt.frame],
        [0, 1],
        easing=ease_out_cubic,
        extrapolate_left="clamp",
        extrapolate_right="clamp",
    )
    return CursorState(
        point=Point(x=lerp(prev.point.x, nxt.point.x, progress), y=lerp(prev.point.y, nxt.point.y, progress)),
        is_clicking=clicking,
    )
