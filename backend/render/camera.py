"""Virtual camera path: zoom/pan targets derived from boxed events.

Targets are recomputed from the event track on every render; nothing here
keeps state between calls.
"""
from __future__ import annotations

import math
from bisect import bisect_right
from dataclasses import dataclass

from demo.track import Box, DemoEvent, DemoMeta, event_box
from render.easing import ease_out_cubic, interpolate, lerp

TRANSITION_FRAMES = 15
DEFAULT_HOLD_SECONDS = 2
ZOOM_PADDING = 0.2
MIN_ZOOM = 1.0
MAX_ZOOM = 2.5


@dataclass(frozen=True)
class CameraTarget:
    start_frame: int
    end_frame: int
    box: Box
    zoom: float


@dataclass(frozen=True)
class CameraTransform:
    zoom: float
    translate_x: float
    translate_y: float


IDENTITY = CameraTransform(zoom=1.0, translate_x=0.0, translate_y=0.0)


def calculate_zoom(
    box: Box, viewport_width: float, viewport_height: float, padding: float = ZOOM_PADDING,
) -> float:
    """Zoom that fits the padded box on both axes, clamped to [1.0, 2.5]."""
    target_w = box.w * (1 + padding * 2)
    target_h = box.h * (1 + padding * 2)
    zoom_x = viewport_width / target_w if target_w > 0 else math.inf
    zoom_y = viewport_height / target_h if target_h > 0 else math.inf
    zoom = min(zoom_x, zoom_y)
    return max(MIN_ZOOM, min(MAX_ZOOM, zoom))


def build_camera_targets(events: list[DemoEvent], meta: DemoMeta) -> list[CameraTarget]:
    """One target per boxed event, held until the next boxed event starts."""
    boxed = [(e, event_box(e)) for e in events]
    boxed = [(e, box) for e, box in boxed if box is not None]

    targets: list[CameraTarget] = []
    for i, (event, box) in enumerate(boxed):
        start_frame = math.floor(event.t * meta.fps)
        if i + 1 < len(boxed):
            next_start = math.floor(boxed[i + 1][0].t * meta.fps)
            # events sharing a frame still get a one-frame range
            end_frame = max(start_frame, next_start - 1)
        else:
            end_frame = start_frame + meta.fps * DEFAULT_HOLD_SECONDS
        targets.append(CameraTarget(
            start_frame=start_frame,
            end_frame=end_frame,
            box=box,
            zoom=calculate_zoom(box, meta.width, meta.height),
        ))
    return targets


def transform_for_target(target: CameraTarget, meta: DemoMeta) -> CameraTransform:
    """Centre the target box in the viewport at the target's zoom."""
    center = target.box.center
    return CameraTransform(
        zoom=target.zoom,
        translate_x=meta.width / 2 - center.x,
        translate_y=meta.height / 2 - center.y,
    )


def blend(a: CameraTransform, b: CameraTransform, progress: float) -> CameraTransform:
    return CameraTransform(
        zoom=lerp(a.zoom, b.zoom, progress),
        translate_x=lerp(a.translate_x, b.translate_x, progress),
        translate_y=lerp(a.translate_y, b.translate_y, progress),
    )


def camera_transform(
    frame: int,
    targets: list[CameraTarget],
    meta: DemoMeta,
    transition_frames: int = TRANSITION_FRAMES,
) -> CameraTransform:
    """Camera transform for ``frame``.

    Holds the most recent target (the first one before it starts, the last
    one after it ends) and eases into each following target over the
    ``transition_frames`` frames leading up to its start.
    """
    if not targets:
        return IDENTITY

    starts = [t.start_frame for t in targets]
    current = bisect_right(starts, frame) - 1
    if current < 0:
        return transform_for_target(targets[0], meta)

    upcoming = current + 1
    if upcoming < len(targets):
        prev, nxt = targets[current], targets[upcoming]
        window_start = max(prev.start_frame, nxt.start_frame - transition_frames)
        if window_start <= frame < nxt.start_frame:
            progress = interpolate(
                frame,
                [window_start, nxt.start_frame],
                [0, 1],
                easing=ease_out_cubic,
                extrapolate_left="clamp",
                extrapolate_right="clamp",
            )
            return blend(transform_for_target(prev, meta), transform_for_target(nxt, meta), progress)

    return transform_for_target(targets[current], meta)


def map_point(x: float, y: float, transform: CameraTransform, meta: DemoMeta) -> tuple[float, float]:
    """Where a capture-space point lands after the camera transform is applied."""
    cx, cy = meta.width / 2, meta.height / 2
    return (
        cx + transform.zoom * (x - cx + transform.translate_x),
        cy + transform.zoom * (y - cy + transform.translate_y),
    )
