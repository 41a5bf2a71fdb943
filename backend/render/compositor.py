"""Per-frame overlay and camera decisions for the demo render.

``plan_frame(frame, track, options)`` depends on nothing but its three
arguments, so a render can be reproduced (or unit tested) without touching
the video writer. ``render.demo_video`` turns these plans into pixels.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field

from demo.track import Box, DemoTrack, Point
from demo.workflow import RenderOptions
from render.camera import IDENTITY, CameraTarget, CameraTransform, build_camera_targets, camera_transform
from render.cursor import CursorKeyframe, build_cursor_keyframes, cursor_state, viewport_center
from render.easing import ease_in_cubic, ease_out_cubic, interpolate

CLICK_WINDOW_FRAMES = 20
RIPPLE_FRAMES = 15
CALLOUT_FRAMES = 60
CURSOR_PULSE_FRAMES = 10
END_BUFFER_SECONDS = 3
EMPTY_TRACK_SECONDS = 30


@dataclass(frozen=True)
class CursorOverlay:
    point: Point
    is_clicking: bool
    scale: float


@dataclass(frozen=True)
class RippleOverlay:
    point: Point
    start_frame: int
    scale: float
    opacity: float


@dataclass(frozen=True)
class CalloutOverlay:
    box: Box
    label: str
    start_frame: int
    slide_in: float
    label_opacity: float
    highlight_opacity: float


@dataclass(frozen=True)
class FramePlan:
    frame: int
    camera: CameraTransform
    cursor: CursorOverlay | None
    ripples: list[RippleOverlay] = field(default_factory=list)
    callouts: list[CalloutOverlay] = field(default_factory=list)


@dataclass(frozen=True)
class MotionPlan:
    """Everything derived from the track once per render."""

    targets: list[CameraTarget]
    keyframes: list[CursorKeyframe]
    clicks: list[tuple[int, Point]]
    callouts: list[tuple[int, Box, str]]


def duration_in_frames(track: DemoTrack) -> int:
    """Last event time plus a fixed buffer, in frames at the track fps."""
    if track.events:
        seconds = track.events[-1].t + END_BUFFER_SECONDS
    else:
        seconds = EMPTY_TRACK_SECONDS
    return math.ceil(seconds * track.meta.fps)


def build_motion_plan(track: DemoTrack, options: RenderOptions) -> MotionPlan:
    fps = track.meta.fps
    events = track.events
    return MotionPlan(
        targets=build_camera_targets(events, track.meta) if options.enable_zoom else [],
        keyframes=(
            build_cursor_keyframes(events, fps, origin=viewport_center(track.meta))
            if options.show_cursor else []
        ),
        clicks=[(math.floor(e.t * fps), e.point) for e in events if e.type == "click"],
        callouts=[(math.floor(e.t * fps), e.box, e.label) for e in events if e.type == "callout"],
    )


# ─── Overlay animations ─────────────────────────────────────────


def cursor_scale(frame: int, clicking: bool) -> float:
    """Short pulse while a click is in progress."""
    if not clicking:
        return 1.0
    return interpolate(frame % CURSOR_PULSE_FRAMES, [0, 5, 10], [1, 1.2, 1], easing=ease_out_cubic)


def ripple_animation(frame: int, start_frame: int, point: Point) -> RippleOverlay | None:
    """Ripple state on its own clock: visible for RIPPLE_FRAMES after it starts."""
    progress = frame - start_frame
    if progress < 0 or progress > RIPPLE_FRAMES:
        return None
    p = progress / RIPPLE_FRAMES
    return RippleOverlay(
        point=point,
        start_frame=start_frame,
        scale=interpolate(p, [0, 1], [0.5, 2.5], easing=ease_out_cubic),
        opacity=interpolate(p, [0, 0.3, 1], [0.8, 0.5, 0], easing=ease_out_cubic),
    )


def callout_animation(frame: int, start_frame: int, box: Box, label: str) -> CalloutOverlay | None:
    progress = frame - start_frame
    if progress < 0 or progress > CALLOUT_FRAMES:
        return None
    p = progress / CALLOUT_FRAMES
    return CalloutOverlay(
        box=box,
        label=label,
        start_frame=start_frame,
        slide_in=interpolate(p, [0, 0.1], [20, 0], easing=ease_out_cubic, extrapolate_right="clamp"),
        label_opacity=interpolate(p, [0.8, 1], [1, 0], easing=ease_in_cubic, extrapolate_left="clamp"),
        highlight_opacity=interpolate(p, [0, 0.1, 0.9, 1], [0, 0.3, 0.3, 0], easing=ease_out_cubic),
    )


# ─── Frame planning ─────────────────────────────────────────────


def active_clicks(frame: int, motion: MotionPlan) -> list[tuple[int, Point]]:
    return [(s, p) for s, p in motion.clicks if s <= frame <= s + CLICK_WINDOW_FRAMES]


def active_callouts(frame: int, motion: MotionPlan) -> list[tuple[int, Box, str]]:
    return [c for c in motion.callouts if c[0] <= frame <= c[0] + CALLOUT_FRAMES]


def plan_frame(
    frame: int,
    track: DemoTrack,
    options: RenderOptions,
    motion: MotionPlan | None = None,
) -> FramePlan:
    """Decide the camera transform and overlays for one output frame.

    ``motion`` may be passed in when it was already built from the same
    track and options for this render.
    """
    if motion is None:
        motion = build_motion_plan(track, options)

    camera = camera_transform(frame, motion.targets, track.meta) if options.enable_zoom else IDENTITY

    cursor = None
    if options.show_cursor:
        state = cursor_state(frame, motion.keyframes)
        cursor = CursorOverlay(
            point=state.point,
            is_clicking=state.is_clicking,
            scale=cursor_scale(frame, state.is_clicking),
        )

    ripples: list[RippleOverlay] = []
    if options.show_ripples:
        for start, point in active_clicks(frame, motion):
            ripple = ripple_animation(frame, start, point)
            if ripple is not None:
                ripples.append(ripple)

    callouts: list[CalloutOverlay] = []
    if options.show_callouts:
        for start, box, label in active_callouts(frame, motion):
            callout = callout_animation(frame, start, box, label)
            if callout is not None:
                callouts.append(callout)

    return FramePlan(frame=frame, camera=camera, cursor=cursor, ripples=ripples, callouts=callouts)
