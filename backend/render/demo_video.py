"""Render phase: composite camera motion and overlays onto the raw capture.

The event track on disk is the only input besides the raw video, so this
can run in a different process from the capture (see celery_app).
"""
from __future__ import annotations

import logging
import os
from typing import Any

from moviepy import VideoClip, VideoFileClip

from demo.track import load_track
from demo.workflow import RenderOptions
from render.compositor import build_motion_plan, duration_in_frames, plan_frame
from render.overlays import get_font, compose_frame

logger = logging.getLogger(__name__)

RENDER_CODEC = os.getenv("RENDER_CODEC", "libx264")


class EventTrackNotFoundError(FileNotFoundError):
    """The event track file for a render does not exist."""


def render_demo_video(
    video_path: str,
    events_path: str,
    output_path: str,
    options: RenderOptions | None = None,
) -> dict[str, Any]:
    """Render ``output_path`` from a raw capture and its event track.

    Returns dict with output_path, duration_in_frames, duration_in_seconds.
    """
    if not os.path.exists(events_path):
        raise EventTrackNotFoundError(f"Event track not found: {events_path}")
    if not os.path.exists(video_path):
        raise FileNotFoundError(f"Video not found: {video_path}")

    options = options or RenderOptions()
    track = load_track(events_path)
    fps = track.meta.fps
    total_frames = duration_in_frames(track)
    motion = build_motion_plan(track, options)
    font = get_font()

    parent = os.path.dirname(output_path)
    if parent:
        os.makedirs(parent, exist_ok=True)

    logger.info(
        "Rendering %s: %d frames at %d fps (%d events)",
        output_path, total_frames, fps, len(track.events),
    )

    video = VideoFileClip(video_path)
    # Hold the last captured frame if the track outlasts the recording
    last_t = max(0.0, video.duration - 0.05)

    def make_frame(t: float):
        frame = int(round(t * fps))
        base = video.get_frame(min(t, last_t))
        plan = plan_frame(frame, track, options, motion)
        return compose_frame(base, plan, track.meta, font=font)

    clip = VideoClip(make_frame, duration=total_frames / fps)
    try:
        clip.write_videofile(
            output_path,
            fps=fps,
            codec=RENDER_CODEC,
            audio=False,
            logger=None,  # suppress moviepy progress bar
        )
    finally:
        clip.close()
        video.close()

    return {
        "output_path": output_path,
        "duration_in_frames": total_frames,
        "duration_in_seconds": total_frames / fps,
    }
