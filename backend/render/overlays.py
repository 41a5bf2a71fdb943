"""Pillow rasterisation of a FramePlan onto a captured video frame."""
from __future__ import annotations

import os

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from demo.track import DemoMeta
from render.camera import CameraTransform
from render.compositor import CalloutOverlay, CursorOverlay, FramePlan, RippleOverlay

BACKGROUND = (26, 26, 26)
ACCENT_COLOR = (59, 130, 246)  # #3B82F6 blue
RIPPLE_BASE_RADIUS = 20
CURSOR_SIZE = 28
LABEL_PADDING = (16, 8)
LABEL_GAP = 12


def get_font(size: int = 16) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Get a font for labels, trying common system paths."""
    candidates = [
        "/System/Library/Fonts/Helvetica.ttc",
        "/Library/Fonts/Arial.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    ]
    for path in candidates:
        if os.path.exists(path):
            try:
                return ImageFont.truetype(path, size)
            except OSError:
                continue
    return ImageFont.load_default()


def draw_cursor(draw: ImageDraw.ImageDraw, cursor: CursorOverlay) -> None:
    """Classic pointer (white arrow, black outline) with its tip at the cursor point."""
    size = CURSOR_SIZE * cursor.scale
    points = [
        (0, 0),
        (0, size),
        (size * 0.35, size * 0.7),
        (size * 0.55, size),
        (size * 0.7, size * 0.9),
        (size * 0.45, size * 0.6),
        (size * 0.75, size * 0.55),
    ]
    cx, cy = cursor.point.x, cursor.point.y
    polygon = [(cx + px, cy + py) for px, py in points]
    draw.polygon(polygon, fill=(255, 255, 255, 240), outline=(0, 0, 0, 255))


def draw_ripple(draw: ImageDraw.ImageDraw, ripple: RippleOverlay) -> None:
    radius = RIPPLE_BASE_RADIUS * ripple.scale
    alpha = int(255 * 0.5 * max(0.0, min(1.0, ripple.opacity)))
    if alpha <= 0:
        return
    x, y = ripple.point.x, ripple.point.y
    r, g, b = ACCENT_COLOR
    draw.ellipse([x - radius, y - radius, x + radius, y + radius], fill=(r, g, b, alpha))


def draw_callout(draw: ImageDraw.ImageDraw, callout: CalloutOverlay, font) -> None:
    box = callout.box
    r, g, b = ACCENT_COLOR
    fill_alpha = int(255 * max(0.0, min(1.0, callout.highlight_opacity)))
    draw.rounded_rectangle(
        [box.x - 4, box.y - 4, box.x + box.w + 4, box.y + box.h + 4],
        radius=8,
        fill=(r, g, b, fill_alpha),
        outline=(r, g, b, 204),
        width=3,
    )

    label_alpha = max(0.0, min(1.0, callout.label_opacity))
    if label_alpha <= 0 or not callout.label:
        return
    left, top, right, bottom = font.getbbox(callout.label)
    text_w, text_h = right - left, bottom - top
    pad_x, pad_y = LABEL_PADDING
    x0 = box.x + box.w + LABEL_GAP + callout.slide_in
    y0 = box.y + box.h / 2 - (text_h + pad_y * 2) / 2
    draw.rounded_rectangle(
        [x0, y0, x0 + text_w + pad_x * 2, y0 + text_h + pad_y * 2],
        radius=6,
        fill=(0, 0, 0, int(217 * label_alpha)),
    )
    draw.text(
        (x0 + pad_x - left, y0 + pad_y - top),
        callout.label,
        fill=(255, 255, 255, int(255 * label_alpha)),
        font=font,
    )


def apply_camera(img: Image.Image, camera: CameraTransform, meta: DemoMeta) -> Image.Image:
    """Scale about the viewport centre, then translate, as one affine warp."""
    if camera.zoom == 1 and camera.translate_x == 0 and camera.translate_y == 0:
        return img
    cx, cy = meta.width / 2, meta.height / 2
    inv = 1.0 / camera.zoom
    # PIL maps each output pixel back to its source pixel
    data = (
        inv, 0.0, cx - cx * inv - camera.translate_x,
        0.0, inv, cy - cy * inv - camera.translate_y,
    )
    fill = BACKGROUND + (255,) if img.mode == "RGBA" else BACKGROUND
    return img.transform(
        img.size,
        Image.Transform.AFFINE,
        data,
        resample=Image.Resampling.BILINEAR,
        fillcolor=fill,
    )


def compose_frame(base: np.ndarray, plan: FramePlan, meta: DemoMeta, font=None) -> np.ndarray:
    """Draw the plan's overlays on ``base`` and apply the camera. Returns RGB uint8."""
    img = Image.fromarray(np.asarray(base, dtype=np.uint8)).convert("RGBA")
    if img.size != (meta.width, meta.height):
        img = img.resize((meta.width, meta.height), Image.Resampling.BILINEAR)

    if plan.callouts or plan.ripples or plan.cursor is not None:
        layer = Image.new("RGBA", img.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(layer)
        if plan.callouts:
            font = font or get_font()
            for callout in plan.callouts:
                draw_callout(draw, callout, font)
        for ripple in plan.ripples:
            draw_ripple(draw, ripple)
        if plan.cursor is not None:
            draw_cursor(draw, plan.cursor)
        img = Image.alpha_composite(img, layer)

    img = apply_camera(img, plan.camera, meta)
    return np.array(img.convert("RGB"))
