from __future__ import annotations

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .canvas import RGBA, blend_mask


ClipRect = tuple[int, int, int, int]


def draw_glyph_run(
    dst: np.ndarray,
    text: str,
    face: ImageFont.FreeTypeFont,
    origin: tuple[float, float],
    color: RGBA,
    clip: ClipRect,
) -> None:
    """Rasterize `text` with its baseline-left at `origin`, clipped to `clip` (x0, y0, x1, y1)."""
    if not text:
        return
    x0 = max(0, clip[0])
    y0 = max(0, clip[1])
    x1 = min(dst.shape[1], clip[2])
    y1 = min(dst.shape[0], clip[3])
    if x1 <= x0 or y1 <= y0:
        return
    mask = Image.new("L", (x1 - x0, y1 - y0), 0)
    draw = ImageDraw.Draw(mask)
    draw.text((origin[0] - x0, origin[1] - y0), text, fill=255, font=face, anchor="ls")
    blend_mask(dst, x0, y0, np.asarray(mask, dtype=np.uint8), color)
