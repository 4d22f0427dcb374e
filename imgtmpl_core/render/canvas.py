from __future__ import annotations

import numpy as np
from PIL import Image


RGBA = tuple[int, int, int, int]
TRANSPARENT: RGBA = (0, 0, 0, 0)


def new_canvas(width: int, height: int, color: RGBA = TRANSPARENT) -> np.ndarray:
    if width <= 0 or height <= 0:
        raise ValueError("canvas width and height must be > 0")
    canvas = np.zeros((height, width, 4), dtype=np.uint8)
    canvas[:, :] = np.asarray(color, dtype=np.uint8)
    return canvas


def fill(dst: np.ndarray, color: RGBA) -> None:
    dst[:, :] = np.asarray(color, dtype=np.uint8)


def image_to_array(img: Image.Image) -> np.ndarray:
    if img.mode != "RGBA":
        img = img.convert("RGBA")
    return np.asarray(img, dtype=np.uint8)


def to_image(canvas: np.ndarray) -> Image.Image:
    return Image.fromarray(np.ascontiguousarray(canvas), mode="RGBA")


def _clip_region(dst: np.ndarray, x0: int, y0: int, w: int, h: int) -> tuple[int, int, int, int, int, int] | None:
    """Intersect a `w x h` patch placed at (x0, y0) with `dst`.

    Returns (dst_x0, dst_y0, dst_x1, dst_y1, src_x0, src_y0) or None if empty.
    """
    dx0 = max(0, x0)
    dy0 = max(0, y0)
    dx1 = min(dst.shape[1], x0 + w)
    dy1 = min(dst.shape[0], y0 + h)
    if dx1 <= dx0 or dy1 <= dy0:
        return None
    return dx0, dy0, dx1, dy1, dx0 - x0, dy0 - y0


def copy_into(dst: np.ndarray, src: np.ndarray, x0: int = 0, y0: int = 0) -> None:
    """Replace destination pixels with `src` (no blending)."""
    h, w, _ = src.shape
    region = _clip_region(dst, x0, y0, w, h)
    if region is None:
        return
    dx0, dy0, dx1, dy1, sx0, sy0 = region
    dst[dy0:dy1, dx0:dx1] = src[sy0 : sy0 + (dy1 - dy0), sx0 : sx0 + (dx1 - dx0)]


def blit(dst: np.ndarray, src: np.ndarray, x0: int = 0, y0: int = 0) -> None:
    """Source-over composite of an RGBA patch onto `dst`."""
    h, w, _ = src.shape
    region = _clip_region(dst, x0, y0, w, h)
    if region is None:
        return
    dx0, dy0, dx1, dy1, sx0, sy0 = region
    patch = src[sy0 : sy0 + (dy1 - dy0), sx0 : sx0 + (dx1 - dx0)]
    src_alpha = patch[:, :, 3].astype(np.float32) / 255.0
    _composite_over(dst[dy0:dy1, dx0:dx1], patch[:, :, :3].astype(np.float32), src_alpha)


def blend_mask(dst: np.ndarray, x0: int, y0: int, mask: np.ndarray, color: RGBA) -> None:
    """Composite a uniform `color` through an 8-bit coverage mask."""
    h, w = mask.shape
    region = _clip_region(dst, x0, y0, w, h)
    if region is None:
        return
    dx0, dy0, dx1, dy1, sx0, sy0 = region
    cov = mask[sy0 : sy0 + (dy1 - dy0), sx0 : sx0 + (dx1 - dx0)].astype(np.float32) / 255.0
    src_alpha = (color[3] / 255.0) * cov
    if not np.any(src_alpha > 0):
        return
    src_rgb = np.broadcast_to(np.asarray(color[:3], dtype=np.float32), cov.shape + (3,))
    _composite_over(dst[dy0:dy1, dx0:dx1], src_rgb, src_alpha)


def _composite_over(patch: np.ndarray, src_rgb: np.ndarray, src_alpha: np.ndarray) -> None:
    dst_rgb = patch[:, :, :3].astype(np.float32)
    dst_alpha = patch[:, :, 3].astype(np.float32) / 255.0
    out_alpha = src_alpha + dst_alpha * (1.0 - src_alpha)
    out_rgb_num = src_rgb * src_alpha[:, :, None] + dst_rgb * dst_alpha[:, :, None] * (1.0 - src_alpha[:, :, None])
    safe_alpha = np.where(out_alpha > 1e-6, out_alpha, 1.0)
    out_rgb = out_rgb_num / safe_alpha[:, :, None]
    patch[:, :, :3] = np.clip(np.rint(out_rgb), 0, 255).astype(np.uint8)
    patch[:, :, 3] = np.clip(np.rint(out_alpha * 255.0), 0, 255).astype(np.uint8)
