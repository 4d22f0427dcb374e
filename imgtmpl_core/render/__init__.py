from .canvas import RGBA, TRANSPARENT, blend_mask, blit, copy_into, fill, image_to_array, new_canvas, to_image
from .color import parse_color
from .glyph_run import draw_glyph_run

__all__ = [
    "RGBA",
    "TRANSPARENT",
    "blend_mask",
    "blit",
    "copy_into",
    "draw_glyph_run",
    "fill",
    "image_to_array",
    "new_canvas",
    "parse_color",
    "to_image",
]
