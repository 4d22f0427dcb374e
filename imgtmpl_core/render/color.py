from __future__ import annotations

import re

from imgtmpl_core.core.errors import ColorFormatError

from .canvas import RGBA

_HEX_DIGITS = re.compile(r"^[0-9a-fA-F]+$")


def parse_color(text: str) -> RGBA:
    """Parse `RRGGBB` (opaque) or `RRGGBBAA`; a leading `#` is accepted."""
    if not isinstance(text, str):
        raise ColorFormatError(f"color must be a string, got {type(text).__name__}")
    value = text.strip()
    if value.startswith("#"):
        value = value[1:]
    if len(value) not in (6, 8) or not _HEX_DIGITS.match(value):
        raise ColorFormatError(f"unknown color format: {text!r}")
    r = int(value[0:2], 16)
    g = int(value[2:4], 16)
    b = int(value[4:6], 16)
    a = int(value[6:8], 16) if len(value) == 8 else 255
    return (r, g, b, a)
