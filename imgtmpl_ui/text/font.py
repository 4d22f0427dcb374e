from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Mapping

from PIL import ImageFont

from imgtmpl_core.core.errors import GlyphMetricsError, TemplateLoadError
from imgtmpl_core.core.font_registry import FontProgram, FontRegistry
from imgtmpl_core.render.canvas import RGBA
from imgtmpl_core.render.color import parse_color

LOGGER = logging.getLogger(__name__)

DEFAULT_TEXT_COLOR = "000000"


@dataclass(frozen=True)
class RuneMetrics:
    """Pixel metrics of one glyph at a given size (y down, baseline at 0)."""

    ascent: float
    descent: float
    advance: float


@dataclass(eq=False)
class TextFont:
    """Font family name, pixel size and color.

    Identity matters: runes drawn in one batch must share the same TextFont
    object, so equality is by identity.
    """

    name: str
    size: int
    color: str = DEFAULT_TEXT_COLOR
    _program: FontProgram | None = field(default=None, init=False, repr=False)
    _rgba: RGBA | None = field(default=None, init=False, repr=False)
    _face: ImageFont.FreeTypeFont | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise TemplateLoadError("font `name` must be a non-empty string")
        if isinstance(self.size, bool) or not isinstance(self.size, int) or self.size <= 0:
            raise TemplateLoadError(f"font `size` must be a positive integer, got {self.size!r}")

    @classmethod
    def from_spec(cls, raw: Any, label: str = "font") -> "TextFont":
        if not isinstance(raw, Mapping):
            raise TemplateLoadError(f"`{label}` must be an object with name/size/color")
        values = {str(k).lower(): v for k, v in raw.items()}
        if "name" not in values:
            raise TemplateLoadError(f"`{label}` is missing `name`")
        size = values.get("size")
        if isinstance(size, float) and size.is_integer():
            size = int(size)
        return cls(name=values["name"], size=size, color=values.get("color", DEFAULT_TEXT_COLOR))

    def init(self, fonts: FontRegistry) -> None:
        self._rgba = parse_color(self.color)
        self._program = fonts.get(self.name)
        self._face = self._program.face(self.size)
        LOGGER.debug("text font ready: name=%s size=%d color=%s", self.name, self.size, self.color)

    @property
    def program(self) -> FontProgram:
        if self._program is None:
            raise RuntimeError(f"font `{self.name}` used before init")
        return self._program

    @property
    def face(self) -> ImageFont.FreeTypeFont:
        if self._face is None:
            raise RuntimeError(f"font `{self.name}` used before init")
        return self._face

    @property
    def rgba(self) -> RGBA:
        if self._rgba is None:
            raise RuntimeError(f"font `{self.name}` used before init")
        return self._rgba

    def rune_metrics(self, char: str) -> RuneMetrics:
        program = self.program
        glyph = program.glyph_metrics(char)
        if glyph is None:
            raise GlyphMetricsError(char, self.name)
        upm = program.units_per_em
        return RuneMetrics(
            ascent=glyph.y_max * self.size / upm,
            descent=-glyph.y_min * self.size / upm,
            advance=glyph.advance * self.size / upm,
        )
