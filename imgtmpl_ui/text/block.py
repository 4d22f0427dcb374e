from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
from typing import Any, Callable, Literal, Mapping, TypeVar

import numpy as np

from imgtmpl_core.core.errors import TemplateLoadError, TextBlockError
from imgtmpl_core.core.resources import Resources
from imgtmpl_core.render.glyph_run import draw_glyph_run

from ..component_schema import Rect, RenderContext, require
from .font import TextFont
from .span import TextRune, TextSpan

LOGGER = logging.getLogger(__name__)

HorizontalAlign = Literal["left", "center", "right"]
VerticalAlign = Literal["top", "middle", "bottom"]
HORIZONTAL_ALIGNS = ("left", "center", "right")
VERTICAL_ALIGNS = ("top", "middle", "bottom")

T = TypeVar("T")


@dataclass(frozen=True)
class TextBlockAlignment:
    line_height: int
    max_lines: int = 1
    horizontal: HorizontalAlign = "center"
    vertical: VerticalAlign = "top"

    def __post_init__(self) -> None:
        if self.line_height <= 0:
            raise TemplateLoadError("alignment `line_height` must be > 0")
        if self.max_lines <= 0:
            raise TemplateLoadError("alignment `max_lines` must be > 0")
        if self.horizontal not in HORIZONTAL_ALIGNS:
            raise TemplateLoadError(f"unknown horizontal alignment: {self.horizontal!r}")
        if self.vertical not in VERTICAL_ALIGNS:
            raise TemplateLoadError(f"unknown vertical alignment: {self.vertical!r}")

    @classmethod
    def from_spec(cls, raw: Any, default_line_height: int) -> "TextBlockAlignment":
        if raw is None:
            return cls(line_height=default_line_height)
        if not isinstance(raw, Mapping):
            raise TemplateLoadError("`alignment` must be an object")
        values = {str(k).lower(): v for k, v in raw.items()}
        try:
            line_height = int(_first(values, "line_height", "lineheight") or default_line_height)
            max_lines = int(_first(values, "max_lines", "maxlines") or 1)
        except (TypeError, ValueError) as exc:
            raise TemplateLoadError(f"invalid text block alignment: {exc}") from exc
        return cls(
            line_height=line_height,
            max_lines=max_lines,
            horizontal=values.get("horizontal") or "center",
            vertical=values.get("vertical") or "top",
        )


@dataclass(frozen=True)
class FontRun:
    """Consecutive runes of one line sharing a font; drawn with one call."""

    font: TextFont
    origin: tuple[float, float]
    text: str


@dataclass(eq=False)
class TextBlock:
    """Multi-span text laid out inside `bounds`.

    Rendering is a four stage pipeline over the whole rune sequence:
    split_runes -> split_lines -> arrange_runes -> draw_runes. Wrapping is a
    pure advance budget; runes beyond `max_lines` are dropped.
    """

    bounds: Rect
    spans: list[TextSpan]
    font: TextFont
    alignment: TextBlockAlignment
    _ready: bool = field(default=False, init=False, repr=False)

    @classmethod
    def from_spec(cls, spec: Mapping[str, Any]) -> "TextBlock":
        font = TextFont.from_spec(require(spec, "font", "text_block"))
        spans_raw = spec.get("spans") or []
        if not isinstance(spans_raw, list):
            raise TemplateLoadError("text_block `spans` must be a list")
        return cls(
            bounds=Rect.from_spec(require(spec, "bounds", "text_block")),
            spans=[TextSpan.from_spec(raw) for raw in spans_raw],
            font=font,
            alignment=TextBlockAlignment.from_spec(spec.get("alignment"), default_line_height=font.size),
        )

    def init(self, resources: Resources, ctx: RenderContext) -> None:
        _ = resources
        self.font.init(ctx.fonts)
        for span in self.spans:
            span.init(ctx.fonts)
        self._ready = True
        LOGGER.debug("text block ready: bounds=%s spans=%d", self.bounds, len(self.spans))

    def render(self, dst: np.ndarray, params: Mapping[str, str], ctx: RenderContext) -> None:
        _ = ctx
        if not self._ready:
            raise RuntimeError("text block rendered before init")
        runes = _stage("split_runes", self.split_runes, params)
        lines = _stage("split_lines", self.split_lines, runes)
        _stage("arrange_runes", self.arrange_runes, lines)
        _stage("draw_runes", self.draw_runes, dst, lines)

    def split_runes(self, params: Mapping[str, str]) -> list[TextRune]:
        runes: list[TextRune] = []
        for span in self.spans:
            runes.extend(span.split_runes(self.font, params))
        LOGGER.debug("split runes: %d", len(runes))
        return runes

    def split_lines(self, runes: list[TextRune]) -> list[list[TextRune]]:
        limit = self.bounds.width
        lines: list[list[TextRune]] = []
        pos = 0
        while len(lines) < self.alignment.max_lines and pos < len(runes):
            end = pos
            advance = 0.0
            while end < len(runes) and advance + runes[end].metrics.advance < limit:
                advance += runes[end].metrics.advance
                end += 1
            if end == pos:
                break
            lines.append(runes[pos:end])
            pos = end
        if pos < len(runes):
            LOGGER.debug("text block overflow: dropped %d runes", len(runes) - pos)
        return lines

    def arrange_runes(self, lines: list[list[TextRune]]) -> None:
        line_height = self.alignment.line_height
        margin_top = self.bounds.y0
        content_height = line_height * len(lines)
        if self.alignment.vertical == "middle":
            margin_top += (self.bounds.height - content_height) // 2
        elif self.alignment.vertical == "bottom":
            margin_top += self.bounds.height - content_height
        for i, line in enumerate(lines):
            self._arrange_line(line, margin_top + i * line_height)

    def _arrange_line(self, line: list[TextRune], band_top: int) -> None:
        ascent = max([0.0] + [r.metrics.ascent for r in line])
        descent = max([0.0] + [r.metrics.descent for r in line])
        advance = sum(r.metrics.advance for r in line)
        height = math.ceil(ascent + descent)
        top = band_top + (self.alignment.line_height - height) // 2
        width = math.ceil(advance)
        if self.alignment.horizontal == "left":
            margin_left = 0
        elif self.alignment.horizontal == "right":
            margin_left = self.bounds.width - width
        else:
            margin_left = (self.bounds.width - width) // 2
        x = float(self.bounds.x0 + margin_left)
        y = float(top + math.ceil(ascent))
        for rune in line:
            rune.origin = (x, y)
            x += rune.metrics.advance

    def font_runs(self, lines: list[list[TextRune]]) -> list[FontRun]:
        runs: list[FontRun] = []
        for line in lines:
            font: TextFont | None = None
            origin: tuple[float, float] = (0.0, 0.0)
            chars: list[str] = []
            for rune in line:
                if font is not rune.font:
                    if font is not None and chars:
                        runs.append(FontRun(font=font, origin=origin, text="".join(chars)))
                    font = rune.font
                    origin = rune.origin or (0.0, 0.0)
                    chars = []
                chars.append(rune.char)
            if font is not None and chars:
                runs.append(FontRun(font=font, origin=origin, text="".join(chars)))
        return runs

    def draw_runes(self, dst: np.ndarray, lines: list[list[TextRune]]) -> int:
        runs = self.font_runs(lines)
        clip = self.bounds.as_box()
        for run in runs:
            draw_glyph_run(dst, run.text, run.font.face, run.origin, run.font.rgba, clip)
        return len(runs)


def _first(values: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if values.get(key) is not None:
            return values[key]
    return None


def _stage(name: str, fn: Callable[..., T], *args: Any) -> T:
    try:
        return fn(*args)
    except TextBlockError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise TextBlockError(name, exc) from exc
