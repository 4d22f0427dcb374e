from __future__ import annotations

from dataclasses import dataclass
import io
import logging
from pathlib import Path
import struct
import threading

from fontTools.pens.boundsPen import BoundsPen
from fontTools.ttLib import TTFont, TTLibError
from PIL import ImageFont

from .errors import FontLoadError
from .settings import DEFAULT_FONT_DIR, RenderSettings

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class GlyphMetrics:
    """Glyph metrics in font units (y up)."""

    advance: int
    y_min: float
    y_max: float


class FontProgram:
    """A parsed font file shared by every TextFont that names it.

    Tables needed for layout are read eagerly; per-glyph bounds are computed on
    demand under a lock because fontTools decompiles glyphs lazily.
    """

    def __init__(self, name: str, data: bytes) -> None:
        self.name = name
        self.data = data
        try:
            self._tt = TTFont(io.BytesIO(data))
            self.units_per_em = int(self._tt["head"].unitsPerEm)
            self.cmap: dict[int, str] = dict(self._tt.getBestCmap() or {})
            self._advances = {glyph: adv for glyph, (adv, _lsb) in self._tt["hmtx"].metrics.items()}
            self._glyph_set = self._tt.getGlyphSet()
        except (TTLibError, KeyError, AssertionError, struct.error) as exc:
            raise FontLoadError(f"malformed font `{name}`: {exc}") from exc
        self._lock = threading.Lock()
        self._metrics: dict[str, GlyphMetrics] = {}

    def has_glyph(self, char: str) -> bool:
        return ord(char) in self.cmap

    def glyph_metrics(self, char: str) -> GlyphMetrics | None:
        glyph = self.cmap.get(ord(char))
        if glyph is None:
            return None
        with self._lock:
            cached = self._metrics.get(glyph)
            if cached is not None:
                return cached
            pen = BoundsPen(self._glyph_set)
            self._glyph_set[glyph].draw(pen)
            y_min, y_max = (0.0, 0.0) if pen.bounds is None else (pen.bounds[1], pen.bounds[3])
            metrics = GlyphMetrics(advance=self._advances.get(glyph, 0), y_min=y_min, y_max=y_max)
            self._metrics[glyph] = metrics
            return metrics

    def face(self, size: int) -> ImageFont.FreeTypeFont:
        try:
            return ImageFont.truetype(io.BytesIO(self.data), size=size)
        except OSError as exc:
            raise FontLoadError(f"cannot rasterize font `{self.name}` at size {size}: {exc}") from exc


class FontRegistry:
    """Loads `<font_dir>/<name>.ttf` once per name; entries are never evicted."""

    def __init__(self, font_dir: str | Path = DEFAULT_FONT_DIR) -> None:
        self.font_dir = Path(font_dir)
        self._lock = threading.Lock()
        self._fonts: dict[str, FontProgram] = {}

    @classmethod
    def from_settings(cls, settings: RenderSettings) -> "FontRegistry":
        return cls(font_dir=settings.font_dir)

    def __len__(self) -> int:
        with self._lock:
            return len(self._fonts)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._fonts

    def get(self, name: str) -> FontProgram:
        with self._lock:
            program = self._fonts.get(name)
            if program is not None:
                return program
            path = self.font_dir / f"{name}.ttf"
            try:
                data = path.read_bytes()
            except OSError as exc:
                raise FontLoadError(f"cannot read font `{name}` from {path}: {exc}") from exc
            program = FontProgram(name, data)
            self._fonts[name] = program
            LOGGER.debug("loaded font: name=%s glyphs=%d", name, len(program.cmap))
            return program

    def register(self, name: str, data: bytes) -> FontProgram:
        """Install a font from memory (embedded resources, tests)."""
        program = FontProgram(name, data)
        with self._lock:
            self._fonts[name] = program
        return program
