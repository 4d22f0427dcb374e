from __future__ import annotations

import io
from pathlib import Path
import string
import threading

from fontTools.fontBuilder import FontBuilder
from fontTools.pens.ttGlyphPen import TTGlyphPen
from PIL import Image

from imgtmpl_core.core.errors import ImageFetchError
from imgtmpl_core.core.font_registry import FontRegistry
from imgtmpl_core.core.image_cache import RemoteImageCache
from imgtmpl_ui.component_schema import RenderContext

UNITS_PER_EM = 1000
ADVANCE = 500
BOX_X = (50, 450)
BOX_Y = (0, 700)
DEFAULT_CHARS = string.ascii_letters + string.digits + ".,:!?-"


def build_test_font(chars: str = DEFAULT_CHARS, family: str = "Box Test") -> bytes:
    """TrueType font where every char is a 400x700 box on a 500 unit advance; space is empty."""
    names = {ord(ch): f"uni{ord(ch):04X}" for ch in chars if ch != " "}
    names[ord(" ")] = "space"
    glyph_order = [".notdef"] + sorted(set(names.values()))

    fb = FontBuilder(UNITS_PER_EM, isTTF=True)
    fb.setupGlyphOrder(glyph_order)
    fb.setupCharacterMap(names)
    glyphs = {}
    metrics = {}
    for name in glyph_order:
        pen = TTGlyphPen(None)
        if name != "space":
            pen.moveTo((BOX_X[0], BOX_Y[0]))
            pen.lineTo((BOX_X[0], BOX_Y[1]))
            pen.lineTo((BOX_X[1], BOX_Y[1]))
            pen.lineTo((BOX_X[1], BOX_Y[0]))
            pen.closePath()
            metrics[name] = (ADVANCE, BOX_X[0])
        else:
            metrics[name] = (ADVANCE, 0)
        glyphs[name] = pen.glyph()
    fb.setupGlyf(glyphs)
    fb.setupHorizontalMetrics(metrics)
    fb.setupHorizontalHeader(ascent=800, descent=-200)
    fb.setupNameTable({"familyName": family, "styleName": "Regular"})
    fb.setupOS2(sTypoAscender=800, sTypoDescender=-200, usWinAscent=800, usWinDescent=200)
    fb.setupPost()
    buf = io.BytesIO()
    fb.save(buf)
    return buf.getvalue()


def png_bytes(color: tuple[int, int, int, int], size: tuple[int, int] = (4, 4)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGBA", size, color).save(buf, format="PNG")
    return buf.getvalue()


class FakeFetcher:
    """In-memory fetcher; unknown URLs fail like an unreachable host.

    When `gate` is set, every fetch blocks on it so tests can pile up
    concurrent callers before the first fetch returns.
    """

    def __init__(self, payloads: dict[str, bytes] | None = None, gate: threading.Event | None = None) -> None:
        self.payloads = dict(payloads or {})
        self.gate = gate
        self.started = threading.Event()
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def fetch(self, url: str) -> bytes:
        with self._lock:
            self.calls.append(url)
        self.started.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        payload = self.payloads.get(url)
        if payload is None:
            raise ImageFetchError(url, "connection refused")
        return payload


class FakeClock:
    def __init__(self) -> None:
        self.now = 0

    def __call__(self) -> int:
        self.now += 1
        return self.now


def make_context(
    root: str | Path,
    fetcher: FakeFetcher | None = None,
    capacity: int = 8,
    fonts: dict[str, bytes] | None = None,
) -> RenderContext:
    """Isolated context with `box` registered and the image cache rooted under `root`."""
    registry = FontRegistry(Path(root) / "fonts")
    for name, data in (fonts or {"box": build_test_font()}).items():
        registry.register(name, data)
    cache = RemoteImageCache(
        local_dir=Path(root) / "cache",
        capacity=capacity,
        fetcher=fetcher or FakeFetcher(),
        clock=FakeClock(),
    )
    return RenderContext(fonts=registry, images=cache)
