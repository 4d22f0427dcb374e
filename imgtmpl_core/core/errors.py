from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import numpy as np


class TemplateLoadError(ValueError):
    """Template construction failed; no partial template is usable."""


class ColorFormatError(TemplateLoadError):
    pass


class FontLoadError(TemplateLoadError):
    pass


class UnknownComponentError(TemplateLoadError):
    pass


class MissingParameterError(RuntimeError):
    def __init__(self, key: str) -> None:
        super().__init__(f"missing render parameter: {key}")
        self.key = key


class GlyphMetricsError(RuntimeError):
    def __init__(self, char: str, font_name: str) -> None:
        super().__init__(f"no glyph for {char!r} (U+{ord(char):04X}) in font `{font_name}`")
        self.char = char
        self.font_name = font_name


class ImageFetchError(RuntimeError):
    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"image fetch failed for {url}: {reason}")
        self.url = url
        self.reason = reason


class TextBlockError(RuntimeError):
    """A text block stage failed; `stage` names the failing operation."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"text block {stage} failed: {cause}")
        self.stage = stage


class TemplateRenderError(RuntimeError):
    """Render aborted. `canvas` holds whatever was painted before the failure."""

    def __init__(self, component_index: int | None, cause: BaseException, canvas: "np.ndarray") -> None:
        where = "background" if component_index is None else f"component #{component_index}"
        super().__init__(f"render {where} failed: {cause}")
        self.component_index = component_index
        self.canvas = canvas
