from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Mapping, Sequence

import numpy as np
from PIL import Image

from imgtmpl_core.core.errors import TemplateLoadError, TemplateRenderError
from imgtmpl_core.core.resources import Resources
from imgtmpl_core.render.canvas import RGBA, copy_into, fill, image_to_array, new_canvas
from imgtmpl_core.render.color import parse_color

from .component_schema import Component, RenderContext, shared_context
from .image.embedded import decode_embedded_image

LOGGER = logging.getLogger(__name__)


@dataclass(eq=False)
class Background:
    """Solid color or image stretched over the whole canvas.

    `image` is a resource key decoded at init, or a URL resolved through the
    remote image cache at render time.
    """

    color: str | None = None
    image: str | None = None
    _rgba: RGBA | None = field(default=None, init=False, repr=False)
    _embedded: Image.Image | None = field(default=None, init=False, repr=False)

    @classmethod
    def from_spec(cls, color: Any, image: Any) -> "Background | None":
        if color is None and image is None:
            return None
        if color is not None and not isinstance(color, str):
            raise TemplateLoadError("`background_color` must be a hex string")
        if image is not None and (not isinstance(image, str) or not image):
            raise TemplateLoadError("`background_image` must be a non-empty string")
        return cls(color=color, image=image)

    def init(self, resources: Resources, ctx: RenderContext) -> None:
        _ = ctx
        if self.color is not None:
            self._rgba = parse_color(self.color)
        if self.image is not None:
            content = resources.get(self.image)
            if content is not None:
                self._embedded = decode_embedded_image(content, self.image)

    def render(self, dst: np.ndarray, ctx: RenderContext) -> None:
        if self._rgba is not None:
            fill(dst, self._rgba)
        if self.image is None:
            return
        img = self._embedded if self._embedded is not None else ctx.images.resolve(self.image)
        height, width = dst.shape[:2]
        if img.size != (width, height):
            img = img.convert("RGBA").resize((width, height), Image.Resampling.BILINEAR)
        copy_into(dst, image_to_array(img))


@dataclass(frozen=True)
class ImageTemplate:
    """Canvas size, optional background and components drawn in declaration order."""

    width: int
    height: int
    background: Background | None = None
    components: tuple[Component, ...] = ()

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise TemplateLoadError(f"template size must be positive, got {self.width}x{self.height}")

    @classmethod
    def build(
        cls,
        width: int,
        height: int,
        background: Background | None,
        components: Sequence[Component],
        resources: Resources | None = None,
        ctx: RenderContext | None = None,
    ) -> "ImageTemplate":
        """Bind static resources on every part, then freeze the template."""
        ctx = ctx or shared_context()
        resources = resources if resources is not None else Resources()
        if background is not None:
            background.init(resources, ctx)
        for component in components:
            component.init(resources, ctx)
        return cls(width=width, height=height, background=background, components=tuple(components))

    def render(self, params: Mapping[str, str] | None = None, ctx: RenderContext | None = None) -> np.ndarray:
        ctx = ctx or shared_context()
        params = params or {}
        canvas = new_canvas(self.width, self.height)
        if self.background is not None:
            try:
                self.background.render(canvas, ctx)
            except Exception as exc:  # noqa: BLE001
                raise TemplateRenderError(None, exc, canvas) from exc
        for index, component in enumerate(self.components):
            try:
                component.render(canvas, params, ctx)
            except Exception as exc:  # noqa: BLE001
                LOGGER.debug("component #%d (%s) failed: %s", index, type(component).__name__, exc)
                raise TemplateRenderError(index, exc, canvas) from exc
        return canvas
