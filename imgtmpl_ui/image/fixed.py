from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Mapping

import numpy as np

from imgtmpl_core.core.errors import TemplateLoadError
from imgtmpl_core.core.resources import Resources
from imgtmpl_core.render.canvas import blit, image_to_array

from ..component_schema import Point, RenderContext, require
from .embedded import decode_embedded_image

LOGGER = logging.getLogger(__name__)


@dataclass(eq=False)
class FixedImage:
    """Unscaled image drawn over the canvas at `point`.

    `source` names a template resource; when no such resource exists it is
    treated as a URL and resolved through the remote image cache per render.
    """

    point: Point
    source: str
    _pixels: np.ndarray | None = field(default=None, init=False, repr=False)

    @classmethod
    def from_spec(cls, spec: Mapping[str, Any]) -> "FixedImage":
        source = require(spec, "source", "fixed_image")
        if not isinstance(source, str) or not source:
            raise TemplateLoadError("fixed_image `source` must be a non-empty string")
        return cls(point=Point.from_spec(spec.get("point", [0, 0]), "point"), source=source)

    @property
    def embedded(self) -> bool:
        return self._pixels is not None

    def init(self, resources: Resources, ctx: RenderContext) -> None:
        _ = ctx
        content = resources.get(self.source)
        if content is None:
            LOGGER.debug("fixed image will resolve remotely: source=%s", self.source)
            return
        self._pixels = image_to_array(decode_embedded_image(content, self.source))

    def render(self, dst: np.ndarray, params: Mapping[str, str], ctx: RenderContext) -> None:
        _ = params
        pixels = self._pixels
        if pixels is None:
            pixels = image_to_array(ctx.images.resolve(self.source))
        blit(dst, pixels, self.point.x, self.point.y)
