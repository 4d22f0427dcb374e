from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np
from PIL import Image

from imgtmpl_core.core.errors import MissingParameterError, TemplateLoadError
from imgtmpl_core.core.resources import Resources
from imgtmpl_core.render.canvas import copy_into, image_to_array

from ..component_schema import Rect, RenderContext, require


@dataclass(frozen=True)
class ClipImage:
    """Scales the `clip` region of a per-render remote image into `bounds`.

    `source` is the name of the render parameter holding the image URL. The
    scaled pixels replace the destination (no blending).
    """

    bounds: Rect
    source: str
    clip: Rect

    @classmethod
    def from_spec(cls, spec: Mapping[str, Any]) -> "ClipImage":
        source = require(spec, "source", "clip_image")
        if not isinstance(source, str) or not source:
            raise TemplateLoadError("clip_image `source` must be a non-empty string")
        bounds = Rect.from_spec(require(spec, "bounds", "clip_image"), "bounds")
        clip = Rect.from_spec(require(spec, "clip", "clip_image"), "clip")
        if bounds.width == 0 or bounds.height == 0:
            raise TemplateLoadError("clip_image `bounds` must not be empty")
        if clip.width == 0 or clip.height == 0:
            raise TemplateLoadError("clip_image `clip` must not be empty")
        return cls(bounds=bounds, source=source, clip=clip)

    def init(self, resources: Resources, ctx: RenderContext) -> None:
        _ = (resources, ctx)

    def render(self, dst: np.ndarray, params: Mapping[str, str], ctx: RenderContext) -> None:
        url = params.get(self.source)
        if url is None:
            raise MissingParameterError(self.source)
        src = ctx.images.resolve(url)
        if src.mode != "RGBA":
            src = src.convert("RGBA")
        region = src.crop(self.clip.as_box()).resize(
            (self.bounds.width, self.bounds.height), Image.Resampling.BILINEAR
        )
        copy_into(dst, image_to_array(region), self.bounds.x0, self.bounds.y0)
