from __future__ import annotations

from dataclasses import dataclass
import threading
from typing import Any, Mapping, Protocol

import numpy as np

from imgtmpl_core.core.errors import TemplateLoadError
from imgtmpl_core.core.font_registry import FontRegistry
from imgtmpl_core.core.image_cache import ImageFetcher, RemoteImageCache
from imgtmpl_core.core.resources import Resources
from imgtmpl_core.core.settings import RenderSettings


@dataclass(frozen=True)
class Point:
    x: int
    y: int

    @classmethod
    def from_spec(cls, raw: Any, label: str = "point") -> "Point":
        if isinstance(raw, (list, tuple)) and len(raw) == 2:
            return cls(x=_as_int(raw[0], label), y=_as_int(raw[1], label))
        if isinstance(raw, Mapping):
            values = _lower_keys(raw)
            return cls(x=_as_int(values.get("x", 0), label), y=_as_int(values.get("y", 0), label))
        raise TemplateLoadError(f"`{label}` must be [x, y] or {{x, y}}")


@dataclass(frozen=True)
class Rect:
    """Half-open pixel rectangle [x0, x1) x [y0, y1)."""

    x0: int
    y0: int
    x1: int
    y1: int

    def __post_init__(self) -> None:
        if self.x1 < self.x0 or self.y1 < self.y0:
            raise ValueError("Rect max corner must not precede min corner")

    @property
    def width(self) -> int:
        return self.x1 - self.x0

    @property
    def height(self) -> int:
        return self.y1 - self.y0

    def as_box(self) -> tuple[int, int, int, int]:
        return (self.x0, self.y0, self.x1, self.y1)

    @classmethod
    def from_spec(cls, raw: Any, label: str = "bounds") -> "Rect":
        """Accept `[x0, y0, x1, y1]`, `{min: {x, y}, max: {x, y}}` or `{x, y, width, height}`."""
        try:
            if isinstance(raw, (list, tuple)) and len(raw) == 4:
                x0, y0, x1, y1 = (_as_int(v, label) for v in raw)
                return cls(x0, y0, x1, y1)
            if isinstance(raw, Mapping):
                values = _lower_keys(raw)
                if "min" in values or "max" in values:
                    lo = Point.from_spec(values.get("min", {}), label)
                    hi = Point.from_spec(values.get("max", {}), label)
                    return cls(lo.x, lo.y, hi.x, hi.y)
                x = _as_int(values.get("x", 0), label)
                y = _as_int(values.get("y", 0), label)
                return cls(x, y, x + _as_int(values.get("width", 0), label), y + _as_int(values.get("height", 0), label))
        except TemplateLoadError:
            raise
        except ValueError as exc:
            raise TemplateLoadError(f"invalid `{label}`: {exc}") from exc
        raise TemplateLoadError(f"`{label}` must be [x0, y0, x1, y1] or a {{min, max}} object")


@dataclass(frozen=True)
class RenderContext:
    """Shared services handed to components at init and render time."""

    fonts: FontRegistry
    images: RemoteImageCache

    @classmethod
    def from_settings(cls, settings: RenderSettings, fetcher: ImageFetcher | None = None) -> "RenderContext":
        return cls(
            fonts=FontRegistry.from_settings(settings),
            images=RemoteImageCache.from_settings(settings, fetcher=fetcher),
        )


class Component(Protocol):
    def init(self, resources: Resources, ctx: RenderContext) -> None:
        ...

    def render(self, dst: np.ndarray, params: Mapping[str, str], ctx: RenderContext) -> None:
        ...


_shared_lock = threading.Lock()
_shared_context: RenderContext | None = None


def shared_context() -> RenderContext:
    """Process-wide context built lazily from the environment."""
    global _shared_context
    with _shared_lock:
        if _shared_context is None:
            _shared_context = RenderContext.from_settings(RenderSettings.from_env())
        return _shared_context


def require(spec: Mapping[str, Any], key: str, component: str) -> Any:
    if key not in spec or spec[key] is None:
        raise TemplateLoadError(f"{component} is missing required field `{key}`")
    return spec[key]


def _lower_keys(raw: Mapping[str, Any]) -> dict[str, Any]:
    return {str(k).lower(): v for k, v in raw.items()}


def _as_int(value: Any, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TemplateLoadError(f"`{label}` coordinates must be numbers, got {value!r}")
    return int(value)
