from .errors import (
    ColorFormatError,
    FontLoadError,
    GlyphMetricsError,
    ImageFetchError,
    MissingParameterError,
    TemplateLoadError,
    TemplateRenderError,
    TextBlockError,
    UnknownComponentError,
)
from .font_registry import FontProgram, FontRegistry, GlyphMetrics
from .image_cache import CachedImage, ImageFetcher, RemoteImageCache, UrlImageFetcher, decode_image
from .resources import Resources
from .settings import RenderSettings, enable_verbose_logging
from .single_flight import SingleFlight

__all__ = [
    "CachedImage",
    "ColorFormatError",
    "FontLoadError",
    "FontProgram",
    "FontRegistry",
    "GlyphMetrics",
    "GlyphMetricsError",
    "ImageFetchError",
    "ImageFetcher",
    "MissingParameterError",
    "RemoteImageCache",
    "RenderSettings",
    "Resources",
    "SingleFlight",
    "TemplateLoadError",
    "TemplateRenderError",
    "TextBlockError",
    "UnknownComponentError",
    "UrlImageFetcher",
    "decode_image",
    "enable_verbose_logging",
]
