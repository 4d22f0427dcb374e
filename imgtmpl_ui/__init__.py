"""Template components, layout and rendering pipeline for imgtmpl."""

from .component_schema import Component, Point, Rect, RenderContext, shared_context
from .image import ClipImage, FixedImage
from .registry import ComponentRegistry, default_registry, register_builtin_components
from .template import Background, ImageTemplate
from .template_loader import load_template_file, load_template_zip, loads_template
from .text import FontRun, TextBlock, TextBlockAlignment, TextFont, TextSpan

__all__ = [
    "Background",
    "ClipImage",
    "Component",
    "ComponentRegistry",
    "FixedImage",
    "FontRun",
    "ImageTemplate",
    "Point",
    "Rect",
    "RenderContext",
    "TextBlock",
    "TextBlockAlignment",
    "TextFont",
    "TextSpan",
    "default_registry",
    "load_template_file",
    "load_template_zip",
    "loads_template",
    "register_builtin_components",
    "shared_context",
]
