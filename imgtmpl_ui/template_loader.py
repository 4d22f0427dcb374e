from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

from imgtmpl_core.core.errors import TemplateLoadError
from imgtmpl_core.core.resources import Resources

from .component_schema import RenderContext, shared_context
from .registry import ComponentRegistry, default_registry
from .template import Background, ImageTemplate

LOGGER = logging.getLogger(__name__)

TEMPLATE_MEMBER = "template.json"


def load_template_file(
    path: str | Path,
    ctx: RenderContext | None = None,
    registry: ComponentRegistry | None = None,
) -> ImageTemplate:
    """Load a JSON template; a `.zip` path is read as a bundle holding `template.json`."""
    path = Path(path)
    if path.suffix.lower() == ".zip":
        return load_template_zip(path, ctx=ctx, registry=registry)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise TemplateLoadError(f"cannot read template {path}: {exc}") from exc
    return loads_template(content, base_dir=path.parent, ctx=ctx, registry=registry)


def load_template_zip(
    path: str | Path,
    ctx: RenderContext | None = None,
    registry: ComponentRegistry | None = None,
) -> ImageTemplate:
    """Every archive member becomes a resource; `template.json` is the template itself."""
    resources = Resources()
    resources.load_zip_file(path)
    content = resources.get(TEMPLATE_MEMBER)
    if content is None:
        raise TemplateLoadError(f"template bundle {path} has no {TEMPLATE_MEMBER}")
    return loads_template(content, resources=resources, base_dir=Path(path).parent, ctx=ctx, registry=registry)


def loads_template(
    content: str | bytes | Mapping[str, Any],
    resources: Resources | None = None,
    base_dir: str | Path | None = None,
    ctx: RenderContext | None = None,
    registry: ComponentRegistry | None = None,
) -> ImageTemplate:
    data = _decode(content)
    registry = registry or default_registry()
    resources = resources if resources is not None else Resources()

    resource_file = data.get("resource_file")
    if resource_file:
        if not isinstance(resource_file, str):
            raise TemplateLoadError("`resource_file` must be a path string")
        bundle = Path(resource_file)
        if not bundle.is_absolute() and base_dir is not None:
            bundle = Path(base_dir) / bundle
        resources.load_zip_file(bundle)
    inline = data.get("resources")
    if inline is not None:
        if not isinstance(inline, Mapping) or not all(isinstance(v, str) for v in inline.values()):
            raise TemplateLoadError("`resources` must map names to strings")
        resources.load_string_map(inline)

    if "components" not in data:
        raise TemplateLoadError("template is missing the `components` field")
    raw_components = data["components"]
    if not isinstance(raw_components, list):
        raise TemplateLoadError("`components` must be a list")
    components = []
    for index, raw in enumerate(raw_components):
        if not isinstance(raw, Mapping):
            raise TemplateLoadError(f"component #{index} must be an object")
        components.append(registry.create(raw))

    template = ImageTemplate.build(
        width=_dimension(data, "width"),
        height=_dimension(data, "height"),
        background=Background.from_spec(data.get("background_color"), data.get("background_image")),
        components=components,
        resources=resources,
        ctx=ctx or shared_context(),
    )
    LOGGER.debug(
        "template loaded: size=%dx%d components=%d resources=%d",
        template.width,
        template.height,
        len(template.components),
        len(resources),
    )
    return template


def _decode(content: str | bytes | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(content, Mapping):
        return content
    try:
        data = json.loads(content)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise TemplateLoadError(f"template is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise TemplateLoadError("template root must be a JSON object")
    return data


def _dimension(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) <= 0:
        raise TemplateLoadError(f"template `{key}` must be a positive number, got {value!r}")
    return int(value)
