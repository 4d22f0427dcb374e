from __future__ import annotations

from typing import Any, Callable, Mapping

from imgtmpl_core.core.errors import TemplateLoadError, UnknownComponentError

from .component_schema import Component
from .image.clip import ClipImage
from .image.fixed import FixedImage
from .text.block import TextBlock


ComponentFactory = Callable[[Mapping[str, Any]], Component]


class ComponentRegistry:
    """Maps a component `type` tag to a factory building it from its spec."""

    def __init__(self) -> None:
        self._factories: dict[str, ComponentFactory] = {}

    def register(self, type_name: str, factory: ComponentFactory) -> None:
        if not type_name.strip():
            raise ValueError("component type name must be non-empty")
        if type_name in self._factories:
            raise ValueError(f"component type already registered: {type_name}")
        self._factories[type_name] = factory

    def types(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._factories

    def create(self, spec: Mapping[str, Any]) -> Component:
        type_name = spec.get("type")
        if type_name is None:
            raise TemplateLoadError("component is missing the `type` field")
        if not isinstance(type_name, str):
            raise TemplateLoadError(f"component `type` must be a string, got {type(type_name).__name__}")
        factory = self._factories.get(type_name)
        if factory is None:
            raise UnknownComponentError(f"unknown component type: {type_name}")
        return factory(spec)


def register_builtin_components(registry: ComponentRegistry) -> ComponentRegistry:
    registry.register("fixed_image", FixedImage.from_spec)
    registry.register("clip_image", ClipImage.from_spec)
    registry.register("text_block", TextBlock.from_spec)
    return registry


def default_registry() -> ComponentRegistry:
    return register_builtin_components(ComponentRegistry())
