from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Any, Mapping

from imgtmpl_core.core.errors import MissingParameterError, TemplateLoadError
from imgtmpl_core.core.font_registry import FontRegistry

from .font import RuneMetrics, TextFont

_DIRECTIVE = re.compile(r"\{\{\s*\.([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


@dataclass(frozen=True)
class SpanTemplate:
    """Compiled `{{.key}}` substitutions; `literals` has one more item than `keys`."""

    source: str
    literals: tuple[str, ...]
    keys: tuple[str, ...]

    @classmethod
    def parse(cls, text: str) -> "SpanTemplate | None":
        if "{{" not in text:
            return None
        literals: list[str] = []
        keys: list[str] = []
        pos = 0
        for match in _DIRECTIVE.finditer(text):
            literals.append(text[pos : match.start()])
            keys.append(match.group(1))
            pos = match.end()
        literals.append(text[pos:])
        for literal in literals:
            if "{{" in literal:
                raise TemplateLoadError(f"malformed template directive in span text: {text!r}")
        return cls(source=text, literals=tuple(literals), keys=tuple(keys))

    def execute(self, params: Mapping[str, str]) -> str:
        out = [self.literals[0]]
        for key, literal in zip(self.keys, self.literals[1:]):
            if key not in params:
                raise MissingParameterError(key)
            out.append(str(params[key]))
            out.append(literal)
        return "".join(out)


@dataclass
class TextRune:
    char: str
    font: TextFont
    metrics: RuneMetrics
    origin: tuple[float, float] | None = None


@dataclass(eq=False)
class TextSpan:
    text: str
    font: TextFont | None = None
    _template: SpanTemplate | None = field(default=None, init=False, repr=False)

    @classmethod
    def from_spec(cls, raw: Any) -> "TextSpan":
        if isinstance(raw, str):
            return cls(text=raw)
        if not isinstance(raw, Mapping):
            raise TemplateLoadError("span must be a string or an object with `text`")
        values = {str(k).lower(): v for k, v in raw.items()}
        text = values.get("text")
        if not isinstance(text, str):
            raise TemplateLoadError("span is missing string field `text`")
        font = values.get("font")
        return cls(text=text, font=TextFont.from_spec(font, "span font") if font is not None else None)

    def init(self, fonts: FontRegistry) -> None:
        self._template = SpanTemplate.parse(self.text)
        if self.font is not None:
            self.font.init(fonts)

    def resolve_text(self, params: Mapping[str, str]) -> str:
        if self._template is None:
            return self.text
        return self._template.execute(params)

    def split_runes(self, default_font: TextFont, params: Mapping[str, str]) -> list[TextRune]:
        font = self.font or default_font
        return [TextRune(char=ch, font=font, metrics=font.rune_metrics(ch)) for ch in self.resolve_text(params)]
