from .block import FontRun, TextBlock, TextBlockAlignment
from .font import RuneMetrics, TextFont
from .span import SpanTemplate, TextRune, TextSpan

__all__ = [
    "FontRun",
    "RuneMetrics",
    "SpanTemplate",
    "TextBlock",
    "TextBlockAlignment",
    "TextFont",
    "TextRune",
    "TextSpan",
]
