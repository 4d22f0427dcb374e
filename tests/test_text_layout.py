from __future__ import annotations

import tempfile
import unittest
from unittest import mock

import numpy as np

from imgtmpl_core.core.errors import GlyphMetricsError, MissingParameterError, TemplateLoadError, TextBlockError
from imgtmpl_core.core.resources import Resources
from imgtmpl_core.render.canvas import new_canvas
from imgtmpl_ui.component_schema import Rect
from imgtmpl_ui.text.block import TextBlock, TextBlockAlignment
from imgtmpl_ui.text.font import TextFont
from imgtmpl_ui.text.span import TextSpan

from font_fixtures import make_context


class TextLayoutTests(unittest.TestCase):
    def setUp(self) -> None:
        td = tempfile.TemporaryDirectory()
        self.addCleanup(td.cleanup)
        self.ctx = make_context(td.name)

    def _block(self, spans: list[TextSpan], bounds: Rect, **alignment) -> TextBlock:
        alignment.setdefault("line_height", 20)
        block = TextBlock(
            bounds=bounds,
            spans=spans,
            font=TextFont("box", 20, "ffffff"),
            alignment=TextBlockAlignment(**alignment),
        )
        block.init(Resources(), self.ctx)
        return block

    def _lines(self, block: TextBlock, params: dict[str, str] | None = None):
        return block.split_lines(block.split_runes(params or {}))

    def test_lines_stay_strictly_under_width(self) -> None:
        block = self._block([TextSpan("ABCDEFGHIJKL")], Rect(0, 0, 100, 100), max_lines=3)
        lines = self._lines(block)
        self.assertEqual([len(line) for line in lines], [9, 3])
        for line in lines:
            self.assertLess(sum(r.metrics.advance for r in line), 100)

    def test_width_budget_is_exclusive(self) -> None:
        wide = self._block([TextSpan("ABCDEFGHIJ")], Rect(0, 0, 91, 20))
        exact = self._block([TextSpan("ABCDEFGHIJ")], Rect(0, 0, 90, 20))
        self.assertEqual(len(self._lines(wide)[0]), 9)
        self.assertEqual(len(self._lines(exact)[0]), 8)

    def test_overflow_beyond_max_lines_is_dropped(self) -> None:
        block = self._block([TextSpan("ABCDEFGHIJKLMNOP")], Rect(0, 0, 50, 100), max_lines=2)
        lines = self._lines(block)
        self.assertEqual(len(lines), 2)
        self.assertEqual("".join(r.char for line in lines for r in line), "ABCDEFGH")

    def test_rune_wider_than_bounds_emits_no_lines(self) -> None:
        block = self._block([TextSpan("AB")], Rect(0, 0, 10, 20), max_lines=3)
        self.assertEqual(self._lines(block), [])

    def test_center_middle_alignment(self) -> None:
        block = self._block(
            [TextSpan("Hello World")], Rect(0, 0, 200, 100), horizontal="center", vertical="middle"
        )
        lines = self._lines(block)
        block.arrange_runes(lines)
        line = lines[0]
        self.assertEqual(line[0].origin, (45.0, 57.0))
        self.assertEqual(line[-1].origin, (145.0, 57.0))

    def test_right_bottom_alignment(self) -> None:
        block = self._block(
            [TextSpan("Hello World")], Rect(0, 0, 200, 100), horizontal="right", vertical="bottom"
        )
        lines = self._lines(block)
        block.arrange_runes(lines)
        self.assertEqual(lines[0][0].origin, (90.0, 97.0))

    def test_left_top_alignment_is_relative_to_bounds(self) -> None:
        block = self._block([TextSpan("AB")], Rect(10, 5, 210, 105), horizontal="left", vertical="top")
        lines = self._lines(block)
        block.arrange_runes(lines)
        self.assertEqual([r.origin for r in lines[0]], [(10.0, 22.0), (20.0, 22.0)])

    def test_second_line_starts_one_line_height_lower(self) -> None:
        block = self._block([TextSpan("ABCDEFGHIJKL")], Rect(0, 0, 100, 100), max_lines=2, line_height=30)
        lines = self._lines(block)
        block.arrange_runes(lines)
        self.assertEqual(lines[1][0].origin[1] - lines[0][0].origin[1], 30.0)

    def test_arrangement_is_deterministic(self) -> None:
        block = self._block([TextSpan("Hello {{.name}}")], Rect(0, 0, 120, 60), max_lines=2, vertical="middle")
        first = self._lines(block, {"name": "World"})
        second = self._lines(block, {"name": "World"})
        block.arrange_runes(first)
        block.arrange_runes(second)
        self.assertEqual(
            [r.origin for line in first for r in line],
            [r.origin for line in second for r in line],
        )

    def test_single_span_renders_as_one_font_run(self) -> None:
        block = self._block([TextSpan("Hello {{.name}}")], Rect(0, 0, 300, 40))
        canvas = new_canvas(300, 40)
        with mock.patch("imgtmpl_ui.text.block.draw_glyph_run") as draw:
            block.render(canvas, {"name": "World"}, self.ctx)
        self.assertEqual(draw.call_count, 1)
        args = draw.call_args.args
        self.assertEqual(args[1], "Hello World")
        self.assertEqual(args[5], (0, 0, 300, 40))

    def test_font_change_and_line_start_split_runs(self) -> None:
        big = TextFont("box", 20, "ff0000")
        block = self._block(
            [TextSpan("AB"), TextSpan("CD", font=big), TextSpan("EFGHIJ")],
            Rect(0, 0, 60, 60),
            max_lines=2,
        )
        lines = self._lines(block)
        block.arrange_runes(lines)
        runs = block.font_runs(lines)
        self.assertEqual([run.text for run in runs], ["AB", "CD", "E", "FGHIJ"])
        self.assertIs(runs[1].font, big)
        self.assertEqual(runs[3].origin[0], lines[1][0].origin[0])

    def test_missing_glyph_aborts_in_split_runes(self) -> None:
        block = self._block([TextSpan("Hé")], Rect(0, 0, 200, 40))
        with self.assertRaises(TextBlockError) as ctx:
            block.render(new_canvas(200, 40), {}, self.ctx)
        self.assertEqual(ctx.exception.stage, "split_runes")
        self.assertIsInstance(ctx.exception.__cause__, GlyphMetricsError)

    def test_missing_parameter_aborts_in_split_runes(self) -> None:
        block = self._block([TextSpan("Hi {{.who}}")], Rect(0, 0, 200, 40))
        with self.assertRaises(TextBlockError) as ctx:
            block.render(new_canvas(200, 40), {}, self.ctx)
        self.assertIsInstance(ctx.exception.__cause__, MissingParameterError)

    def test_drawing_is_clipped_to_bounds(self) -> None:
        block = self._block(
            [TextSpan("ABCDEFGH")], Rect(10, 10, 60, 20), line_height=10, horizontal="left"
        )
        canvas = new_canvas(100, 40)
        block.render(canvas, {}, self.ctx)
        alpha = canvas[:, :, 3]
        self.assertTrue(np.any(alpha[10:20, 10:60] > 0))
        outside = alpha.copy()
        outside[10:20, 10:60] = 0
        self.assertFalse(np.any(outside))

    def test_glyphs_paint_font_color_inside_bounds(self) -> None:
        block = self._block([TextSpan("Hello")], Rect(0, 0, 100, 40), horizontal="left")
        canvas = new_canvas(100, 40)
        block.render(canvas, {}, self.ctx)
        # first box glyph spans x 1..9, y 3..17 on a 20px line
        self.assertEqual(tuple(canvas[10, 5]), (255, 255, 255, 255))
        self.assertEqual(canvas[30, 5, 3], 0)

    def test_render_before_init_is_rejected(self) -> None:
        block = TextBlock(
            bounds=Rect(0, 0, 10, 10),
            spans=[TextSpan("A")],
            font=TextFont("box", 20),
            alignment=TextBlockAlignment(line_height=20),
        )
        with self.assertRaises(RuntimeError):
            block.render(new_canvas(10, 10), {}, self.ctx)


class TextBlockSpecTests(unittest.TestCase):
    def test_line_height_defaults_to_font_size(self) -> None:
        block = TextBlock.from_spec(
            {
                "type": "text_block",
                "bounds": [0, 0, 100, 50],
                "font": {"name": "box", "size": 24},
                "spans": ["a", {"text": "b"}],
            }
        )
        self.assertEqual(block.alignment.line_height, 24)
        self.assertEqual(block.alignment.max_lines, 1)
        self.assertEqual(block.alignment.horizontal, "center")
        self.assertEqual(block.alignment.vertical, "top")
        self.assertEqual(len(block.spans), 2)

    def test_alignment_accepts_camel_case_keys(self) -> None:
        block = TextBlock.from_spec(
            {
                "bounds": [0, 0, 100, 50],
                "font": {"Name": "box", "Size": 20},
                "spans": ["a"],
                "alignment": {"LineHeight": 40, "MaxLines": 3, "Horizontal": "left", "Vertical": "bottom"},
            }
        )
        self.assertEqual(
            block.alignment,
            TextBlockAlignment(line_height=40, max_lines=3, horizontal="left", vertical="bottom"),
        )

    def test_invalid_alignment_is_load_error(self) -> None:
        with self.assertRaises(TemplateLoadError):
            TextBlock.from_spec(
                {
                    "bounds": [0, 0, 100, 50],
                    "font": {"name": "box", "size": 24},
                    "alignment": {"horizontal": "justify"},
                }
            )

    def test_font_is_required(self) -> None:
        with self.assertRaises(TemplateLoadError):
            TextBlock.from_spec({"bounds": [0, 0, 100, 50], "spans": ["a"]})


if __name__ == "__main__":
    unittest.main()
