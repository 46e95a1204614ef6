# test_m_parser.py
#
# Run:
#   python -m unittest -v

import unittest
from unittest import mock

import m_parser as m
from config_loader import PublishConfig
from errors import InternalInvariantViolation, MalformedMarkup
from publish_model import (
    BulletedList,
    CodeLiteral,
    CodeSegment,
    Graphic,
    HeaderSegment,
    Html,
    Include,
    Latex,
    NumberedList,
    PreformattedText,
    Text,
)


class TestLineClassifier(unittest.TestCase):
    def test_header_requires_space_or_end(self):
        self.assertTrue(m.is_header("%%"))
        self.assertTrue(m.is_header("%% Title"))
        self.assertTrue(m.is_header("## Title"))
        self.assertFalse(m.is_header("%%Title"))
        self.assertFalse(m.is_header("%%% Title"))

    def test_header_needs_same_family(self):
        self.assertFalse(m.is_header("%# Title"))
        self.assertFalse(m.is_header("#% Title"))

    def test_no_break_header(self):
        self.assertTrue(m.is_no_break_header("%%%"))
        self.assertTrue(m.is_no_break_header("### Sub"))
        self.assertFalse(m.is_no_break_header("%%%% Sub"))
        self.assertFalse(m.is_no_break_header("%% Sub"))

    def test_paragraph_line(self):
        self.assertTrue(m.is_paragraph_line("%"))
        self.assertTrue(m.is_paragraph_line("% text"))
        self.assertTrue(m.is_paragraph_line("# text"))
        self.assertFalse(m.is_paragraph_line("%text"))
        self.assertFalse(m.is_paragraph_line("%% text"))
        self.assertFalse(m.is_paragraph_line(" % text"))

    def test_strip_markup_removes_at_most_one_space(self):
        self.assertEqual(m.strip_markup("%   code", 1), "  code")
        self.assertEqual(m.strip_markup("%", 1), "")
        self.assertEqual(m.strip_markup("%% Title", 2), "Title")

    def test_custom_comment_chars(self):
        cfg = PublishConfig(
            comment_chars=(";", "#"),
            format="html",
            image_format=None,
            show_code=True,
            eval_code=False,
            catch_error=True,
            max_output_lines=None,
            output_dir=None,
            code_to_evaluate="",
            interpreter=["true"],
            script_suffixes={".scm"},
        )
        self.assertTrue(m.is_header(";; Title", cfg))
        self.assertFalse(m.is_header("%% Title", cfg))


class TestSegmenter(unittest.TestCase):
    def test_no_headers_gives_one_trimmed_code_segment(self):
        lines = ["", "x = 1", "% a real comment", "y = 2", "", ""]
        title_intro, segments = m.segment_lines(lines)

        self.assertIsNone(title_intro)
        self.assertEqual(len(segments), 1)
        self.assertIsInstance(segments[0], CodeSegment)
        self.assertEqual(segments[0].lines, ["x = 1", "% a real comment", "y = 2"])
        self.assertEqual((segments[0].start, segments[0].end), (1, 3))

    def test_title_promoted_when_second_header_follows(self):
        doc = m.parse_script(["%% Title", "", "%% Second"])

        self.assertEqual(doc.title, "Title")
        self.assertEqual(doc.intro, [])
        self.assertEqual(len(doc.body), 1)
        self.assertIsInstance(doc.body[0], HeaderSegment)
        self.assertEqual(doc.body[0].title, "Second")

    def test_lone_header_is_not_promoted(self):
        doc = m.parse_script(["%% Only Title"])

        self.assertEqual(doc.title, "")
        self.assertEqual(len(doc.body), 1)
        self.assertEqual(doc.body[0].title, "Only Title")
        self.assertEqual(doc.body[0].body, [])

    def test_header_followed_by_code_is_not_promoted(self):
        doc = m.parse_script(["%% Title", "% intro text", "", "x = 1"])

        self.assertEqual(doc.title, "")
        self.assertEqual([type(s) for s in doc.body], [HeaderSegment, CodeSegment])
        self.assertEqual(doc.body[0].content, [Text("intro text")])
        self.assertEqual(doc.body[1].lines, ["x = 1"])

    def test_intro_is_parsed_into_content(self):
        doc = m.parse_script(
            ["## Title", "# intro", "## Next", "# body", "disp (1)"]
        )

        self.assertEqual(doc.title, "Title")
        self.assertEqual(doc.intro, [Text("intro")])
        self.assertEqual(doc.body[0].title, "Next")
        self.assertEqual(doc.body[0].content, [Text("body")])
        self.assertEqual(doc.body[1].lines, ["disp (1)"])

    def test_no_break_header(self):
        _, segments = m.segment_lines(["x = 1", "%%% Sub", "% text"])

        self.assertEqual(len(segments), 2)
        self.assertFalse(segments[1].breaks_section)
        self.assertEqual(segments[1].title, "Sub")
        self.assertEqual(segments[1].body, ["text"])

    def test_untitled_blank_header_is_dropped(self):
        _, segments = m.segment_lines(["x = 1", "%%", "%", "y = 2"])

        self.assertEqual([type(s) for s in segments], [CodeSegment, CodeSegment])
        self.assertEqual(segments[1].lines, ["y = 2"])

    def test_untitled_header_with_content_is_kept(self):
        _, segments = m.segment_lines(["%%", "% Content without head."])

        self.assertEqual(len(segments), 1)
        self.assertEqual(segments[0].title, "")
        self.assertEqual(segments[0].body, ["Content without head."])

    def test_comment_lines_after_code_stay_code(self):
        _, segments = m.segment_lines(
            ["%% Head", "% text", "", "% some real comment", "i = 0:2*pi"]
        )

        self.assertEqual(segments[1].lines, ["% some real comment", "i = 0:2*pi"])

    def test_empty_input(self):
        self.assertEqual(m.segment_lines([]), (None, []))

    def test_zero_progress_is_an_invariant_violation(self):
        with mock.patch.object(m, "_scan_code_segment", return_value=(None, 0)):
            with self.assertRaises(InternalInvariantViolation) as ctx:
                m.segment_lines(["x = 1"])
        self.assertIn("line 1", str(ctx.exception))


class TestParagraphContent(unittest.TestCase):
    def test_adjacent_text_lines_merge(self):
        items = m.parse_paragraph_content(["line one", "line two", "", "* item"])
        self.assertEqual(items, [Text("line one\nline two"), BulletedList(["item"])])

    def test_text_blocks_are_coalesced(self):
        items = m.parse_paragraph_content(["a", "", "b"])
        self.assertEqual(items, [Text("a\n\nb")])

    def test_code_literal(self):
        items = m.parse_paragraph_content(["  x = 1", "  y = 2"])
        self.assertEqual(items, [CodeLiteral("x = 1\ny = 2")])

    def test_code_literal_keeps_interior_blank_lines(self):
        items = m.parse_paragraph_content(["  a", "", "  b"])
        self.assertEqual(items, [CodeLiteral("a\n\nb")])

    def test_preformatted_text(self):
        items = m.parse_paragraph_content([" pre", " text"])
        self.assertEqual(items, [PreformattedText("pre\ntext")])

    def test_mixed_indent_is_preformatted(self):
        items = m.parse_paragraph_content(["  two", " one"])
        self.assertEqual(items, [PreformattedText(" two\none")])

    def test_bulleted_list_with_continuation_line(self):
        items = m.parse_paragraph_content(["* first", "continued", "* second"])
        self.assertEqual(items, [BulletedList(["first\ncontinued", "second"])])

    def test_numbered_list(self):
        items = m.parse_paragraph_content(["# one", "# two"])
        self.assertEqual(items, [NumberedList(["one", "two"])])

    def test_include_is_case_insensitive(self):
        items = m.parse_paragraph_content(["<INCLUDE> helper.m </Include>"])
        self.assertEqual(items, [Include("helper.m")])

    def test_graphic(self):
        items = m.parse_paragraph_content(["<<fig.png>>"])
        self.assertEqual(items, [Graphic("fig.png")])

    def test_ambiguous_graphic_uses_first_closing(self):
        with self.assertWarns(MalformedMarkup):
            items = m.parse_paragraph_content(["<<a.png>> and <<b.png>>"])
        self.assertEqual(items, [Graphic("a.png")])

    def test_empty_graphic_is_text(self):
        items = m.parse_paragraph_content(["<<>>"])
        self.assertEqual(items, [Text("<<>>")])

    def test_html_region(self):
        items = m.parse_paragraph_content(["<html>", "<table></table>", "</html>"])
        self.assertEqual(items, [Html("<table></table>")])

    def test_html_region_between_text(self):
        items = m.parse_paragraph_content(
            ["before", "<HTML>", "<b>x</b>", "</html>", "after"]
        )
        self.assertEqual(items, [Text("before"), Html("<b>x</b>"), Text("after")])

    def test_unterminated_latex_keeps_content(self):
        with self.assertWarns(MalformedMarkup):
            items = m.parse_paragraph_content(["<latex>", "\\alpha"])
        self.assertEqual(items, [Latex("\\alpha")])

    def test_unterminated_empty_region(self):
        with self.assertWarns(MalformedMarkup):
            items = m.parse_paragraph_content(["text", "<html>"])
        self.assertEqual(items, [Text("text")])

    def test_text_items_never_adjacent(self):
        items = m.parse_paragraph_content(
            ["a", "", "b", "", "<html>", "x", "</html>", "c", "", "d"]
        )
        for left, right in zip(items, items[1:]):
            self.assertFalse(isinstance(left, Text) and isinstance(right, Text))
        self.assertEqual(items, [Text("a\n\nb"), Html("x"), Text("c\n\nd")])


class TestInlineMarkup(unittest.TestCase):
    def test_odd_delimiter_stays_literal(self):
        self.assertEqual(m.tokenize_inline_markup("a *b"), [("plaintext", "a *b")])

    def test_last_unpaired_delimiter_stays_literal(self):
        self.assertEqual(
            m.tokenize_inline_markup("x *a* *b"),
            [("plaintext", "x "), ("bold", [("plaintext", "a")]), ("plaintext", " *b")],
        )

    def test_emphasis_kinds(self):
        self.assertEqual(
            m.tokenize_inline_markup("*bold* _it_ |mono|"),
            [
                ("bold", [("plaintext", "bold")]),
                ("plaintext", " "),
                ("italic", [("plaintext", "it")]),
                ("plaintext", " "),
                ("monospaced", [("plaintext", "mono")]),
            ],
        )

    def test_italic_nests_inside_bold(self):
        self.assertEqual(
            m.tokenize_inline_markup("*bold _it_*"),
            [("bold", [("plaintext", "bold "), ("italic", [("plaintext", "it")])])],
        )

    def test_bold_nests_inside_italic(self):
        self.assertEqual(
            m.tokenize_inline_markup("_a *b* c_"),
            [
                (
                    "italic",
                    [
                        ("plaintext", "a "),
                        ("bold", [("plaintext", "b")]),
                        ("plaintext", " c"),
                    ],
                )
            ],
        )

    def test_crossing_delimiters_do_not_pair(self):
        self.assertEqual(
            m.tokenize_inline_markup("*a _b* c_"),
            [("bold", [("plaintext", "a _b")]), ("plaintext", " c_")],
        )

    def test_symbols_inside_emphasis(self):
        self.assertEqual(
            m.tokenize_inline_markup("*Octave(R)*"),
            [("bold", [("plaintext", "Octave"), ("registered_trademark", "(R)")])],
        )

    def test_trademarks(self):
        self.assertEqual(
            m.tokenize_inline_markup("TEXT(TM) and (R)"),
            [
                ("plaintext", "TEXT"),
                ("trademark", "(TM)"),
                ("plaintext", " and "),
                ("registered_trademark", "(R)"),
            ],
        )

    def test_link_with_label(self):
        self.assertEqual(
            m.tokenize_inline_markup("<https://octave.org GNU Octave>"),
            [("link", "https://octave.org\u0000GNU Octave")],
        )

    def test_link_without_label(self):
        self.assertEqual(
            m.tokenize_inline_markup("see <https://octave.org>"),
            [("plaintext", "see "), ("link", "https://octave.org\u0000https://octave.org")],
        )

    def test_math_is_protected_from_emphasis(self):
        self.assertEqual(
            m.tokenize_inline_markup("value $x_1$ and $$a*b$$"),
            [
                ("plaintext", "value "),
                ("math_inline", "x_1"),
                ("plaintext", " and "),
                ("math_block", "a*b"),
            ],
        )


if __name__ == "__main__":
    unittest.main(verbosity=2)
