#!/usr/bin/env python3
"""
Tests for extracting text nodes from documents.
"""

import os
import sys
import tempfile
import unittest
from unittest.mock import Mock

# Add the project root to the path so we can import speaknav modules
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from speaknav.content_parser import extract_nodes, parse_html, parse_text
from speaknav.segmenter import segment


class TestParseHtml(unittest.TestCase):

    def test_inline_markup_stays_in_its_paragraph(self):
        nodes = parse_html('<p id="p1">Sentence <span>one</span>. Sentence <b>two</b>.</p><p id="p2">Next</p>')
        self.assertEqual([n.container for n in nodes], ["p1"] * 5 + ["p2"])
        self.assertEqual("".join(n.text for n in nodes if n.container == "p1"), "Sentence one. Sentence two.")

    def test_keys_are_stable_across_parses(self):
        html = '<div><p>Alpha.</p><p>Beta <i>gamma</i>.</p></div>'
        self.assertEqual([n.key for n in parse_html(html)], [n.key for n in parse_html(html)])
        self.assertEqual(len({n.key for n in parse_html(html)}), 4)

    def test_whitespace_is_collapsed(self):
        nodes = parse_html('<p>\n   Lots   of\n\n space   </p>')
        self.assertEqual(nodes[0].text, "Lots of space ")

    def test_hidden_content_is_skipped(self):
        html = ('<html><head><title>Title</title><style>p {}</style></head>'
                '<body><script>var x = 1;</script><p>Visible<sup>1</sup> text.</p></body></html>')
        self.assertEqual("".join(n.text for n in parse_html(html)), "Visible text.")

    def test_preformatted_text_keeps_whitespace(self):
        nodes = parse_html('<pre>line one\n  line two</pre>')
        self.assertEqual(nodes[0].text, "line one\n  line two")

    def test_line_breaks_become_spaces(self):
        nodes = parse_html('<p>First line<br>second line</p>')
        self.assertEqual("".join(n.text for n in nodes), "First line second line")
        self.assertEqual(len(segment(nodes)), 1)

    def test_unclosed_inner_blocks(self):
        nodes = parse_html('<ul><li>One<li>Two</ul><p>After</p>')
        self.assertEqual([g.text for g in segment(nodes)], ["One", "Two", "After"])


class TestParseText(unittest.TestCase):

    def test_blank_lines_separate_paragraphs(self):
        nodes = parse_text("First line\nstill first.\n\n\nSecond paragraph.\n   \n")
        self.assertEqual([n.text for n in nodes], ["First line still first.", "Second paragraph."])
        self.assertEqual(len(segment(nodes)), 2)


class TestExtractNodes(unittest.TestCase):

    def setUp(self):
        self.console = Mock()
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmpdir.cleanup()

    def write(self, name, content):
        path = os.path.join(self.tmpdir.name, name)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        return path

    def test_txt(self):
        nodes = extract_nodes(self.write("doc.txt", "One.\n\nTwo."), self.console)
        self.assertEqual([n.text for n in nodes], ["One.", "Two."])

    def test_html(self):
        nodes = extract_nodes(self.write("doc.html", "<p>Hello.</p>"), self.console)
        self.assertEqual([n.text for n in nodes], ["Hello."])

    def test_markdown(self):
        try:
            import markdown  # noqa: F401
        except ImportError:
            self.skipTest("markdown is not installed")
        nodes = extract_nodes(self.write("doc.md", "# Title\n\nSome *emphasis* here.\n"), self.console)
        self.assertEqual([g.text for g in segment(nodes)], ["Title", "Some emphasis here."])

    def test_unsupported_extension(self):
        self.assertIsNone(extract_nodes(self.write("doc.xyz", "text"), self.console))
        self.console.print.assert_called()

    def test_missing_file(self):
        self.assertIsNone(extract_nodes(os.path.join(self.tmpdir.name, "absent.txt"), self.console))


if __name__ == '__main__':
    unittest.main()
