#!/usr/bin/env python3
"""
Tests for paragraph grouping and sentence splitting.
"""

import os
import sys
import unittest

# Add the project root to the path so we can import speaknav modules
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from speaknav.models import BoundingBox, SentenceSpan, TextNode
from speaknav.segmenter import (
    AbbreviationAwareSplitter,
    group_at_point,
    group_index_for_key,
    segment,
    split_sentences,
)


def node(key, text, container, box=None):
    return TextNode(key=key, text=text, bounding_box=box or BoundingBox(), container=container)


def sentence_texts(text, splitter=None):
    return [text[span.start:span.end] for span in split_sentences(text, splitter)]


class TestSplitSentences(unittest.TestCase):

    def test_splits_on_terminal_punctuation(self):
        self.assertEqual(
            sentence_texts("First sentence. Second sentence! Third sentence?"),
            ["First sentence. ", "Second sentence! ", "Third sentence?"],
        )

    def test_spans_are_gap_free_and_cover_the_text(self):
        text = "One.  Two!\nThree?   Four"
        spans = split_sentences(text)
        self.assertEqual(spans[0].start, 0)
        self.assertEqual(spans[-1].end, len(text))
        for previous, current in zip(spans, spans[1:]):
            self.assertEqual(previous.end, current.start)
        self.assertEqual("".join(sentence_texts(text)), text)

    def test_text_without_punctuation_is_one_sentence(self):
        self.assertEqual(split_sentences("Paragraph 1"), [SentenceSpan(0, 11)])

    def test_trailing_whitespace_stays_with_last_sentence(self):
        self.assertEqual(sentence_texts("Done.   "), ["Done.   "])

    def test_ellipsis_ends_only_once(self):
        self.assertEqual(sentence_texts("Wait... what? Yes."), ["Wait... ", "what? ", "Yes."])

    def test_periods_inside_words_do_not_split(self):
        self.assertEqual(sentence_texts("Pi is 3.14 or so, e.g, roughly."), ["Pi is 3.14 or so, e.g, roughly."])

    def test_whitespace_only_text_has_no_sentences(self):
        self.assertEqual(split_sentences("  \n\t "), [])
        self.assertEqual(split_sentences(""), [])

    def test_strict_splitter_breaks_after_abbreviations(self):
        self.assertEqual(sentence_texts("Dr. Smith arrived."), ["Dr. ", "Smith arrived."])

    def test_abbreviation_aware_splitter(self):
        splitter = AbbreviationAwareSplitter()
        self.assertEqual(
            sentence_texts("Dr. Smith arrived. He sat down.", splitter),
            ["Dr. Smith arrived. ", "He sat down."],
        )
        self.assertEqual(
            sentence_texts("J. F. Kennedy spoke. People listened.", splitter),
            ["J. F. Kennedy spoke. ", "People listened."],
        )

    def test_split_is_deterministic(self):
        text = "Alpha. Beta gamma! Delta?"
        self.assertEqual(split_sentences(text), split_sentences(text))


class TestSegment(unittest.TestCase):

    def test_groups_by_container(self):
        nodes = [
            node("a", "Sentence ", "p1"),
            node("b", "one", "p1"),
            node("c", ". Sentence two.", "p1"),
            node("d", "Paragraph 2", "p2"),
        ]
        groups = segment(nodes)
        self.assertEqual(len(groups), 2)
        self.assertEqual(groups[0].text, "Sentence one. Sentence two.")
        self.assertEqual(groups[0].keys, ["a", "b", "c"])
        self.assertEqual(groups[1].text, "Paragraph 2")

    def test_partition_is_lossless(self):
        nodes = [node("a", "One. ", "p1"), node("b", "Two.", "p1"), node("c", "Three.", "p2")]
        groups = segment(nodes)
        self.assertEqual([n for group in groups for n in group.nodes], nodes)
        for group in groups:
            self.assertEqual(group.text, "".join(n.text for n in group.nodes))
            self.assertEqual(group.sentences[-1].end, len(group.text))

    def test_whitespace_only_groups_are_dropped(self):
        nodes = [node("a", "   ", "p1"), node("b", "Text.", "p2"), node("c", "\n", "p3")]
        groups = segment(nodes)
        self.assertEqual([group.keys for group in groups], [["b"]])

    def test_empty_input(self):
        self.assertEqual(segment([]), [])

    def test_non_contiguous_container_starts_new_group(self):
        nodes = [node("a", "First.", "p1"), node("b", "Aside.", "aside"), node("c", "Back.", "p1")]
        self.assertEqual(len(segment(nodes)), 3)

    def test_nodes_without_container_form_one_flow(self):
        nodes = [node("a", "Loose ", None), node("b", "text.", None)]
        groups = segment(nodes)
        self.assertEqual(len(groups), 1)
        self.assertEqual(groups[0].text, "Loose text.")

    def test_segment_is_deterministic(self):
        nodes = [node("a", "One. Two.", "p1"), node("b", "Three.", "p2")]
        self.assertEqual(segment(nodes), segment(nodes))

    def test_nodes_in_range(self):
        group = segment([node("a", "Sent 1. ", "p"), node("b", "Sent 2.", "p"), node("c", " Sent 3.", "p")])[0]
        self.assertEqual([n.key for n in group.nodes_in_range(8, 16)], ["b", "c"])

    def test_span_of_selected_nodes(self):
        group = segment([node("a", "Sent 1. ", "p"), node("b", "Sent 2.", "p"), node("c", " Sent 3.", "p")])[0]
        self.assertEqual(group.span_of({"b"}), (8, 15))
        self.assertEqual(group.span_of({"a", "c"}), (0, 23))
        self.assertIsNone(group.span_of({"z"}))


class TestLookups(unittest.TestCase):

    def setUp(self):
        self.groups = segment([
            node("a", "Top paragraph.", "p1", BoundingBox(0, 0, 14, 1)),
            node("b", "Bottom ", "p2", BoundingBox(0, 2, 7, 1)),
            node("c", "paragraph.", "p2", BoundingBox(7, 2, 10, 1)),
        ])

    def test_group_at_point(self):
        self.assertEqual(group_at_point(self.groups, 3, 0), 0)
        self.assertEqual(group_at_point(self.groups, 9, 2.5), 1)
        self.assertIsNone(group_at_point(self.groups, 3, 1))
        self.assertIsNone(group_at_point(self.groups, 40, 0))

    def test_group_index_for_key(self):
        self.assertEqual(group_index_for_key(self.groups, "c"), 1)
        self.assertIsNone(group_index_for_key(self.groups, "missing"))


if __name__ == '__main__':
    unittest.main()
