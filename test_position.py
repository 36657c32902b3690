#!/usr/bin/env python3
"""
Tests for reading position derivations.
"""

import os
import sys
import unittest

# Add the project root to the path so we can import speaknav modules
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from speaknav import position as tracker
from speaknav.models import Position, TextNode
from speaknav.segmenter import segment


class TestPosition(unittest.TestCase):

    def setUp(self):
        # Sentences of group 0 start at 0, 16 and 33
        self.groups = segment([
            TextNode(key="a", text="First sentence. Second sentence. Third sentence.", container="p1"),
            TextNode(key="b", text="Only one here.", container="p2"),
        ])

    def test_char_to_sentence(self):
        group = self.groups[0]
        self.assertEqual(tracker.char_to_sentence(group, 0), 0)
        self.assertEqual(tracker.char_to_sentence(group, 15), 0)
        self.assertEqual(tracker.char_to_sentence(group, 16), 1)
        self.assertEqual(tracker.char_to_sentence(group, 33), 2)
        self.assertEqual(tracker.char_to_sentence(group, 500), 2)

    def test_sentence_start_is_clamped(self):
        group = self.groups[0]
        self.assertEqual(tracker.sentence_start(group, 1), 16)
        self.assertEqual(tracker.sentence_start(group, -3), 0)
        self.assertEqual(tracker.sentence_start(group, 9), 33)

    def test_clamp_to_group(self):
        self.assertEqual(tracker.clamp_to_group(-1, 2), 0)
        self.assertEqual(tracker.clamp_to_group(5, 2), 1)
        self.assertEqual(tracker.clamp_to_group(1, 2), 1)

    def test_at_offset(self):
        self.assertEqual(tracker.at_offset(self.groups, 0, 23), Position(0, 1, 23))
        self.assertEqual(tracker.at_offset(self.groups, 0, 999), Position(0, 2, 47))

    def test_rewound(self):
        self.assertEqual(tracker.rewound(self.groups, Position(0, 1, 23)), Position(0, 1, 16))
        self.assertEqual(tracker.rewound(self.groups, Position(0, 2, 33)), Position(0, 2, 33))

    def test_next_sentence(self):
        self.assertEqual(tracker.next_sentence(self.groups, Position(0, 0, 5)), Position(0, 1, 16))
        self.assertEqual(tracker.next_sentence(self.groups, Position(0, 2, 40)), Position(1, 0, 0))
        self.assertIsNone(tracker.next_sentence(self.groups, Position(1, 0, 3)))

    def test_previous_sentence(self):
        # Mid-sentence rewinds to the start of the same sentence
        self.assertEqual(tracker.previous_sentence(self.groups, Position(0, 1, 23)), Position(0, 1, 16))
        self.assertEqual(tracker.previous_sentence(self.groups, Position(0, 2, 33)), Position(0, 1, 16))
        self.assertEqual(tracker.previous_sentence(self.groups, Position(1, 0, 0)), Position(0, 2, 33))
        self.assertIsNone(tracker.previous_sentence(self.groups, Position(0, 0, 0)))

    def test_paragraph_navigation(self):
        self.assertEqual(tracker.next_paragraph(self.groups, Position(0, 1, 20)), Position(1, 0, 0))
        self.assertIsNone(tracker.next_paragraph(self.groups, Position(1, 0, 0)))
        self.assertEqual(tracker.previous_paragraph(self.groups, Position(1, 0, 4)), Position(0, 0, 0))
        self.assertIsNone(tracker.previous_paragraph(self.groups, Position(0, 2, 40)))


if __name__ == '__main__':
    unittest.main()
