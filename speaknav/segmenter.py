"""Splits text nodes into paragraph groups and sentence spans."""

import re
from typing import Iterable, Protocol

from .models import NodeGroup, NodeKey, SentenceSpan, TextNode

# A sentence ends at terminal punctuation followed by whitespace or end-of-text.
# The whitespace run stays with the sentence it follows so spans never leave gaps.
SENTENCE_END_PATTERN = re.compile(r'[.!?](?:\s+|$)')

# A list of common English abbreviations that can be followed by a period.
ABBREVIATIONS = [
    "Mr", "Mrs", "Ms", "Dr", "Prof", "Rev", "Hon", "Jr", "Sr",
    "Cpl", "Sgt", "Gen", "Col", "Capt", "Lt", "Pvt",
    "vs", "viz", "etc", "eg", "ie",
    "Co", "Inc", "Ltd", "Corp",
    "St", "Ave", "Blvd",
]
ABBREVIATION_PATTERN = re.compile(r"\b(" + "|".join(ABBREVIATIONS) + r")\.$", re.IGNORECASE)
INITIAL_PATTERN = re.compile(r"\b[A-Z]\.$")


class SentenceSplitter(Protocol):
    def split(self, text: str) -> list[SentenceSpan]:
        ...


class PunctuationSplitter:
    """
    Splits on '.', '!' and '?' followed by whitespace or end-of-text.

    Abbreviations are not special-cased: "Dr. Smith" ends a sentence after "Dr.",
    while "3.14" or "e.g," never do because the period is followed by a
    non-space character.
    """

    def split(self, text: str) -> list[SentenceSpan]:
        if not text.strip():
            return []
        spans = []
        start = 0
        for match in SENTENCE_END_PATTERN.finditer(text):
            if self._is_boundary(text, start, match):
                spans.append(SentenceSpan(start, match.end()))
                start = match.end()
        if start < len(text):
            if spans and not text[start:].strip():
                # Trailing whitespace belongs to the last sentence.
                spans[-1] = SentenceSpan(spans[-1].start, len(text))
            else:
                spans.append(SentenceSpan(start, len(text)))
        return spans

    def _is_boundary(self, text, start, match):
        return True


class AbbreviationAwareSplitter(PunctuationSplitter):
    """
    Like PunctuationSplitter, but refuses to end a sentence on common English
    abbreviations ("Mr.", "etc.") and single initials followed by a capital
    ("J. F. Kennedy").
    """

    def _is_boundary(self, text, start, match):
        head = text[start:match.start() + 1]
        if ABBREVIATION_PATTERN.search(head):
            return False
        if INITIAL_PATTERN.search(head):
            following = text[match.end():match.end() + 1]
            if following.isupper():
                return False
        return True


DEFAULT_SPLITTER = PunctuationSplitter()


def split_sentences(text: str, splitter: SentenceSplitter | None = None) -> list[SentenceSpan]:
    """Splits text into gap-free sentence spans using the given strategy."""
    return (splitter or DEFAULT_SPLITTER).split(text)


def segment(nodes: Iterable[TextNode], splitter: SentenceSplitter | None = None) -> list[NodeGroup]:
    """
    Converts an ordered list of text nodes into paragraph groups.

    Contiguous nodes that share a block container merge into one group; a change of
    container starts a new group. Groups with no speakable text are dropped.
    Deterministic: identical input yields identical groups and offsets.

    Args:
        nodes: Text nodes in reading order
        splitter: Sentence splitting strategy, defaults to PunctuationSplitter

    Returns:
        list[NodeGroup]: Groups in reading order
    """
    groups = []
    run = []
    run_container = None
    for node in nodes:
        if run and node.container != run_container:
            _append_group(groups, run, splitter)
            run = []
        run.append(node)
        run_container = node.container
    if run:
        _append_group(groups, run, splitter)
    return groups


def _append_group(groups, nodes, splitter):
    text = "".join(node.text for node in nodes)
    sentences = split_sentences(text, splitter)
    if sentences:
        groups.append(NodeGroup(nodes=tuple(nodes), sentences=tuple(sentences)))


def group_at_point(groups: list[NodeGroup], x: float, y: float) -> int | None:
    """Finds the group owning the node drawn under a screen point."""
    for index, group in enumerate(groups):
        for node in group.nodes:
            if node.bounding_box.contains(x, y):
                return index
    return None


def group_index_for_key(groups: list[NodeGroup], key: NodeKey) -> int | None:
    for index, group in enumerate(groups):
        if key in group.keys:
            return index
    return None
