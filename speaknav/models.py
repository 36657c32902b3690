"""Shared data types for the speaknav speech navigator."""

from dataclasses import dataclass, field
from functools import cached_property
from enum import Enum

# Stable identity of a text node across content rebuilds.
NodeKey = str


@dataclass(frozen=True)
class BoundingBox:
    left: float = 0.0
    top: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def contains(self, x: float, y: float) -> bool:
        return (self.left <= x < self.left + self.width and
                self.top <= y < self.top + self.height)


@dataclass(frozen=True)
class TextNode:
    """A leaf of the content tree: a run of text inside a block container."""
    key: NodeKey
    text: str
    bounding_box: BoundingBox = field(default_factory=BoundingBox)
    container: NodeKey | None = None  # Block-level ancestor, None for the root flow


@dataclass(frozen=True)
class SentenceSpan:
    start: int  # Inclusive offset into the owning group's text
    end: int    # Exclusive

    def __len__(self):
        return self.end - self.start

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end


@dataclass(frozen=True)
class NodeGroup:
    """One paragraph-equivalent unit of speakable text."""
    nodes: tuple[TextNode, ...]
    sentences: tuple[SentenceSpan, ...]

    @cached_property
    def text(self) -> str:
        return "".join(node.text for node in self.nodes)

    @property
    def keys(self) -> list[NodeKey]:
        return [node.key for node in self.nodes]

    def node_offsets(self) -> list[tuple[int, int, TextNode]]:
        """Returns (start, end, node) for every node in the group."""
        offsets = []
        start = 0
        for node in self.nodes:
            end = start + len(node.text)
            offsets.append((start, end, node))
            start = end
        return offsets

    def nodes_in_range(self, start: int, end: int) -> list[TextNode]:
        return [node for node_start, node_end, node in self.node_offsets()
                if node_start < end and node_end > start]

    def span_of(self, keys) -> tuple[int, int] | None:
        """Returns the (start, end) offsets covering every node whose key is in keys."""
        covered = [(node_start, node_end) for node_start, node_end, node in self.node_offsets()
                   if node.key in keys]
        if not covered:
            return None
        return covered[0][0], covered[-1][1]


@dataclass(frozen=True)
class Position:
    """The next character to be spoken."""
    group_index: int = 0
    sentence_index: int = 0
    char_offset: int = 0


class PlaybackState(Enum):
    IDLE = "idle"
    SPEAKING = "speaking"
    PAUSED = "paused"


@dataclass
class SpeechOptions:
    rate: float = 1.0
    voice: str | None = None


@dataclass(frozen=True)
class SpeakingRange:
    """Read-only view of what is being spoken, for highlight rendering."""
    group_index: int
    sentence_index: int
    start: int        # Sentence start offset within the group
    end: int          # Sentence end offset within the group
    char_offset: int  # Last reported progress offset
    nodes: tuple[TextNode, ...]
