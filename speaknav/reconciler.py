"""Re-derives paragraph groups after the content tree changes."""

import logging
import re
from dataclasses import dataclass

from . import config
from .models import NodeGroup, Position, TextNode
from .position import char_to_sentence, start_of
from .segmenter import SentenceSplitter, group_index_for_key, segment


@dataclass
class ReconcileResult:
    groups: list[NodeGroup]
    position: Position | None
    matched: bool


def _normalize(text):
    return re.sub(r'\s+', ' ', text).strip()


def find_matching_group(old_group: NodeGroup, new_groups: list[NodeGroup]) -> int | None:
    """
    Finds the group in new_groups holding the same paragraph as old_group.

    Stable node keys are tried first. When every key was invalidated by the rebuild,
    the group whose leading text matches old_group's leading text wins. A new
    group that is only a truncated start of the old text must keep at least
    RECONCILE_MIN_MATCH_CHARS characters, so a short heading cannot claim a paragraph.
    """
    for key in old_group.keys:
        index = group_index_for_key(new_groups, key)
        if index is not None:
            return index

    prefix = _normalize(old_group.text)[:config.RECONCILE_PREFIX_CHARS]
    if not prefix:
        return None
    for index, group in enumerate(new_groups):
        candidate = _normalize(group.text)
        if candidate.startswith(prefix):
            return index
        if len(candidate) >= config.RECONCILE_MIN_MATCH_CHARS and prefix.startswith(candidate):
            return index
    return None


def remap_group_index(old_groups: list[NodeGroup], new_groups: list[NodeGroup], index: int) -> int | None:
    if not new_groups or not 0 <= index < len(old_groups):
        return None
    return find_matching_group(old_groups[index], new_groups)


def reconcile(new_nodes: list[TextNode], old_groups: list[NodeGroup], position: Position | None,
              splitter: SentenceSplitter | None = None) -> ReconcileResult:
    """
    Re-segments new_nodes while keeping the reader's logical position.

    Args:
        new_nodes: Fresh node list from the content provider
        old_groups: Groups the position currently refers to
        position: Current position, or None when there is nothing to keep
        splitter: Sentence splitting strategy passed to the segmenter

    Returns:
        ReconcileResult: New groups and the remapped position. Position is None
        only when the new content has nothing to speak.
    """
    new_groups = segment(new_nodes, splitter)
    if not new_groups:
        logging.warning("Content changed and no speakable text remains.")
        return ReconcileResult(new_groups, None, False)
    if position is None or not old_groups:
        return ReconcileResult(new_groups, start_of(new_groups, 0), False)

    old_group = old_groups[position.group_index]
    index = find_matching_group(old_group, new_groups)
    if index is None:
        logging.warning(
            f"Content changed and paragraph {position.group_index} could not be found; "
            "restarting from the first paragraph."
        )
        return ReconcileResult(new_groups, start_of(new_groups, 0), False)

    new_group = new_groups[index]
    if new_group.text == old_group.text:
        offset = min(position.char_offset, len(new_group.text) - 1)
        new_position = Position(index, char_to_sentence(new_group, offset), offset)
    else:
        new_position = start_of(new_groups, index, position.sentence_index)
    logging.info(f"Reconciled paragraph {position.group_index} to {index}")
    return ReconcileResult(new_groups, new_position, True)
