"""Reading position derivations over a list of paragraph groups."""

from .models import NodeGroup, Position


def char_to_sentence(group: NodeGroup, offset: int) -> int:
    """
    Returns the index of the sentence containing offset.

    Offsets at or past the end of the text map to the last sentence.
    """
    for index, span in enumerate(group.sentences):
        if offset < span.end:
            return index
    return len(group.sentences) - 1


def sentence_start(group: NodeGroup, sentence_index: int) -> int:
    sentence_index = max(0, min(sentence_index, len(group.sentences) - 1))
    return group.sentences[sentence_index].start


def clamp_to_group(group_index: int, group_count: int) -> int:
    return max(0, min(group_index, group_count - 1))


def start_of(groups: list[NodeGroup], group_index: int, sentence_index: int = 0) -> Position:
    """Position at the first character of a sentence."""
    group_index = clamp_to_group(group_index, len(groups))
    group = groups[group_index]
    sentence_index = max(0, min(sentence_index, len(group.sentences) - 1))
    return Position(group_index, sentence_index, sentence_start(group, sentence_index))


def at_offset(groups: list[NodeGroup], group_index: int, offset: int) -> Position:
    """Position at an arbitrary character of a group, clamped to its text."""
    group_index = clamp_to_group(group_index, len(groups))
    group = groups[group_index]
    offset = max(0, min(offset, len(group.text) - 1))
    return Position(group_index, char_to_sentence(group, offset), offset)


def rewound(groups: list[NodeGroup], position: Position) -> Position:
    """The same sentence, from its first character."""
    return start_of(groups, position.group_index, position.sentence_index)


def is_at_sentence_start(groups: list[NodeGroup], position: Position) -> bool:
    group = groups[position.group_index]
    return position.char_offset <= sentence_start(group, position.sentence_index)


def next_sentence(groups: list[NodeGroup], position: Position) -> Position | None:
    group = groups[position.group_index]
    if position.sentence_index + 1 < len(group.sentences):
        return start_of(groups, position.group_index, position.sentence_index + 1)
    if position.group_index + 1 < len(groups):
        return start_of(groups, position.group_index + 1)
    return None


def previous_sentence(groups: list[NodeGroup], position: Position) -> Position | None:
    """
    Steps back one sentence.

    From the middle of a sentence this targets the start of that same sentence;
    only from a sentence's first character does it move to the one before, crossing
    into the last sentence of the previous group when needed.
    """
    if not is_at_sentence_start(groups, position):
        return rewound(groups, position)
    if position.sentence_index > 0:
        return start_of(groups, position.group_index, position.sentence_index - 1)
    if position.group_index > 0:
        previous_group = groups[position.group_index - 1]
        return start_of(groups, position.group_index - 1, len(previous_group.sentences) - 1)
    return None


def next_paragraph(groups: list[NodeGroup], position: Position) -> Position | None:
    if position.group_index + 1 < len(groups):
        return start_of(groups, position.group_index + 1)
    return None


def previous_paragraph(groups: list[NodeGroup], position: Position) -> Position | None:
    if position.group_index > 0:
        return start_of(groups, position.group_index - 1)
    return None
