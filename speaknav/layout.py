"""Lays text nodes out as terminal lines and gives them geometry."""

import re

from .models import BoundingBox, TextNode

CHUNK_PATTERN = re.compile(r'\S+\s*|\s+')


def _chunks(text, width):
    for match in CHUNK_PATTERN.finditer(text):
        chunk = match.group()
        # Words longer than a line are broken hard
        while len(chunk.rstrip()) > width:
            yield chunk[:width]
            chunk = chunk[width:]
        if chunk:
            yield chunk


def layout_nodes(nodes: list[TextNode], width: int) -> list[TextNode]:
    """
    Wraps nodes into lines of at most width columns.

    Every block container starts on a new line, with a blank line between blocks.
    A node that wraps is split into one node per line; concatenating the result
    reproduces the input text exactly. The first piece of a node keeps the node's
    key, later pieces are keyed by the line they land on, so a reflow invalidates
    those keys the way a real re-layout does.

    Args:
        nodes: Text nodes in reading order
        width: Available columns, at least 1

    Returns:
        list[TextNode]: Laid-out nodes with bounding boxes in (column, line) units
    """
    width = max(1, width)
    laid_out = []
    line, column = 0, 0
    container = object()
    for node in nodes:
        if node.container != container:
            if laid_out:
                line, column = line + 2, 0
            container = node.container

        piece, piece_start, piece_index = "", column, 0
        for chunk in _chunks(node.text, width):
            if column > 0 and column + len(chunk.rstrip()) > width:
                if piece:
                    laid_out.append(_piece(node, piece, piece_index, piece_start, line))
                    piece_index += 1
                line, column = line + 1, 0
                piece, piece_start = "", 0
            piece += chunk
            column += len(chunk)
        if piece:
            laid_out.append(_piece(node, piece, piece_index, piece_start, line))
    return laid_out


def _piece(node, text, index, column, line):
    key = node.key if index == 0 else f"{node.key}#{line}"
    return TextNode(key=key, text=text, bounding_box=BoundingBox(column, line, len(text), 1),
                    container=node.container)


def line_count(nodes: list[TextNode]) -> int:
    if not nodes:
        return 0
    return int(max(node.bounding_box.top for node in nodes)) + 1
