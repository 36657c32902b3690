import os
import sys
from rich.console import Console
from rich.text import Text
from rich.panel import Panel
from . import input_handler
from .layout import line_count
from .models import PlaybackState

# ================================
# CENTRALIZED UI CONFIGURATION
# ================================

class UIIcons:
    """Central place to configure all UI icons and separators."""

    # Status icons
    PLAYING = "▶"
    PAUSED = "⏸"
    IDLE = "⏹"

    # Navigation icons
    SENTENCE_NAVIGATION = "⇅"
    PARAGRAPH_NAVIGATION = "↑↓"
    SPEED = "⏩"
    QUIT = "⏻"

    # Separators
    SEPARATOR = "⸱"

    # Progress bar
    PROGRESS_FILLED = "▓"
    PROGRESS_EMPTY = "░"
    LINE_SEPARATOR_SHORT = "─"

class UIColors:
    """Central place to configure all UI colors and styles."""

    # Status colors
    PLAYING_STATUS = "green"
    PAUSED_STATUS = "yellow"
    IDLE_STATUS = "blue"

    # Control and navigation colors
    CONTROL_KEYS = "white"
    CONTROL_ICONS = "green"
    QUIT_ICON = "red"
    SEPARATORS = "bright_blue"

    # Panel and UI structure
    PANEL_BORDER = "bright_blue"
    PANEL_TITLE = "bold blue"

    # Text content colors
    TEXT_NORMAL = "white"
    TEXT_HIGHLIGHT = "bold magenta"  # Current sentence highlight
    WORD_HIGHLIGHT = "bold yellow"   # Word being spoken

ICONS = UIIcons()
COLORS = UIColors()

# Panel border plus (1, 4) padding on each side
PANEL_COLUMNS = 6
PANEL_ROWS = 3


def get_terminal_size():
    """Get terminal size."""
    try:
        columns, rows = os.get_terminal_size()
        return max(columns, 40), max(rows, 10)
    except OSError:
        return 80, 24


def screen_to_layout(reader, x_pos, y_pos):
    """Converts a 1-based terminal mouse position into layout (column, line) coordinates."""
    return x_pos - PANEL_COLUMNS, y_pos - PANEL_ROWS + reader.scroll_offset


def highlight_spans(controller):
    """
    Finds what to highlight in the laid-out nodes.

    Returns:
        dict: node key -> list of (start, end, style) ranges local to that node
    """
    speaking_range = controller.speaking_range
    if speaking_range is None:
        return {}
    group = controller.groups[speaking_range.group_index]
    spans = {}
    for node_start, node_end, node in group.node_offsets():
        start = max(node_start, speaking_range.start)
        end = min(node_end, speaking_range.end)
        if start < end:
            spans.setdefault(node.key, []).append((start - node_start, end - node_start, COLORS.TEXT_HIGHLIGHT))
        offset = speaking_range.char_offset
        if controller.state == PlaybackState.SPEAKING and node_start <= offset < node_end:
            word_end = offset
            while word_end < node_end and not group.text[word_end].isspace():
                word_end += 1
            if word_end > offset:
                spans.setdefault(node.key, []).append((offset - node_start, word_end - node_start, COLORS.WORD_HIGHLIGHT))
    return spans


def build_lines(nodes, highlights):
    """Assembles laid-out nodes into one rich Text per terminal line."""
    rows = {}
    for node in nodes:
        rows.setdefault(int(node.bounding_box.top), []).append(node)
    lines = []
    for line_index in range(line_count(nodes)):
        line = Text("", style=COLORS.TEXT_NORMAL)
        for node in sorted(rows.get(line_index, []), key=lambda n: n.bounding_box.left):
            padding = int(node.bounding_box.left) - len(line.plain)
            if padding > 0:
                line.append(" " * padding)
            piece = Text(node.text.rstrip("\n"))
            for start, end, style in highlights.get(node.key, []):
                piece.stylize(style, start, end)
            line.append(piece)
        lines.append(line)
    return lines


def scroll_to_current(reader, available_height):
    """Keeps the line being spoken inside the visible window."""
    speaking_range = reader.controller.speaking_range
    if speaking_range is None or not speaking_range.nodes:
        return
    target_line = int(speaking_range.nodes[0].bounding_box.top)
    if target_line < reader.scroll_offset or target_line >= reader.scroll_offset + available_height:
        reader.scroll_offset = max(0, target_line - available_height // 3)


def get_status_subtitle(reader, width):
    """Bottom line with the playback state, rate and the key bindings."""
    state = reader.controller.state
    if state == PlaybackState.SPEAKING:
        status = f"[{COLORS.PLAYING_STATUS}]{ICONS.PLAYING}[/{COLORS.PLAYING_STATUS}]"
    elif state == PlaybackState.PAUSED:
        status = f"[{COLORS.PAUSED_STATUS}]{ICONS.PAUSED}[/{COLORS.PAUSED_STATUS}]"
    else:
        status = f"[{COLORS.IDLE_STATUS}]{ICONS.IDLE}[/{COLORS.IDLE_STATUS}]"

    keys = input_handler.KEYBOARD_SHORTCUTS
    sep = f" [{COLORS.SEPARATORS}]{ICONS.SEPARATOR}[/{COLORS.SEPARATORS}] "
    rate = f"{reader.controller.options.rate:g}x"
    parts = [
        f"{status} [{COLORS.CONTROL_KEYS}]{keys['play_pause']}[/{COLORS.CONTROL_KEYS}]",
        f"[{COLORS.CONTROL_KEYS}]{keys['prev_paragraph']} {keys['next_paragraph']}[/{COLORS.CONTROL_KEYS}] "
        f"[{COLORS.CONTROL_ICONS}]{ICONS.PARAGRAPH_NAVIGATION}[/{COLORS.CONTROL_ICONS}]",
        f"[{COLORS.CONTROL_KEYS}]{keys['prev_sentence']} {keys['next_sentence']}[/{COLORS.CONTROL_KEYS}] "
        f"[{COLORS.CONTROL_ICONS}]{ICONS.SENTENCE_NAVIGATION}[/{COLORS.CONTROL_ICONS}]",
        f"[{COLORS.CONTROL_KEYS}]{keys['decrease_speed']} {keys['increase_speed']}[/{COLORS.CONTROL_KEYS}] "
        f"[{COLORS.CONTROL_ICONS}]{ICONS.SPEED}[/{COLORS.CONTROL_ICONS}] {rate}",
        f"[{COLORS.CONTROL_KEYS}]{keys['quit']}[/{COLORS.CONTROL_KEYS}] "
        f"[{COLORS.QUIT_ICON}]{ICONS.QUIT}[/{COLORS.QUIT_ICON}]",
    ]
    subtitle = sep.join(parts)
    if Text.from_markup(subtitle).cell_len > width - 6:
        subtitle = sep.join([parts[0], parts[-2]])
    return subtitle


def get_progress_title(reader, width):
    groups = reader.controller.groups
    position = reader.controller.position
    percent = int(100 * position.group_index / max(1, len(groups) - 1)) if position and groups else 0
    progress_bar_width = 10
    filled_blocks = int((percent / 100) * progress_bar_width)
    progress_bar = ICONS.PROGRESS_FILLED * filled_blocks + ICONS.PROGRESS_EMPTY * (progress_bar_width - filled_blocks)
    percentage_text = f"{percent}% {progress_bar}"

    available_width = width - len(percentage_text) - 6
    title_text = reader.title
    if len(title_text) > available_width:
        title_text = f"{title_text[:max(0, available_width - 3)]}..."
    remaining_space = width - len(title_text) - len(percentage_text) - 8
    connecting_line = ICONS.LINE_SEPARATOR_SHORT * max(0, remaining_space)
    return f"{title_text} {connecting_line} {percentage_text}"


def display_ui(reader):
    """Draws the document panel with the current sentence highlighted."""
    width, height = get_terminal_size()
    available_height = max(1, height - 4)
    if reader.auto_scroll_enabled:
        scroll_to_current(reader, available_height)

    lines = build_lines(reader.nodes, highlight_spans(reader.controller))
    visible = lines[reader.scroll_offset:reader.scroll_offset + available_height]
    content = Text("\n").join(visible)

    panel = Panel(
        content,
        title=f"[{COLORS.PANEL_TITLE}]{get_progress_title(reader, width)}[/{COLORS.PANEL_TITLE}]",
        subtitle=get_status_subtitle(reader, width),
        border_style=COLORS.PANEL_BORDER,
        padding=(1, 4),
        title_align="center",
        subtitle_align="center",
        width=width,
        height=height,
        expand=False
    )

    temp_console = Console(width=width, height=height, force_terminal=True)
    with temp_console.capture() as capture:
        temp_console.print(panel, end='', overflow='crop')
    output_lines = capture.get().split('\n')[:height]

    sys.stdout.write('\033[?25l\033[H')
    sys.stdout.write('\n'.join(output_lines))
    sys.stdout.flush()
