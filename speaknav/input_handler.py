import os
import sys
import json
import logging

from .controller import Command

# Default keyboard shortcuts
DEFAULT_KEYBOARD_SHORTCUTS = {
    "next_paragraph": "l",
    "prev_paragraph": "h",
    "next_sentence": "k",
    "prev_sentence": "j",
    "play_pause": "p",
    "decrease_speed": ",",
    "increase_speed": ".",
    "quit": "q",
}

KEYBOARD_SHORTCUTS = dict(DEFAULT_KEYBOARD_SHORTCUTS)

# Arrow key final bytes of '\x1b[' sequences
ARROW_COMMANDS = {
    'C': Command.NEXT_SENTENCE,
    'D': Command.PREVIOUS_SENTENCE,
    'B': Command.NEXT_PARAGRAPH,
    'A': Command.PREVIOUS_PARAGRAPH,
}


def load_keyboard_shortcuts(file_path=None):
    """Load keyboard shortcuts from a JSON file, keeping defaults for missing keys."""
    global KEYBOARD_SHORTCUTS
    KEYBOARD_SHORTCUTS = dict(DEFAULT_KEYBOARD_SHORTCUTS)
    if not file_path:
        return KEYBOARD_SHORTCUTS
    try:
        with open(file_path, 'r') as f:
            KEYBOARD_SHORTCUTS.update(json.load(f))
    except (OSError, ValueError) as e:
        logging.error(f"Could not load keyboard shortcuts from {file_path}: {e}")
    return KEYBOARD_SHORTCUTS


def command_for_key(data):
    """
    Maps a single key press to a reader action.

    Returns:
        Command, 'toggle_pause', 'quit', or None for unbound keys
    """
    keys = KEYBOARD_SHORTCUTS
    if data == keys["quit"]:
        return 'quit'
    if data == keys["play_pause"]:
        return 'toggle_pause'
    bindings = {
        keys["next_paragraph"]: Command.NEXT_PARAGRAPH,
        keys["prev_paragraph"]: Command.PREVIOUS_PARAGRAPH,
        keys["next_sentence"]: Command.NEXT_SENTENCE,
        keys["prev_sentence"]: Command.PREVIOUS_SENTENCE,
        keys["increase_speed"]: Command.INCREASE_SPEED,
        keys["decrease_speed"]: Command.DECREASE_SPEED,
    }
    return bindings.get(data)


def parse_mouse_sequence(sequence):
    """
    Parses an SGR mouse report such as '\\x1b[<0;12;5M'.

    Returns:
        (button, x, y, pressed) or None if the sequence is malformed
    """
    if not sequence.startswith('\x1b[<') or sequence[-1] not in 'Mm':
        return None
    parts = sequence[3:-1].split(';')
    if len(parts) < 3:
        return None
    try:
        button, x_pos, y_pos = int(parts[0]), int(parts[1]), int(parts[2])
    except ValueError:
        return None
    return button, x_pos, y_pos, sequence[-1] == 'M'


class InputDecoder:
    """Collects stdin bytes into key presses, arrow keys and mouse clicks."""

    def __init__(self):
        self.sequence_buffer = ''
        self.sequence_active = False

    def feed(self, data):
        """
        Feeds one character.

        Returns:
            An action for the reader: Command, 'toggle_pause', 'quit',
            ('click', (x, y)), or None while a sequence is incomplete
        """
        if data == '\x1b':
            self.sequence_buffer = data
            self.sequence_active = True
            return None

        if not self.sequence_active:
            return command_for_key(data)

        self.sequence_buffer += data
        sequence = self.sequence_buffer
        if sequence.startswith('\x1b[<'):
            if data not in 'Mm':
                return None
            self._reset()
            parsed = parse_mouse_sequence(sequence)
            if parsed:
                button, x_pos, y_pos, pressed = parsed
                if button == 0 and pressed:
                    return ('click', (x_pos, y_pos))
            return None
        if sequence.startswith('\x1b[') and len(sequence) >= 3:
            self._reset()
            return ARROW_COMMANDS.get(data)
        if len(sequence) >= 2 and not sequence.startswith('\x1b['):
            # Not a CSI sequence; drop it
            self._reset()
        return None

    def _reset(self):
        self.sequence_buffer = ''
        self.sequence_active = False


def process_input(reader):
    """Process user input from stdin."""
    try:
        data = os.read(sys.stdin.fileno(), 1024).decode('utf-8', errors='ignore')
    except OSError as e:
        logging.error(f"Failed to read from stdin: {e}")
        return
    if not data:
        # EOF on stdin
        reader.loop.remove_reader(sys.stdin.fileno())
        return
    for char in data:
        action = reader.input_decoder.feed(char)
        if action is not None:
            reader.post_command(action)
