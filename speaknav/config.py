"""Configuration settings for the speaknav speech navigator."""

import os
from platformdirs import user_cache_dir, user_log_dir

# Default TTS model
DEFAULT_TTS_MODEL = "edge"

# Default voices for TTS models
TTS_VOICES = {
    "edge": "en-US-JennyNeural",
    "console": None,
}

# User-selectable speech rates, slowest first
SPEECH_RATES = [0.5, 1.0, 1.2, 1.5, 2.0]
DEFAULT_SPEECH_RATE = 1.0
MIN_SPEECH_RATE = 0.1
MAX_SPEECH_RATE = 10.0

# Audio settings
AUDIO_DATA_DIR = user_cache_dir("speaknav")
os.makedirs(AUDIO_DATA_DIR, exist_ok=True)
AUDIO_BUFFER = os.path.join(AUDIO_DATA_DIR, "utterance")

# Pace of the silent console backend at rate 1.0
CONSOLE_WORDS_PER_MINUTE = 180

# Number of leading characters compared when matching a paragraph after a reflow
RECONCILE_PREFIX_CHARS = 64
# A shorter new paragraph only matches an old one when it keeps at least this much text
RECONCILE_MIN_MATCH_CHARS = 24

# Logging settings
LOG_DIR = user_log_dir(appname="speaknav", appauthor=False)
SHOW_ERRORS_ON_EXIT = True

# UI settings
UI_UPDATE_INTERVAL = 0.05
LAYOUT_MARGIN = 10  # Columns reserved for the panel border and padding
