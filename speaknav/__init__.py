"""
SpeakNav - Speech Navigation and Playback for Terminal Documents

Reads HTML, Markdown, plain text and PDF documents aloud with sentence and
paragraph navigation, pause/resume and live speed changes. Edge TTS is the
default voice; a silent console backend paces highlighting without audio.
"""

__version__ = "0.1.0"
__author__ = "Starry Eyes"
