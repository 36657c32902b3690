"""Abstract base class for TTS backends in the speaknav speech navigator."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator

from rich.console import Console

from ..models import SpeechOptions


class SpeechEventType(Enum):
    START = "start"
    WORD = "word"
    SENTENCE = "sentence"
    END = "end"
    INTERRUPTED = "interrupted"
    ERROR = "error"


@dataclass(frozen=True)
class SpeechEvent:
    type: SpeechEventType
    char_index: int = 0  # Relative to the text passed to speak()
    message: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.type in (SpeechEventType.END, SpeechEventType.INTERRUPTED, SpeechEventType.ERROR)


class TTSBase(ABC):
    """
    Abstract base class for all TTS backends.

    A backend speaks one utterance at a time. speak() registers the request and
    returns an async stream of SpeechEvents: an optional START, progress events
    (WORD/SENTENCE) whose char indices never decrease, then exactly one terminal
    END, INTERRUPTED or ERROR event. stop() silences the most recent request.
    """

    def __init__(self, console: Console, voice: str = None):
        """
        Initialize the TTS backend.

        Args:
            console: Rich console instance for user feedback
            voice: Optional voice for the TTS backend
        """
        self.console = console
        self.voice = voice
        self.initialized = False

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Get the unique identifier for this TTS backend.

        Returns:
            str: Backend name (e.g., 'edge', 'console')
        """
        pass

    @abstractmethod
    async def initialize(self) -> bool:
        """
        Initialize the TTS backend asynchronously.

        This method should:
        - Check for required dependencies
        - Handle ImportErrors gracefully
        - Set self.initialized = True on success

        Returns:
            bool: True if initialization succeeded, False otherwise
        """
        pass

    @abstractmethod
    def speak(self, text: str, options: SpeechOptions) -> AsyncIterator[SpeechEvent]:
        """
        Start speaking text.

        The request is issued when this method is called and replaces any
        utterance still in progress; the returned stream reports its progress.

        Args:
            text: Text to speak
            options: Rate and voice for this utterance

        Returns:
            AsyncIterator[SpeechEvent]: Events for this utterance, ending with a terminal event
        """
        pass

    @abstractmethod
    async def stop(self):
        """Stop the most recent utterance immediately. Safe to call when silent."""
        pass

    async def warm_up(self):
        """
        Warm up the backend to reduce initial latency.

        This is called once after initialization.
        """
        pass
