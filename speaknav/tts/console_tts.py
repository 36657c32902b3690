import asyncio
import re
from rich.console import Console

from .base import SpeechEvent, SpeechEventType, TTSBase
from .. import config


class ConsoleTTS(TTSBase):
    """Silent TTS backend that paces word events at a reading speed.

    Useful without audio tooling: the UI highlights along as if speech were playing.
    """

    @property
    def name(self) -> str:
        return "console"

    def __init__(self, console: Console, voice: str = None):
        super().__init__(console, voice)
        self._generation = 0

    async def initialize(self) -> bool:
        self.initialized = True
        self.console.print("[green]Console TTS is available (silent playback).[/green]")
        return True

    def speak(self, text, options):
        if not self.initialized:
            raise RuntimeError("Console TTS has not been initialized.")
        self._generation += 1
        return self._utter(text, options.rate, self._generation)

    async def _utter(self, text, rate, generation):
        yield SpeechEvent(SpeechEventType.START)
        seconds_per_word = 60.0 / (config.CONSOLE_WORDS_PER_MINUTE * rate)
        for match in re.finditer(r'\S+', text):
            if generation != self._generation:
                yield SpeechEvent(SpeechEventType.INTERRUPTED, match.start())
                return
            yield SpeechEvent(SpeechEventType.WORD, match.start())
            await asyncio.sleep(seconds_per_word)
        yield SpeechEvent(SpeechEventType.END, len(text))

    async def stop(self):
        self._generation += 1
