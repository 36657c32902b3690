"""
Scriptable TTS backend for tests.

Utterances stay pending until a test drives them with speak_until_char_index(),
finish_pending_utterance(), fail_pending_utterance() or
interrupt_pending_utterance(). Call flush_events() afterwards so the scheduler
consumes what was pushed.
"""

import asyncio
from unittest.mock import Mock

from speaknav.models import SpeechOptions
from speaknav.tts.base import SpeechEvent, SpeechEventType, TTSBase


async def flush_events(rounds: int = 20):
    """Lets queued events and the callbacks they trigger run to completion."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class MockUtterance:
    def __init__(self, text, options):
        self.text = text
        self.options = SpeechOptions(rate=options.rate, voice=options.voice)
        self.events = asyncio.Queue()
        self.finished = False


class MockTts(TTSBase):
    def __init__(self, console=None, voice=None):
        super().__init__(console or Mock(), voice)
        self.initialized = True
        self.spoken = []          # Every utterance ever requested, in order
        self.current = None
        self.stop_count = 0
        self.fail_on_speak = False

    @property
    def name(self) -> str:
        return "mock"

    async def initialize(self) -> bool:
        self.initialized = True
        return True

    def speak(self, text, options):
        if self.fail_on_speak:
            raise RuntimeError("mock backend refused the request")
        if self.current and not self.current.finished:
            self.current.events.put_nowait(SpeechEvent(SpeechEventType.INTERRUPTED))
            self.current.finished = True
        utterance = MockUtterance(text, options)
        self.spoken.append(utterance)
        self.current = utterance
        return self._stream(utterance)

    async def _stream(self, utterance):
        try:
            yield SpeechEvent(SpeechEventType.START)
            while True:
                event = await utterance.events.get()
                yield event
                if event.is_terminal:
                    return
        finally:
            utterance.finished = True

    async def stop(self):
        self.stop_count += 1
        if self.current:
            self.current.finished = True
            self.current = None

    # ------------------------------------------------------------------
    # Test helpers

    def pending_utterances(self) -> list[str]:
        if self.current and not self.current.finished:
            return [self.current.text]
        return []

    def currently_speaking(self) -> bool:
        return bool(self.pending_utterances())

    def get_options(self) -> SpeechOptions | None:
        if self.current:
            return self.current.options
        return self.spoken[-1].options if self.spoken else None

    def spoken_texts(self) -> list[str]:
        return [utterance.text for utterance in self.spoken]

    def _push(self, event):
        if not self.currently_speaking():
            raise AssertionError("No utterance is pending")
        self.current.events.put_nowait(event)

    def speak_until_char_index(self, char_index: int):
        self._push(SpeechEvent(SpeechEventType.WORD, char_index))

    def finish_pending_utterance(self):
        self._push(SpeechEvent(SpeechEventType.END, len(self.current.text)))

    def fail_pending_utterance(self, message="synthesis failed"):
        self._push(SpeechEvent(SpeechEventType.ERROR, message=message))

    def interrupt_pending_utterance(self):
        self._push(SpeechEvent(SpeechEventType.INTERRUPTED))
