"""TTS request/response protocol: one utterance per paragraph group."""

import asyncio
import logging
from enum import Enum
from typing import Callable

from .models import NodeGroup, SpeechOptions
from .tts.base import SpeechEvent, SpeechEventType, TTSBase


class Outcome(Enum):
    COMPLETED = "completed"      # Speech reached the end of the group
    FAILED = "failed"            # The backend reported an error
    INTERRUPTED = "interrupted"  # The backend was stopped by someone else
    CANCELLED = "cancelled"      # interrupt() was called


async def _failed_stream(message):
    yield SpeechEvent(SpeechEventType.ERROR, message=message)


class PlaybackHandle:
    """One in-flight utterance covering group.text[base_offset:end_offset]."""

    def __init__(self, group: NodeGroup, group_index: int, base_offset: int, options: SpeechOptions,
                 end_offset: int | None = None):
        self.group = group
        self.group_index = group_index
        self.base_offset = base_offset
        if end_offset is None:
            end_offset = len(group.text)
        self.end_offset = max(base_offset, min(end_offset, len(group.text)))
        self.text = group.text[base_offset:self.end_offset]
        self.options = SpeechOptions(rate=options.rate, voice=options.voice)
        self.last_offset = base_offset
        self.outcome = None
        self.task = None
        self._done = asyncio.Event()

    def to_group_offset(self, char_index: int) -> int:
        """Translates an utterance-relative char index into a group offset."""
        return self.base_offset + max(0, min(char_index, len(self.text)))

    @property
    def done(self) -> bool:
        return self.outcome is not None

    async def wait(self) -> Outcome:
        await self._done.wait()
        return self.outcome

    def _finish(self, outcome):
        if self.outcome is None:
            self.outcome = outcome
            self._done.set()


class PlaybackScheduler:
    """
    Drives a TTS backend through single utterances.

    Progress is reported through on_progress(handle, group_offset) and the end of
    every utterance through on_finished(handle, outcome); neither callback fires for
    an utterance after interrupt() has been called on it.
    """

    def __init__(self, tts: TTSBase,
                 on_progress: Callable[[PlaybackHandle, int], None] | None = None,
                 on_finished: Callable[[PlaybackHandle, Outcome], None] | None = None):
        self.tts = tts
        self.on_progress = on_progress
        self.on_finished = on_finished
        self.active = None

    @property
    def speaking(self) -> bool:
        return self.active is not None

    def speak(self, group: NodeGroup, from_offset: int, options: SpeechOptions,
              group_index: int = 0, to_offset: int | None = None) -> PlaybackHandle:
        """
        Issues exactly one TTS request for group.text[from_offset:to_offset].

        to_offset defaults to the end of the group.

        Raises:
            RuntimeError: If another request is still outstanding
        """
        if self.active is not None:
            raise RuntimeError("A TTS request is already outstanding; interrupt() it first.")
        from_offset = max(0, min(from_offset, len(group.text)))
        handle = PlaybackHandle(group, group_index, from_offset, options, to_offset)
        logging.debug(f"Speaking group {group_index} from offset {from_offset} at rate {options.rate}")
        try:
            stream = self.tts.speak(handle.text, handle.options)
        except Exception as e:
            logging.error(f"TTS request failed for group {group_index}: {e}", exc_info=True)
            stream = _failed_stream(str(e))
        self.active = handle
        handle.task = asyncio.create_task(self._consume(handle, stream))
        return handle

    async def interrupt(self):
        """Stops the current utterance. The last reported offset stays the resume point."""
        handle = self.active
        if handle is None:
            return
        self.active = None
        handle._finish(Outcome.CANCELLED)
        if handle.task and not handle.task.done():
            handle.task.cancel()
            try:
                await handle.task
            except asyncio.CancelledError:
                pass
        if self.active is None:
            # A newer request replaces the old one in the backend by itself.
            await self.tts.stop()

    async def change_rate(self, group: NodeGroup, from_offset: int, options: SpeechOptions,
                          group_index: int = 0, to_offset: int | None = None) -> PlaybackHandle:
        await self.interrupt()
        return self.speak(group, from_offset, options, group_index, to_offset)

    async def _consume(self, handle, stream):
        outcome = Outcome.COMPLETED
        try:
            async for event in stream:
                if self.active is not handle:
                    return
                if event.type in (SpeechEventType.WORD, SpeechEventType.SENTENCE):
                    self._report_progress(handle, event.char_index)
                elif event.type == SpeechEventType.END:
                    break
                elif event.type == SpeechEventType.INTERRUPTED:
                    outcome = Outcome.INTERRUPTED
                    break
                elif event.type == SpeechEventType.ERROR:
                    logging.error(f"TTS error while speaking group {handle.group_index}: {event.message}")
                    outcome = Outcome.FAILED
                    break
        except Exception as e:
            logging.error(f"TTS stream failed for group {handle.group_index}: {e}", exc_info=True)
            outcome = Outcome.FAILED
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        if self.active is not handle:
            return
        self.active = None
        handle._finish(outcome)
        if self.on_finished:
            self.on_finished(handle, outcome)

    def _report_progress(self, handle, char_index):
        offset = handle.to_group_offset(char_index)
        if offset < handle.last_offset:
            return
        handle.last_offset = offset
        if self.on_progress:
            self.on_progress(handle, offset)
