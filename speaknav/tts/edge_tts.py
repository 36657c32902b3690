import os
import asyncio
import logging
import subprocess
from rich.console import Console

from .base import SpeechEvent, SpeechEventType, TTSBase
from .. import config


def edge_rate(rate: float) -> str:
    """Converts a rate multiplier into edge-tts' signed percentage form."""
    return f"{round((rate - 1.0) * 100):+d}%"


def map_word_offsets(text: str, words: list[tuple[str, float]]) -> list[tuple[int, float]]:
    """
    Maps word boundary words back to char indices in the spoken text.

    Args:
        text: Text that was synthesized
        words: (word, start_seconds) pairs in speech order

    Returns:
        List of (char_index, start_seconds) tuples with non-decreasing char indices
    """
    timings = []
    cursor = 0
    for word, start in words:
        index = text.find(word, cursor)
        if index < 0:
            index = cursor
        else:
            cursor = index + len(word)
        timings.append((index, start))
    return timings


async def _stop_process(process):
    """Terminates an ffplay process, killing it if it does not exit promptly."""
    try:
        if process.returncode is None:
            process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=0.2)
            except asyncio.TimeoutError:
                process.kill()
                await asyncio.wait_for(process.wait(), timeout=0.1)
    except (ProcessLookupError, asyncio.TimeoutError):
        pass


class EdgeTTS(TTSBase):
    """Speaks through Microsoft Edge's online voices, playing each utterance with ffplay."""

    @property
    def name(self) -> str:
        return "edge"

    @property
    def output_format(self) -> str:
        return "mp3"

    def __init__(self, console: Console, voice: str = None):
        super().__init__(console, voice)
        self.edge_tts = None
        if self.voice is None:
            self.voice = config.TTS_VOICES.get(self.name)
        self._generation = 0
        self._process = None

    async def initialize(self) -> bool:
        """Imports edge-tts; playback additionally needs ffplay on the PATH."""
        try:
            import edge_tts
            self.edge_tts = edge_tts
            self.initialized = True
            self.console.print(f"[green]Edge TTS backend loaded (voice: {self.voice}).[/green]")
            return True
        except ImportError:
            self.console.print("[bold red]Error: the edge backend needs the 'edge-tts' package (pip install edge-tts).[/bold red]")
            logging.error("edge-tts import failed; edge backend unavailable.")
            return False

    def speak(self, text, options):
        if not self.initialized:
            raise RuntimeError("Edge TTS has not been initialized.")
        self._generation += 1
        return self._utter(text, options, self._generation)

    async def _synthesize(self, text, voice, rate, output_path):
        """
        Generates audio for text and collects raw word boundaries.

        Returns:
            List of (char_index, start_time) tuples for the spoken words
        """
        communicate = self.edge_tts.Communicate(text, voice, rate=edge_rate(rate), boundary="WordBoundary")
        words = []
        with open(output_path, 'wb') as f:
            async for chunk in communicate.stream():
                if chunk['type'] == 'WordBoundary':
                    # Convert from 100-nanosecond units to seconds
                    words.append((chunk['text'], chunk['offset'] / 10000000.0))
                elif chunk['type'] == 'audio':
                    f.write(chunk['data'])
        return map_word_offsets(text, words)

    async def _utter(self, text, options, generation):
        output_path = f"{config.AUDIO_BUFFER}_{generation}.{self.output_format}"
        voice = options.voice or self.voice
        process = None
        try:
            yield SpeechEvent(SpeechEventType.START)
            try:
                word_timings = await self._synthesize(text, voice, options.rate, output_path)
            except Exception as e:
                logging.error(f"Edge synthesis failed for utterance starting '{text[:40]}'", exc_info=True)
                yield SpeechEvent(SpeechEventType.ERROR, message=str(e))
                return
            if generation != self._generation:
                yield SpeechEvent(SpeechEventType.INTERRUPTED)
                return

            await self._terminate_player()
            process = await asyncio.create_subprocess_exec(
                'ffplay', '-nodisp', '-autoexit', '-loglevel', 'error', output_path,
                stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
            self._process = process

            loop = asyncio.get_running_loop()
            started = loop.time()
            for char_index, start_time in word_timings:
                delay = start_time - (loop.time() - started)
                if delay > 0:
                    await asyncio.sleep(delay)
                if process.returncode is not None:
                    break
                yield SpeechEvent(SpeechEventType.WORD, char_index)

            returncode = await process.wait()
            if generation != self._generation:
                yield SpeechEvent(SpeechEventType.INTERRUPTED)
            elif returncode != 0:
                yield SpeechEvent(SpeechEventType.ERROR, message=f"ffplay exited with status {returncode}")
            else:
                yield SpeechEvent(SpeechEventType.END, len(text))
        finally:
            # A cancelled or superseded utterance must not keep playing
            if process is not None:
                if self._process is process:
                    self._process = None
                await _stop_process(process)
            for attempt in range(3):
                try:
                    if os.path.exists(output_path):
                        os.remove(output_path)
                    break
                except OSError:
                    if attempt < 2:
                        await asyncio.sleep(0.05)

    async def _terminate_player(self):
        process, self._process = self._process, None
        if process is not None:
            await _stop_process(process)

    async def stop(self):
        """Stops playback of the current utterance."""
        self._generation += 1
        await self._terminate_player()

    async def warm_up(self):
        """Synthesizes a one-word phrase so the first real request does not pay the connection cost."""
        if not self.initialized:
            return

        self.console.print("[bold cyan]Connecting to the Edge voice service...[/bold cyan]")
        warmup_file = os.path.join(config.AUDIO_DATA_DIR, f".warmup_edge.{self.output_format}")
        try:
            communicate = self.edge_tts.Communicate("Ready.", self.voice)
            await communicate.save(warmup_file)
            self.console.print("[green]Edge voice service reachable.[/green]")
        except Exception as e:
            self.console.print(f"[bold yellow]Warning: could not reach the Edge voice service with voice {self.voice}.[/bold yellow]")
            logging.warning(f"Edge warm-up request failed: {e}", exc_info=True)
        finally:
            if os.path.exists(warmup_file):
                try:
                    os.remove(warmup_file)
                except OSError:
                    pass
