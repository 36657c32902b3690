"""Finds the bundled speech backends and hands out ready-to-use instances."""

import importlib
import inspect
import logging
from pathlib import Path
from rich.console import Console
from .tts.base import TTSBase
from . import config

FALLBACK_TTS_MODEL = "console"


def _backend_class(module):
    for _, obj in inspect.getmembers(module, inspect.isclass):
        if issubclass(obj, TTSBase) and obj is not TTSBase and not inspect.isabstract(obj):
            return obj
    return None


class TTSManager:
    """
    Registry of speech backends keyed by short name.

    Every 'tts/<name>_tts.py' module contributes the first concrete TTSBase
    subclass it defines; a module that fails to import is logged and skipped
    so one broken backend never hides the others.
    """

    def __init__(self):
        self._models = {}
        self._discover_models()

    def _discover_models(self):
        for file_path in sorted((Path(__file__).parent / "tts").glob("*_tts.py")):
            backend_name = file_path.stem[:-len("_tts")]
            try:
                module = importlib.import_module(f".tts.{file_path.stem}", package=__package__)
            except Exception as e:
                logging.error(f"Failed to load TTS backend {backend_name}: {e}", exc_info=True)
                continue
            backend_class = _backend_class(module)
            if backend_class is None:
                logging.warning(f"No TTS backend class found in {file_path.name}")
                continue
            self._models[backend_name] = backend_class
            logging.info(f"Discovered TTS backend: {backend_name}")

    def get_available_tts_names(self) -> list[str]:
        """Backend names, the configured default first and the rest sorted."""
        names = sorted(self._models)
        preferred = get_default_tts_model_name(names)
        return [preferred] + [name for name in names if name != preferred] if names else []

    def create_model(self, name: str, console: Console, voice: str = None) -> TTSBase | None:
        model_class = self._models.get(name)
        if model_class is None:
            logging.error(f"TTS backend '{name}' not found.")
            return None
        return model_class(console, voice=voice)

    async def open_backend(self, name: str, console: Console, voice: str = None) -> TTSBase | None:
        """
        Create, initialize and warm up a backend.

        When the requested backend cannot start, the silent console backend
        takes its place so reading still works without audio. Returns None only
        when neither backend is usable.
        """
        candidates = [name] if name == FALLBACK_TTS_MODEL else [name, FALLBACK_TTS_MODEL]
        for candidate in candidates:
            backend = self.create_model(candidate, console, voice=voice if candidate == name else None)
            if backend is None:
                continue
            if await backend.initialize():
                await backend.warm_up()
                return backend
            console.print(f"[bold red]Initialization of {backend.name.upper()} failed.[/bold red]")
            if candidate != FALLBACK_TTS_MODEL:
                console.print("[bold yellow]Warning: falling back to silent console playback.[/bold yellow]")
        return None


def get_default_tts_model_name(available_models: list[str]) -> str:
    """The configured backend when available, else the first one found."""
    if config.DEFAULT_TTS_MODEL in available_models:
        return config.DEFAULT_TTS_MODEL
    return available_models[0] if available_models else ""
