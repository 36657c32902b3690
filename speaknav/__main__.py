"""Main entry point for the SpeakNav speech navigator."""

import asyncio
import sys
import termios
import tty
import subprocess
import argparse
import os
import logging
from rich.console import Console
from .reader import SpeakNav
from . import config, input_handler
from .controller import clamp_rate
from .tts_manager import TTSManager, get_default_tts_model_name


def setup_logging():
    """Set up file-based logging for the application."""
    os.makedirs(config.LOG_DIR, exist_ok=True)
    log_file = os.path.join(config.LOG_DIR, "error.log")

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s',
        filename=log_file,
        filemode='a',
        force=True,
    )
    logging.info("--- Application Starting ---")


def check_player(console):
    """Edge TTS plays audio through ffplay; exit early if it is missing."""
    try:
        subprocess.run(['ffplay', '-version'], check=True, text=True,
                       stderr=subprocess.DEVNULL, stdout=subprocess.DEVNULL)
    except (subprocess.CalledProcessError, FileNotFoundError):
        console.print("\n[bold red]Error: ffplay not found.[/bold red] "
                      "Please install FFmpeg and ensure it's in your system's PATH, "
                      "or use '-t console' for silent playback.")
        logging.error("Required tool 'ffplay' not found. FFmpeg may not be installed.")
        sys.exit(1)


def build_parser(available_tts):
    default_tts = get_default_tts_model_name(available_tts)
    parser = argparse.ArgumentParser(
        description="Read documents aloud in the terminal with sentence and paragraph navigation",
    )
    parser.add_argument("file_path", help="Path to the document (.html, .htm, .md, .txt, .pdf)")
    parser.add_argument(
        "-t",
        "--tts",
        choices=available_tts,
        default=default_tts,
        help=f"Select the Text-to-Speech backend (default: {default_tts})",
    )
    parser.add_argument(
        "-v",
        "--voice",
        help="Specify the voice for the TTS backend",
    )
    parser.add_argument(
        "-r",
        "--rate",
        type=float,
        default=config.DEFAULT_SPEECH_RATE,
        help=f"Set the speech rate multiplier (default: {config.DEFAULT_SPEECH_RATE})",
    )
    parser.add_argument(
        "-p",
        "--paragraph",
        type=int,
        default=0,
        help="Paragraph to start reading from, counting from 0",
    )
    parser.add_argument(
        "-k", "--keys",
        help="Path to a JSON file overriding the default key bindings",
    )
    return parser


async def main():
    tts_manager = TTSManager()
    available_tts = tts_manager.get_available_tts_names()
    parser = build_parser(available_tts)
    args = parser.parse_args()

    console = Console()
    args.file_path = os.path.abspath(args.file_path)
    if not os.path.isfile(args.file_path):
        console.print(f"[red]File not found: {args.file_path}[/red]")
        sys.exit(1)
    try:
        rate = clamp_rate(args.rate)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    setup_logging()
    input_handler.load_keyboard_shortcuts(args.keys)

    if args.tts == "edge":
        check_player(console)

    tts_instance = await tts_manager.open_backend(args.tts, console, voice=args.voice)
    if tts_instance is None:
        console.print("[bold red]Error: no usable TTS backend.[/bold red]")
        sys.exit(1)

    reader = SpeakNav(args.file_path, tts_instance, rate=rate, start_paragraph=args.paragraph)

    # Enable mouse tracking
    sys.stdout.write('\033[?1000h\033[?1006h\033[?25l')
    sys.stdout.flush()

    fd = sys.stdin.fileno()
    old_settings = termios.tcgetattr(fd)
    try:
        tty.setcbreak(fd)
        await reader.run()
    finally:
        sys.stdout.write('\033[?1000l\033[?1006l\033[?25h')
        sys.stdout.flush()
        termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)


def cli():
    """Synchronous entry point for the command-line interface."""
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
    except Exception as e:
        logging.critical(f"Fatal error in application startup: {e}", exc_info=True)


if __name__ == "__main__":
    cli()
