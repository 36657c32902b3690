import os
import sys
import asyncio
import signal
import logging
from rich.console import Console

from . import config, content_parser, ui, input_handler
from .controller import Command, NavigationController
from .layout import layout_nodes
from .models import PlaybackState, SpeechOptions
from .segmenter import segment
from .tts.base import TTSBase


class SpeakNav:
    """Terminal front end: shows a document and drives a NavigationController from the keyboard."""

    def __init__(self, file_path, tts_model: TTSBase, rate: float = config.DEFAULT_SPEECH_RATE,
                 start_paragraph: int = 0):
        self.console = Console()
        self.loop = None
        self.file_path = file_path
        self.title = os.path.splitext(os.path.basename(file_path))[0]
        self.tts_model = tts_model
        self.start_paragraph = start_paragraph

        self.running = True
        self.command_queue = asyncio.Queue()
        self.command_tasks = set()
        self.ui_update_task = None
        self.resize_scheduled = False
        self.input_decoder = input_handler.InputDecoder()
        self.scroll_offset = 0
        self.auto_scroll_enabled = True

        self.controller = NavigationController(tts_model, SpeechOptions(rate=rate))
        self._load_content()

    def _load_content(self):
        """Load the document and lay it out for the current terminal width."""
        self.console.print(f"[bold cyan]Loading document: {self.title}...[/bold cyan]")
        self.source_nodes = content_parser.extract_nodes(self.file_path, self.console)
        if not self.source_nodes:
            self.console.print("[bold red]Error: No text could be extracted from the file.[/bold red]")
            self.console.print("This might happen with image-based PDFs or unsupported formats.")
            sys.exit(1)
        self.console.print("[green]Document loaded successfully![/green]")
        self.nodes = self._layout()

    def _layout(self):
        width, _ = ui.get_terminal_size()
        return layout_nodes(self.source_nodes, width - config.LAYOUT_MARGIN)

    def post_command(self, cmd):
        """Queues an action decoded from input or raised by a signal."""
        self.command_queue.put_nowait(cmd)

    def _start_selection(self):
        """Keys of every paragraph from the requested start paragraph on."""
        groups = segment(self.nodes)
        first = max(0, min(self.start_paragraph, len(groups) - 1))
        return [key for group in groups[first:] for key in group.keys]

    async def _handle_command(self, cmd):
        controller = self.controller
        if isinstance(cmd, Command):
            self.auto_scroll_enabled = True
            await controller.dispatch(cmd)
        elif cmd == 'toggle_pause':
            if controller.state == PlaybackState.SPEAKING:
                await controller.pause()
            elif controller.session:
                await controller.resume()
            else:
                await controller.start(self.nodes)
        elif isinstance(cmd, tuple) and cmd[0] == 'click':
            self.auto_scroll_enabled = False
            point = ui.screen_to_layout(self, *cmd[1])
            await controller.start(self.nodes, at_point=point)
        elif cmd == '_resize':
            self.resize_scheduled = False
            self.nodes = self._layout()
            self.scroll_offset = 0
            controller.content_changed(self.nodes)

    def _run_command(self, cmd):
        # Commands run concurrently so a newer one can supersede an older one mid-await
        task = asyncio.create_task(self._handle_command(cmd))
        self.command_tasks.add(task)
        task.add_done_callback(self._command_done)

    def _command_done(self, task):
        self.command_tasks.discard(task)
        if not task.cancelled() and task.exception():
            logging.error(f"Command failed: {task.exception()}", exc_info=task.exception())

    def _handle_resize(self, signum, frame):
        if not self.resize_scheduled:
            self.resize_scheduled = True
            self.loop.call_soon_threadsafe(self.post_command, '_resize')

    def _handle_exit_signal(self, signum, frame):
        self.running = False
        if self.loop and self.loop.is_running():
            self.loop.call_soon_threadsafe(self.post_command, 'quit')

    async def _ui_update_loop(self):
        while self.running:
            try:
                ui.display_ui(self)
                await asyncio.sleep(config.UI_UPDATE_INTERVAL)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logging.error(f"Error in UI update loop: {e}", exc_info=True)
                await asyncio.sleep(config.UI_UPDATE_INTERVAL)

    async def _shutdown(self):
        self.running = False
        signal.signal(signal.SIGWINCH, signal.SIG_DFL)
        signal.signal(signal.SIGINT, signal.SIG_DFL)
        signal.signal(signal.SIGTERM, signal.SIG_DFL)
        try:
            self.loop.remove_reader(sys.stdin.fileno())
        except (ValueError, OSError):
            pass

        for task in [self.ui_update_task, *self.command_tasks]:
            if task and not task.done():
                task.cancel()
                try:
                    await asyncio.wait_for(task, timeout=1.0)
                except (asyncio.CancelledError, asyncio.TimeoutError):
                    pass

        await self.controller.stop()
        logging.info("--- Application Shutting Down ---")
        sys.stdout.write('\033[2J\033[H\033[?25h')
        sys.stdout.flush()

        if config.SHOW_ERRORS_ON_EXIT:
            show_session_errors()

    async def run(self):
        self.loop = asyncio.get_running_loop()
        self.loop.add_reader(sys.stdin.fileno(), input_handler.process_input, self)

        signal.signal(signal.SIGWINCH, self._handle_resize)
        signal.signal(signal.SIGINT, self._handle_exit_signal)
        signal.signal(signal.SIGTERM, self._handle_exit_signal)

        sys.stdout.write('\033[2J')
        self.ui_update_task = asyncio.create_task(self._ui_update_loop())
        try:
            started = await self.controller.start(self.nodes, selection=self._start_selection())
            if not started:
                logging.warning("Nothing to read in the document.")

            while self.running:
                cmd = await self.command_queue.get()
                if cmd == 'quit':
                    break
                self._run_command(cmd)
        finally:
            await self._shutdown()


def show_session_errors():
    """Prints the ERROR lines logged since the application last started, then clears the log."""
    log_file = os.path.join(config.LOG_DIR, "error.log")
    try:
        with open(log_file, 'r') as f:
            lines = f.readlines()
    except FileNotFoundError:
        return
    except OSError as e:
        logging.warning(f"Could not read log file {log_file}: {e}")
        return

    start_indices = [i for i, line in enumerate(lines) if "--- Application Starting ---" in line]
    session_lines = lines[start_indices[-1] if start_indices else 0:]
    error_lines = [line.strip() for line in session_lines if " - ERROR - " in line]
    if error_lines:
        error_console = Console()
        error_console.print("\n[bold red]Errors recorded during this session:[/bold red]")
        for error in error_lines:
            message = ' - '.join(error.split(' - ')[3:])
            error_console.print(f"- {message}")
    try:
        os.remove(log_file)
    except OSError:
        pass
