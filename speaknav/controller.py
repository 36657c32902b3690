"""Navigation controller: the public state machine of a speech session."""

import logging
from enum import Enum
from typing import Callable, Collection

from . import config, position as tracker
from .models import NodeGroup, NodeKey, PlaybackState, Position, SpeakingRange, SpeechOptions, TextNode
from .reconciler import reconcile, remap_group_index
from .scheduler import Outcome, PlaybackHandle, PlaybackScheduler
from .segmenter import SentenceSplitter, group_at_point, segment
from .tts.base import TTSBase


class Command(Enum):
    NEXT_SENTENCE = "next_sentence"
    PREVIOUS_SENTENCE = "previous_sentence"
    NEXT_PARAGRAPH = "next_paragraph"
    PREVIOUS_PARAGRAPH = "previous_paragraph"
    PAUSE = "pause"
    RESUME = "resume"
    CHANGE_SPEED = "change_speed"
    INCREASE_SPEED = "increase_speed"
    DECREASE_SPEED = "decrease_speed"
    STOP = "stop"


class SpeechSession:
    """Groups and position for one selection, from start until the session ends."""

    def __init__(self, groups: list[NodeGroup], position: Position, last_group: int,
                 end_offset: int | None = None):
        self.groups = groups
        self.position = position
        self.last_group = last_group  # Playback stops after this group completes
        self.end_offset = end_offset  # Offset in last_group where a partial selection ends
        self.pending_nodes = None     # Content change waiting for the current utterance

    def extend_to_end(self):
        self.last_group = len(self.groups) - 1
        self.end_offset = None

    def stop_offset(self, group_index: int) -> int | None:
        """Where speech of group_index stops, None for the end of the group."""
        return self.end_offset if group_index == self.last_group else None


def clamp_rate(rate) -> float:
    if isinstance(rate, bool) or not isinstance(rate, (int, float)):
        raise ValueError(f"Speech rate must be a number, got {rate!r}")
    return max(config.MIN_SPEECH_RATE, min(float(rate), config.MAX_SPEECH_RATE))


class NavigationController:
    """
    Turns user commands into positions and utterances.

    Everything runs on one event loop. A command updates the position before its
    first await, so the most recent command always decides what is spoken next;
    earlier commands that are still waiting for an interrupt give up.
    """

    def __init__(self, tts: TTSBase, options: SpeechOptions | None = None,
                 splitter: SentenceSplitter | None = None):
        self.tts = tts
        self.options = options or SpeechOptions(rate=config.DEFAULT_SPEECH_RATE)
        self.splitter = splitter
        self.scheduler = PlaybackScheduler(tts, self._on_progress, self._on_finished)
        self.session = None
        self.state = PlaybackState.IDLE
        self._generation = 0
        self._state_listeners = []
        self._range_listeners = []

    # ------------------------------------------------------------------
    # Read-only views for collaborators

    @property
    def groups(self) -> list[NodeGroup]:
        return self.session.groups if self.session else []

    @property
    def position(self) -> Position | None:
        return self.session.position if self.session else None

    @property
    def speaking_range(self) -> SpeakingRange | None:
        """The sentence currently being spoken (or about to be), for highlighting."""
        if not self.session:
            return None
        position = self.session.position
        group = self.session.groups[position.group_index]
        span = group.sentences[position.sentence_index]
        return SpeakingRange(
            group_index=position.group_index,
            sentence_index=position.sentence_index,
            start=span.start,
            end=span.end,
            char_offset=position.char_offset,
            nodes=tuple(group.nodes_in_range(span.start, span.end)),
        )

    def add_state_listener(self, listener: Callable[[PlaybackState], None]):
        self._state_listeners.append(listener)

    def add_range_listener(self, listener: Callable[[SpeakingRange | None], None]):
        self._range_listeners.append(listener)

    # ------------------------------------------------------------------
    # Session lifecycle

    async def start(self, nodes: list[TextNode], selection: Collection[NodeKey] | None = None,
                    at_point: tuple[float, float] | None = None) -> bool:
        """
        Starts a new session, discarding the current one.

        Args:
            nodes: Text nodes of the content in reading order
            selection: Keys of the selected nodes. Reading starts at the first selected
                node and stops after the last one. Defaults to the whole content.
            at_point: Screen point; reads the single group drawn under it

        Returns:
            bool: True if speech started
        """
        generation = self._begin_command()
        await self.scheduler.interrupt()
        if generation != self._generation:
            return False
        self.session = None
        self._set_state(PlaybackState.IDLE)

        groups = segment(nodes, self.splitter)
        if not groups:
            logging.info("Selection has no speakable text.")
            return False

        first, last = 0, len(groups) - 1
        start_offset, end_offset = 0, None
        if at_point is not None:
            index = group_at_point(groups, *at_point)
            if index is None:
                logging.info(f"No text under point {at_point}.")
                return False
            first = last = index
        elif selection is not None:
            selected = set(selection)
            indices = [i for i, group in enumerate(groups) if selected.intersection(group.keys)]
            if not indices:
                logging.info("Selection does not cover any speakable text.")
                return False
            first, last = indices[0], indices[-1]
            start_offset = groups[first].span_of(selected)[0]
            end_offset = groups[last].span_of(selected)[1]
            if end_offset >= len(groups[last].text):
                end_offset = None

        self.session = SpeechSession(groups, tracker.at_offset(groups, first, start_offset), last, end_offset)
        logging.info(f"Session started with {len(groups)} paragraphs, reading {first}..{last}")
        self._speak_current()
        return self.state == PlaybackState.SPEAKING

    async def stop(self):
        """Ends the session."""
        self._begin_command()
        self.session = None
        self._set_state(PlaybackState.IDLE)
        await self.scheduler.interrupt()
        self._notify_range()

    def content_changed(self, nodes: list[TextNode]):
        """
        Takes a fresh node list after a reflow or mutation.

        While an utterance is in flight the change waits for it to complete, so
        layout changes alone never cut speech off.
        """
        if not self.session:
            return
        if self.scheduler.speaking:
            logging.debug("Content changed during speech; reconciling after this paragraph.")
            self.session.pending_nodes = list(nodes)
            return
        self._apply_content(nodes)
        self._notify_range()

    # ------------------------------------------------------------------
    # Commands

    async def dispatch(self, command: Command, param=None):
        """Entry point for command sources such as key bindings or a panel."""
        if command == Command.CHANGE_SPEED:
            return await self.change_speed(param)
        handlers = {
            Command.NEXT_SENTENCE: self.next_sentence,
            Command.PREVIOUS_SENTENCE: self.previous_sentence,
            Command.NEXT_PARAGRAPH: self.next_paragraph,
            Command.PREVIOUS_PARAGRAPH: self.previous_paragraph,
            Command.PAUSE: self.pause,
            Command.RESUME: self.resume,
            Command.INCREASE_SPEED: self.increase_speed,
            Command.DECREASE_SPEED: self.decrease_speed,
            Command.STOP: self.stop,
        }
        return await handlers[command]()

    async def next_sentence(self) -> bool:
        return await self._navigate(tracker.next_sentence)

    async def previous_sentence(self) -> bool:
        return await self._navigate(tracker.previous_sentence)

    async def next_paragraph(self) -> bool:
        return await self._navigate(tracker.next_paragraph)

    async def previous_paragraph(self) -> bool:
        return await self._navigate(tracker.previous_paragraph)

    async def pause(self) -> bool:
        if self.state != PlaybackState.SPEAKING:
            return False
        self._begin_command()
        self._set_state(PlaybackState.PAUSED)
        await self.scheduler.interrupt()
        return True

    async def resume(self) -> bool:
        """
        Continues reading to the end of the content.

        After a pause, the sentence that was playing starts over. After a
        selection was read, reading picks up right where the selection ended.
        """
        if not self.session or self.state == PlaybackState.SPEAKING:
            return False
        session = self.session
        target = session.position
        if self.state == PlaybackState.PAUSED:
            target = tracker.rewound(session.groups, target)
        await self._restart(target, extend=True)
        return True

    async def change_speed(self, rate) -> bool:
        """
        Sets the speech rate.

        While speaking, the current sentence is restarted at the new rate. While
        paused, the rate is stored and nothing is spoken until resume.
        """
        self.options.rate = clamp_rate(rate)
        logging.info(f"Speech rate set to {self.options.rate}")
        if not self.session or self.state != PlaybackState.SPEAKING:
            return False
        session = self.session
        await self._restart(tracker.rewound(session.groups, session.position), extend=False)
        return True

    async def increase_speed(self) -> bool:
        faster = [rate for rate in config.SPEECH_RATES if rate > self.options.rate + 0.01]
        if not faster:
            return False
        await self.change_speed(faster[0])
        return True

    async def decrease_speed(self) -> bool:
        slower = [rate for rate in config.SPEECH_RATES if rate < self.options.rate - 0.01]
        if not slower:
            return False
        await self.change_speed(slower[-1])
        return True

    # ------------------------------------------------------------------
    # Internals

    def _begin_command(self) -> int:
        self._generation += 1
        return self._generation

    async def _navigate(self, target_of) -> bool:
        session = self.session
        if not session:
            return False
        target = target_of(session.groups, session.position)
        if target is None:
            return False
        await self._restart(target, extend=True)
        return True

    async def _restart(self, target: Position, extend: bool):
        generation = self._begin_command()
        session = self.session
        session.position = target
        if extend:
            session.extend_to_end()
        self._notify_range()
        await self.scheduler.interrupt()
        if generation != self._generation or self.session is not session:
            return
        if session.pending_nodes is not None:
            self._apply_content(session.pending_nodes)
            if self.session is not session:
                return
        self._speak_current()

    def _speak_current(self):
        session = self.session
        position = session.position
        group = session.groups[position.group_index]
        self.scheduler.speak(group, position.char_offset, self.options, position.group_index,
                             session.stop_offset(position.group_index))
        self._set_state(PlaybackState.SPEAKING)
        self._notify_range()

    def _advance_past(self, group_index: int) -> bool:
        """
        Moves the position to the group after group_index.

        Returns:
            bool: True if there is more to speak, False if the reading range ended
        """
        session = self.session
        end_offset = session.stop_offset(group_index)
        if end_offset is not None:
            session.position = tracker.at_offset(session.groups, group_index, end_offset)
            session.end_offset = None
            logging.info("Selection finished; resume continues after it.")
            self._set_state(PlaybackState.IDLE)
            self._notify_range()
            return False
        has_next = group_index + 1 < len(session.groups)
        if group_index >= session.last_group or not has_next:
            if has_next:
                session.position = tracker.start_of(session.groups, group_index + 1)
                logging.info("Reading range finished; resume continues with the next paragraph.")
            else:
                logging.info("Reached the end of the content; session ended.")
                self.session = None
            self._set_state(PlaybackState.IDLE)
            self._notify_range()
            return False
        session.position = tracker.start_of(session.groups, group_index + 1)
        return True

    def _apply_content(self, nodes) -> bool:
        """Swaps in reconciled groups. Returns whether the current paragraph was found again."""
        session = self.session
        session.pending_nodes = None
        old_groups = session.groups
        result = reconcile(nodes, old_groups, session.position, self.splitter)
        if not result.groups:
            self.session = None
            self._set_state(PlaybackState.IDLE)
            return False
        last_group = remap_group_index(old_groups, result.groups, session.last_group)
        if last_group is None or result.groups[last_group].text != old_groups[session.last_group].text:
            session.end_offset = None
        if last_group is None:
            last_group = len(result.groups) - 1
        if last_group < result.position.group_index:
            last_group = result.position.group_index
            session.end_offset = None
        session.groups = result.groups
        session.position = result.position
        session.last_group = last_group
        return result.matched

    def _on_progress(self, handle: PlaybackHandle, offset: int):
        session = self.session
        if not session:
            return
        offset = min(offset, len(handle.group.text) - 1)
        session.position = Position(handle.group_index, tracker.char_to_sentence(handle.group, offset), offset)
        self._notify_range()

    def _on_finished(self, handle: PlaybackHandle, outcome: Outcome):
        session = self.session
        if not session:
            return
        if outcome == Outcome.INTERRUPTED:
            logging.info(f"Speech for paragraph {handle.group_index} was interrupted by the backend.")
            self._set_state(PlaybackState.PAUSED)
            return
        if outcome == Outcome.FAILED:
            logging.warning(f"Skipping the rest of paragraph {handle.group_index} after a TTS failure.")

        finished = handle.group_index
        if session.pending_nodes is not None:
            matched = self._apply_content(session.pending_nodes)
            if self.session is not session:
                return
            if not matched:
                self._speak_current()
                return
            finished = session.position.group_index
        if self._advance_past(finished):
            self._speak_current()

    def _set_state(self, state: PlaybackState):
        if state == self.state:
            return
        self.state = state
        for listener in list(self._state_listeners):
            try:
                listener(state)
            except Exception as e:
                logging.error(f"State listener failed: {e}", exc_info=True)

    def _notify_range(self):
        if not self._range_listeners:
            return
        speaking_range = self.speaking_range
        for listener in list(self._range_listeners):
            try:
                listener(speaking_range)
            except Exception as e:
                logging.error(f"Range listener failed: {e}", exc_info=True)
