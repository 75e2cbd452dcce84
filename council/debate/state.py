"""Run state and the single-writer store that owns a debate's mutable state."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from loguru import logger

from council.debate.persona import PersonaId
from council.debate.transcript import Transcript, Turn


class RunState(str, Enum):
    IDLE = "IDLE"
    DEBATING = "DEBATING"
    CONCLUDING = "CONCLUDING"
    FINISHED = "FINISHED"


ACTIVE_STATES = frozenset({RunState.DEBATING, RunState.CONCLUDING})


class StoreEvent(str, Enum):
    """What changed in the store."""

    STATE = "state"
    TURN = "turn"
    SPEAKER = "speaker"
    CLEARED = "cleared"


@dataclass(frozen=True)
class DebateSnapshot:
    """Read-only view handed to the presentation layer."""

    state: RunState
    topic: str
    turns: tuple[Turn, ...]
    current_speaker: PersonaId | None


Listener = Callable[[StoreEvent, "DebateStore"], None]


class DebateStore:
    """
    Owns run state, topic, transcript and the "currently speaking" marker.

    Every mutation goes through a method here and notifies listeners. The
    ``epoch`` counter identifies the current run of work: whoever schedules an
    asynchronous unit of work records the epoch, and must find it unchanged
    before committing that work's result.
    """

    def __init__(self) -> None:
        self._state = RunState.IDLE
        self._topic = ""
        self._transcript = Transcript()
        self._current_speaker: PersonaId | None = None
        self._epoch = 0
        self._listeners: list[Listener] = []

    # -- reads ---------------------------------------------------------------

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def transcript(self) -> Transcript:
        return self._transcript

    @property
    def current_speaker(self) -> PersonaId | None:
        return self._current_speaker

    @property
    def epoch(self) -> int:
        return self._epoch

    def snapshot(self) -> DebateSnapshot:
        return DebateSnapshot(
            state=self._state,
            topic=self._topic,
            turns=self._transcript.turns(),
            current_speaker=self._current_speaker,
        )

    # -- writes --------------------------------------------------------------

    def set_state(self, state: RunState) -> None:
        if state == self._state:
            return
        logger.debug("Run state {} -> {}", self._state.value, state.value)
        self._state = state
        self._notify(StoreEvent.STATE)

    def set_topic(self, topic: str) -> None:
        self._topic = topic

    def set_speaker(self, speaker: PersonaId | None) -> None:
        if speaker == self._current_speaker:
            return
        self._current_speaker = speaker
        self._notify(StoreEvent.SPEAKER)

    def append(self, turn: Turn) -> Turn:
        stored = self._transcript.append(turn)
        self._notify(StoreEvent.TURN)
        return stored

    def clear_transcript(self) -> None:
        self._transcript.clear()
        self._notify(StoreEvent.CLEARED)

    def next_epoch(self) -> int:
        """Invalidate outstanding work and return the new epoch."""
        self._epoch += 1
        return self._epoch

    # -- listeners -----------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, event: StoreEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self)
            except Exception as e:
                logger.error("Store listener failed on {}: {}", event.value, e)
