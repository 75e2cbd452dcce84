"""Transcript log: the ordered, append-only record of a debate."""

from __future__ import annotations

import time
import uuid
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field

from council.debate.persona import PersonaId, is_moderator

# Lines the system produces on failure start with one of these markers.
NOTICE_MARKERS = ("(", "[")


def _now_ms() -> int:
    return int(time.time() * 1000)


class Turn(BaseModel):
    """One attributed utterance. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    speaker_id: PersonaId
    text: str
    timestamp: int = Field(default_factory=_now_ms)

    @classmethod
    def create(cls, speaker_id: PersonaId, text: str) -> Turn:
        return cls(speaker_id=speaker_id, text=text)

    @property
    def is_notice(self) -> bool:
        """True for diagnostic lines (errors, filtered replies)."""
        return self.text.startswith(NOTICE_MARKERS)

    @property
    def by_moderator(self) -> bool:
        return is_moderator(self.speaker_id)


class Transcript:
    """
    Ordered sequence of turns; insertion order is conversation order.

    Turns are never edited or removed one by one. The whole log is cleared
    when a run is reset or a new one starts.
    """

    def __init__(self, turns: list[Turn] | None = None):
        self._turns: list[Turn] = []
        for turn in turns or []:
            self.append(turn)

    def append(self, turn: Turn) -> Turn:
        """Append a turn, keeping timestamps non-decreasing.

        A turn stamped earlier than the current tail (clock adjustment) is
        re-stamped with the tail's timestamp.

        Returns:
            The turn actually stored.
        """
        if self._turns and turn.timestamp < self._turns[-1].timestamp:
            turn = turn.model_copy(update={"timestamp": self._turns[-1].timestamp})
        self._turns.append(turn)
        return turn

    def clear(self) -> None:
        self._turns.clear()

    @property
    def last(self) -> Turn | None:
        return self._turns[-1] if self._turns else None

    def debater_turn_count(self) -> int:
        """Number of turns spoken by anyone other than the moderator."""
        return sum(1 for t in self._turns if not t.by_moderator)

    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(tuple(self._turns))

    def __getitem__(self, index: int) -> Turn:
        return self._turns[index]

    def __bool__(self) -> bool:
        return bool(self._turns)
