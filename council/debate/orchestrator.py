"""Debate orchestrator: sequences turns, conclusion and user interruptions."""

from __future__ import annotations

import asyncio
import random
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from loguru import logger

from council.debate import prompts
from council.debate.persona import DEBATER_IDS, MODERATOR_ID, PersonaId, get_persona, is_moderator
from council.debate.state import ACTIVE_STATES, DebateStore, RunState
from council.debate.transcript import Transcript, Turn

if TYPE_CHECKING:
    from council.config.schema import DebateSettings
    from council.debate.gateway import DebateGateway

# A trailing moderator line longer than this (other than the opener) counts
# as a conclusion already given.
CONCLUSION_MIN_CHARS = 20

# Fraction of the pacing delay spent "thinking" before each generation call.
THINKING_RATIO = 0.6

Sleep = Callable[[float], Awaitable[Any]]


def next_speaker(previous: PersonaId | None, rng: random.Random | None = None) -> PersonaId:
    """Pick who speaks after *previous*.

    Right after the moderator (or with no previous speaker) a debater is
    chosen uniformly at random; otherwise the rotation moves to the next
    debater in registry order, wrapping around.
    """
    if previous is None or is_moderator(previous):
        return (rng or random).choice(DEBATER_IDS)
    index = DEBATER_IDS.index(PersonaId(previous))
    return DEBATER_IDS[(index + 1) % len(DEBATER_IDS)]


class DebateOrchestrator:
    """
    Runs a debate as a small state machine over a DebateStore.

    User commands (start, stop, conclude, reset) mutate the store
    synchronously. Entering an active run schedules one asyncio task bound to
    the store's current epoch; that task re-derives what to do from the state
    and the transcript tail each time it wakes, and commits a generated line
    only if the epoch and state are still the ones it started from. Stale
    results are discarded rather than cancelled, so there is never more than
    one live generation call per run.
    """

    def __init__(
        self,
        gateway: DebateGateway,
        store: DebateStore | None = None,
        *,
        pacing: float = 1.5,
        thinking_cap: float = 1.0,
        max_turns: int | None = 10,
        rng: random.Random | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.gateway = gateway
        self.store = store or DebateStore()
        self.pacing = pacing
        self.thinking_cap = thinking_cap
        self.max_turns = max_turns
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()

    @classmethod
    def from_config(
        cls,
        gateway: DebateGateway,
        settings: DebateSettings,
        store: DebateStore | None = None,
        **kwargs: Any,
    ) -> DebateOrchestrator:
        return cls(
            gateway,
            store,
            pacing=settings.pacing,
            thinking_cap=settings.thinking_cap,
            max_turns=settings.max_turns,
            **kwargs,
        )

    # -- read-only views -------------------------------------------------------

    @property
    def state(self) -> RunState:
        return self.store.state

    @property
    def topic(self) -> str:
        return self.store.topic

    @property
    def transcript(self) -> Transcript:
        return self.store.transcript

    @property
    def current_speaker(self) -> PersonaId | None:
        return self.store.current_speaker

    @property
    def thinking_delay(self) -> float:
        return min(self.thinking_cap, self.pacing * THINKING_RATIO)

    def set_pacing(self, seconds: float) -> None:
        """Change the delay between turns; applies from the next wait on."""
        self.pacing = max(0.0, seconds)

    # -- commands --------------------------------------------------------------

    def start(self, topic: str) -> bool:
        """Begin a run on *topic*. Returns False (and changes nothing) if rejected."""
        if not topic or not topic.strip():
            logger.debug("Ignoring start with empty topic")
            return False
        if self.store.state not in (RunState.IDLE, RunState.FINISHED):
            logger.debug("Ignoring start while {}", self.store.state.value)
            return False

        epoch = self.store.next_epoch()
        self.store.set_speaker(None)
        self.store.clear_transcript()
        self.store.set_topic(topic)
        self.store.append(Turn.create(MODERATOR_ID, prompts.opening_line(topic)))
        self.store.set_state(RunState.DEBATING)
        logger.info("Debate started on '{}' (max turns: {})", topic, self.max_turns)

        self._schedule(epoch)
        return True

    def stop(self) -> bool:
        """Abandon the run. Any reply still in flight will be discarded."""
        if self.store.state not in ACTIVE_STATES:
            return False
        self.store.next_epoch()
        self.store.set_state(RunState.IDLE)
        self.store.set_speaker(None)
        logger.info("Debate stopped after {} turns", len(self.store.transcript))
        return True

    def conclude(self) -> bool:
        """Ask the moderator to wrap up. Only valid while debating."""
        if self.store.state != RunState.DEBATING:
            return False
        self.store.set_state(RunState.CONCLUDING)
        logger.info("Conclusion requested")
        if self._task is None or self._task.done():
            self._schedule(self.store.epoch)
        return True

    def reset(self) -> bool:
        """Clear the log and topic and return to idle. Only valid when not running."""
        if self.store.state not in (RunState.IDLE, RunState.FINISHED):
            return False
        self.store.next_epoch()
        self.store.clear_transcript()
        self.store.set_topic("")
        self.store.set_speaker(None)
        self.store.set_state(RunState.IDLE)
        return True

    async def join(self) -> None:
        """Wait until every scheduled unit of work, stale ones included, has ended."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    # -- scheduling ------------------------------------------------------------

    def _schedule(self, epoch: int) -> None:
        task = asyncio.get_running_loop().create_task(self._run(epoch))
        self._task = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _is_current(self, epoch: int, state: RunState) -> bool:
        return self.store.epoch == epoch and self.store.state == state

    async def _run(self, epoch: int) -> None:
        try:
            while self.store.epoch == epoch and self.store.state in ACTIVE_STATES:
                await self._sleep(self.pacing)
                if self.store.epoch != epoch:
                    break
                if self.store.state == RunState.DEBATING:
                    await self._debate_turn(epoch)
                elif self.store.state == RunState.CONCLUDING:
                    await self._closing_turn(epoch)
        except Exception:
            logger.exception("Debate loop failed")
            if self.store.epoch == epoch:
                self.stop()

    async def _debate_turn(self, epoch: int) -> None:
        last = self.store.transcript.last
        speaker_id = next_speaker(last.speaker_id if last else None, self._rng)
        persona = get_persona(speaker_id)
        self.store.set_speaker(speaker_id)

        await self._sleep(self.thinking_delay)
        if not self._is_current(epoch, RunState.DEBATING):
            self._release_speaker(epoch)
            return

        text = await self.gateway.generate_utterance(
            self.store.topic, self.store.transcript.turns(), persona
        )
        if not self._is_current(epoch, RunState.DEBATING):
            logger.debug("Discarding stale reply from {}", persona.name)
            self._release_speaker(epoch)
            return

        self.store.append(Turn.create(speaker_id, text))
        self.store.set_speaker(None)

        # A listener may have changed state while the turn was appended.
        if not self._is_current(epoch, RunState.DEBATING):
            return
        if self.max_turns and self.store.transcript.debater_turn_count() >= self.max_turns:
            logger.info("Turn ceiling {} reached, concluding", self.max_turns)
            self.store.set_state(RunState.CONCLUDING)

    async def _closing_turn(self, epoch: int) -> None:
        if self._already_concluded():
            logger.debug("Conclusion already present, finishing")
            self.store.set_speaker(None)
            self.store.set_state(RunState.FINISHED)
            return

        self.store.set_speaker(MODERATOR_ID)
        await self._sleep(self.thinking_delay)
        if not self._is_current(epoch, RunState.CONCLUDING):
            return

        text = await self.gateway.generate_closing(self.store.topic, self.store.transcript.turns())
        if not self._is_current(epoch, RunState.CONCLUDING):
            logger.debug("Discarding stale conclusion")
            return

        self.store.append(Turn.create(MODERATOR_ID, text))
        self.store.set_state(RunState.FINISHED)
        self.store.set_speaker(None)
        logger.info("Debate finished after {} turns", len(self.store.transcript))

    def _release_speaker(self, epoch: int) -> None:
        # Only the run that set the speaker may clear it; a newer run owns it now.
        if self.store.epoch == epoch:
            self.store.set_speaker(None)

    def _already_concluded(self) -> bool:
        transcript = self.store.transcript
        last = transcript.last
        return (
            last is not None
            and len(transcript) > 1
            and last.by_moderator
            and len(last.text) > CONCLUSION_MIN_CHARS
        )
