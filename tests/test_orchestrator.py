"""Tests for the debate orchestrator state machine."""

import asyncio
import random
from unittest.mock import AsyncMock, MagicMock

import pytest

from council.debate.gateway import MISSING_KEY_NOTICE, DebateGateway
from council.debate.orchestrator import DebateOrchestrator, next_speaker
from council.debate.persona import DEBATER_IDS, MODERATOR_ID, PersonaId
from council.debate.state import RunState, StoreEvent
from council.debate.transcript import Turn
from council.providers.errors import MissingCredentialError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

CLOSING = "What a wonderful discussion! Every feeling matters and together we'll be fine!"


async def _no_wait(_seconds: float) -> None:
    await asyncio.sleep(0)


def _make_gateway() -> MagicMock:
    """A gateway whose persona lines name the speaker and the topic."""
    gateway = MagicMock()
    gateway.generate_utterance = AsyncMock(
        side_effect=lambda topic, turns, speaker: f"{speaker.name} has feelings about {topic}"
    )
    gateway.generate_closing = AsyncMock(return_value=CLOSING)
    return gateway


def _make_orchestrator(gateway, **kwargs) -> DebateOrchestrator:
    kwargs.setdefault("sleep", _no_wait)
    kwargs.setdefault("pacing", 0)
    return DebateOrchestrator(gateway, **kwargs)


def _blocking_utterance():
    """Gateway side effect that parks until released; returns (side_effect, called, release)."""
    called = asyncio.Event()
    release = asyncio.Event()

    async def _utterance(topic, turns, speaker):
        called.set()
        await release.wait()
        return f"late reply on {topic}"

    return _utterance, called, release


# ---------------------------------------------------------------------------
# next_speaker
# ---------------------------------------------------------------------------

class TestNextSpeaker:
    def test_follows_registry_order(self):
        for i, current in enumerate(DEBATER_IDS):
            expected = DEBATER_IDS[(i + 1) % len(DEBATER_IDS)]
            assert next_speaker(current) == expected

    def test_wraps_after_last_debater(self):
        assert next_speaker(DEBATER_IDS[-1]) == DEBATER_IDS[0]

    def test_random_debater_after_moderator(self):
        rng = random.Random(42)
        expected = random.Random(42).choice(DEBATER_IDS)
        assert next_speaker(MODERATOR_ID, rng) == expected

    def test_moderator_never_selected(self):
        rng = random.Random(0)
        picks = {next_speaker(MODERATOR_ID, rng) for _ in range(200)}
        assert MODERATOR_ID not in picks
        assert picks == set(DEBATER_IDS)

    def test_accepts_string_ids(self):
        assert next_speaker("SADNESS") == PersonaId.ANGER


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

class TestCommands:
    @pytest.mark.asyncio
    async def test_start_seeds_opener(self):
        orch = _make_orchestrator(_make_gateway())
        assert orch.start("universal basic income") is True

        assert orch.state == RunState.DEBATING
        assert len(orch.transcript) == 1
        opener = orch.transcript[0]
        assert opener.speaker_id == MODERATOR_ID
        assert '"universal basic income"' in opener.text

        orch.stop()
        await orch.join()

    @pytest.mark.asyncio
    async def test_start_with_empty_topic_is_ignored(self):
        orch = _make_orchestrator(_make_gateway())
        assert orch.start("") is False
        assert orch.start("   ") is False
        assert orch.state == RunState.IDLE
        assert len(orch.transcript) == 0
        await orch.join()

    @pytest.mark.asyncio
    async def test_start_while_debating_is_ignored(self):
        orch = _make_orchestrator(_make_gateway())
        orch.start("first")
        assert orch.start("second") is False
        assert orch.topic == "first"
        orch.stop()
        await orch.join()

    def test_commands_invalid_when_idle(self):
        orch = _make_orchestrator(_make_gateway())
        assert orch.stop() is False
        assert orch.conclude() is False
        assert orch.state == RunState.IDLE

    @pytest.mark.asyncio
    async def test_reset_rejected_while_debating(self):
        orch = _make_orchestrator(_make_gateway())
        orch.start("cats")
        assert orch.reset() is False
        assert orch.state == RunState.DEBATING
        orch.stop()
        await orch.join()


# ---------------------------------------------------------------------------
# Full runs
# ---------------------------------------------------------------------------

class TestRuns:
    @pytest.mark.asyncio
    async def test_scenario_conclude_after_four_turns(self):
        gateway = _make_gateway()
        orch = _make_orchestrator(gateway, max_turns=10)

        def _conclude_after_four(event, store):
            if event == StoreEvent.TURN and store.transcript.debater_turn_count() == 4:
                orch.conclude()

        orch.store.subscribe(_conclude_after_four)
        orch.start("universal basic income")
        await orch.join()

        assert orch.state == RunState.FINISHED
        assert len(orch.transcript) == 6
        assert orch.transcript[-1].speaker_id == MODERATOR_ID
        assert orch.transcript[-1].text == CLOSING
        assert gateway.generate_utterance.await_count == 4
        gateway.generate_closing.assert_awaited_once()
        assert orch.current_speaker is None

        assert orch.reset() is True
        assert len(orch.transcript) == 0
        assert orch.topic == ""
        assert orch.state == RunState.IDLE

    @pytest.mark.asyncio
    async def test_opening_and_closing_by_moderator_only(self):
        orch = _make_orchestrator(_make_gateway(), max_turns=6)
        orch.start("pineapple on pizza")
        await orch.join()

        turns = list(orch.transcript)
        assert turns[0].speaker_id == MODERATOR_ID
        assert turns[-1].speaker_id == MODERATOR_ID
        assert all(t.speaker_id != MODERATOR_ID for t in turns[1:-1])

    @pytest.mark.asyncio
    async def test_round_robin_order(self):
        orch = _make_orchestrator(_make_gateway(), max_turns=9, rng=random.Random(3))
        orch.start("homework")
        await orch.join()

        speakers = [t.speaker_id for t in list(orch.transcript)[1:-1]]
        assert len(speakers) == 9
        assert speakers[0] == random.Random(3).choice(DEBATER_IDS)
        for prev, nxt in zip(speakers, speakers[1:]):
            assert DEBATER_IDS.index(nxt) == (DEBATER_IDS.index(prev) + 1) % len(DEBATER_IDS)

    @pytest.mark.asyncio
    async def test_turn_ceiling_auto_concludes(self):
        gateway = _make_gateway()
        orch = _make_orchestrator(gateway, max_turns=2)
        states = []
        orch.store.subscribe(lambda event, store: states.append(store.state) if event == StoreEvent.STATE else None)

        orch.start("rainy days")
        await orch.join()

        assert states == [RunState.DEBATING, RunState.CONCLUDING, RunState.FINISHED]
        assert orch.transcript.debater_turn_count() == 2
        gateway.generate_closing.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_again_after_finished(self):
        orch = _make_orchestrator(_make_gateway(), max_turns=1)
        orch.start("first topic")
        await orch.join()
        assert orch.state == RunState.FINISHED

        assert orch.start("second topic") is True
        assert len(orch.transcript) == 1
        assert "second topic" in orch.transcript[0].text
        orch.stop()
        await orch.join()

    @pytest.mark.asyncio
    async def test_timestamps_non_decreasing(self):
        orch = _make_orchestrator(_make_gateway(), max_turns=4)
        orch.start("time")
        await orch.join()
        stamps = [t.timestamp for t in orch.transcript]
        assert stamps == sorted(stamps)


# ---------------------------------------------------------------------------
# Interruption and stale results
# ---------------------------------------------------------------------------

class TestInterruption:
    @pytest.mark.asyncio
    async def test_stop_discards_in_flight_reply(self):
        gateway = _make_gateway()
        utterance, called, release = _blocking_utterance()
        gateway.generate_utterance = AsyncMock(side_effect=utterance)
        orch = _make_orchestrator(gateway)

        orch.start("dentists")
        await called.wait()
        assert orch.current_speaker in DEBATER_IDS

        assert orch.stop() is True
        release.set()
        await orch.join()

        assert orch.state == RunState.IDLE
        assert len(orch.transcript) == 1
        assert orch.current_speaker is None

    @pytest.mark.asyncio
    async def test_stale_reply_not_appended_to_next_run(self):
        gateway = _make_gateway()
        utterance, called, release = _blocking_utterance()
        gateway.generate_utterance = AsyncMock(side_effect=utterance)
        orch = _make_orchestrator(gateway, max_turns=1)

        orch.start("first topic")
        await called.wait()
        orch.stop()
        called.clear()

        orch.start("second topic")
        await called.wait()
        release.set()
        await orch.join()

        texts = [t.text for t in orch.transcript]
        assert not any("first topic" in text for text in texts)
        assert "late reply on second topic" in texts
        assert orch.state == RunState.FINISHED

    @pytest.mark.asyncio
    async def test_conclude_drops_pending_debater_reply(self):
        gateway = _make_gateway()
        utterance, called, release = _blocking_utterance()
        gateway.generate_utterance = AsyncMock(side_effect=utterance)
        orch = _make_orchestrator(gateway)

        orch.start("snow")
        await called.wait()
        assert orch.conclude() is True
        assert orch.state == RunState.CONCLUDING
        release.set()
        await orch.join()

        assert orch.state == RunState.FINISHED
        assert [t.speaker_id for t in orch.transcript] == [MODERATOR_ID, MODERATOR_ID]
        gateway.generate_closing.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_conclude_releases_debater_before_closing(self):
        gateway = _make_gateway()
        utterance, called, release = _blocking_utterance()
        gateway.generate_utterance = AsyncMock(side_effect=utterance)
        speakers = []

        async def _sleep(_seconds):
            speakers.append(orch.current_speaker)
            await asyncio.sleep(0)

        orch = _make_orchestrator(gateway, sleep=_sleep)
        orch.start("snow")
        await called.wait()
        debater = orch.current_speaker
        assert debater in DEBATER_IDS
        orch.conclude()
        speakers.clear()
        release.set()
        await orch.join()

        # First wait after the dropped reply is the pacing sleep before the closing.
        assert speakers[0] is None
        assert debater not in speakers
        assert orch.current_speaker is None

    @pytest.mark.asyncio
    async def test_existing_conclusion_is_not_generated_twice(self):
        gateway = _make_gateway()
        utterance, called, release = _blocking_utterance()
        gateway.generate_utterance = AsyncMock(side_effect=utterance)
        orch = _make_orchestrator(gateway)

        orch.start("broccoli")
        await called.wait()
        orch.store.append(Turn.create(MODERATOR_ID, CLOSING))
        orch.conclude()
        release.set()
        await orch.join()

        assert orch.state == RunState.FINISHED
        gateway.generate_closing.assert_not_awaited()
        assert orch.transcript[-1].text == CLOSING
        assert len(orch.transcript) == 2

    @pytest.mark.asyncio
    async def test_stop_during_conclusion_discards_closing(self):
        gateway = _make_gateway()
        called = asyncio.Event()
        release = asyncio.Event()

        async def _closing(topic, turns):
            called.set()
            await release.wait()
            return CLOSING

        gateway.generate_closing = AsyncMock(side_effect=_closing)
        orch = _make_orchestrator(gateway, max_turns=1)

        orch.start("winter")
        await called.wait()
        assert orch.state == RunState.CONCLUDING
        orch.stop()
        release.set()
        await orch.join()

        assert orch.state == RunState.IDLE
        assert all(t.text != CLOSING for t in orch.transcript)


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------

class TestFailures:
    @pytest.mark.asyncio
    async def test_missing_credential_yields_notice_turn(self):
        factory = MagicMock(side_effect=MissingCredentialError())
        orch = _make_orchestrator(DebateGateway(factory), rng=random.Random(11))
        seen = {}

        def _record_first_turn(event, store):
            if event == StoreEvent.TURN and len(store.transcript) == 2:
                seen["state"] = store.state
                seen["turn"] = store.transcript.last
                orch.stop()

        orch.store.subscribe(_record_first_turn)
        orch.start("x")
        await orch.join()

        assert seen["state"] == RunState.DEBATING
        assert seen["turn"].text == MISSING_KEY_NOTICE
        assert seen["turn"].speaker_id == random.Random(11).choice(DEBATER_IDS)
        assert len(orch.transcript) == 2

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_run(self):
        orch = _make_orchestrator(_make_gateway(), max_turns=2)

        def _broken(event, store):
            raise RuntimeError("render failed")

        orch.store.subscribe(_broken)
        orch.start("listeners")
        await orch.join()
        assert orch.state == RunState.FINISHED

    @pytest.mark.asyncio
    async def test_pacing_and_thinking_delays(self):
        delays = []

        async def _record(seconds):
            delays.append(seconds)
            await asyncio.sleep(0)

        orch = _make_orchestrator(_make_gateway(), max_turns=1, sleep=_record, pacing=2.0, thinking_cap=1.0)
        orch.start("sleep")
        await orch.join()

        # pacing, thinking, pacing, thinking (closing)
        assert delays == [2.0, 1.0, 2.0, 1.0]

        orch.set_pacing(0.5)
        assert orch.thinking_delay == pytest.approx(0.3)
