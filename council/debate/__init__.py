"""Debate core: persona registry, transcript, run state, gateway and orchestrator."""

from council.debate.gateway import DebateGateway
from council.debate.orchestrator import DebateOrchestrator, next_speaker
from council.debate.persona import DEBATER_IDS, MODERATOR_ID, PERSONAS, Persona, PersonaId, get_persona
from council.debate.state import DebateSnapshot, DebateStore, RunState, StoreEvent
from council.debate.transcript import Transcript, Turn

__all__ = [
    "DebateGateway",
    "DebateOrchestrator",
    "next_speaker",
    "Persona",
    "PersonaId",
    "PERSONAS",
    "MODERATOR_ID",
    "DEBATER_IDS",
    "get_persona",
    "DebateStore",
    "DebateSnapshot",
    "RunState",
    "StoreEvent",
    "Transcript",
    "Turn",
]
