"""Persona registry: the fixed cast of debate participants."""

from enum import Enum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict


class PersonaId(str, Enum):
    """Closed set of participant identifiers."""

    JOY = "JOY"
    SADNESS = "SADNESS"
    ANGER = "ANGER"
    DISGUST = "DISGUST"
    FEAR = "FEAR"


class Persona(BaseModel):
    """A named participant. Presentation attributes are pass-through only."""

    model_config = ConfigDict(frozen=True)

    id: PersonaId
    name: str
    role: str
    description: str
    color: str = "white"
    icon: str = ""
    moderator: bool = False


_CAST = (
    Persona(
        id=PersonaId.JOY,
        name="Joy",
        role="Leader of happiness",
        description=(
            "Sees the bright side and keeps everyone moving. Always lively and "
            "hopeful, and tries to land every discussion on an upbeat conclusion."
        ),
        color="yellow",
        icon="☀️",
        moderator=True,
    ),
    Persona(
        id=PersonaId.SADNESS,
        name="Sadness",
        role="Empathetic gloom",
        description=(
            "Points out the dark and sorrowful side of things. Low on energy, "
            "but looks at every problem with deep empathy."
        ),
        color="blue",
        icon="🌧️",
    ),
    Persona(
        id=PersonaId.ANGER,
        name="Anger",
        role="Fiery sense of justice",
        description=(
            "Gets loudly furious about anything unfair or frustrating. Blunt, "
            "explosive and never holds an opinion back."
        ),
        color="red",
        icon="🔥",
    ),
    Persona(
        id=PersonaId.DISGUST,
        name="Disgust",
        role="Picky critic",
        description=(
            "Cannot stand anything low-quality or distasteful. Cynical and "
            "sarcastic, but always pinpoints the real issue."
        ),
        color="green",
        icon="🥦",
    ),
    Persona(
        id=PersonaId.FEAR,
        name="Fear",
        role="Anxious safety officer",
        description=(
            "Imagines every way things could go wrong. Nervous and jittery, "
            "always warning the others about risks."
        ),
        color="magenta",
        icon="👁️",
    ),
)

PERSONAS: MappingProxyType[PersonaId, Persona] = MappingProxyType({p.id: p for p in _CAST})

_moderators = [p.id for p in _CAST if p.moderator]
if len(_moderators) != 1:
    raise RuntimeError(f"Persona registry needs exactly one moderator, found {len(_moderators)}")

MODERATOR_ID: PersonaId = _moderators[0]

# Rotation order for the round robin; the moderator never takes part.
DEBATER_IDS: tuple[PersonaId, ...] = tuple(p.id for p in _CAST if not p.moderator)


def get_persona(persona_id: PersonaId | str) -> Persona:
    """Look up a persona, accepting either the enum or its string value."""
    return PERSONAS[PersonaId(persona_id)]


def is_moderator(persona_id: PersonaId | str) -> bool:
    return PersonaId(persona_id) == MODERATOR_ID


def moderator() -> Persona:
    return PERSONAS[MODERATOR_ID]


def debaters() -> list[Persona]:
    return [PERSONAS[pid] for pid in DEBATER_IDS]
