"""Prompt shaping for persona lines and the moderator's closing statement."""

from typing import Iterable

from council.debate.persona import Persona, get_persona
from council.debate.transcript import Turn

EMPTY_TRANSCRIPT = "(no one has spoken yet)"

_STYLE_EXAMPLES = (
    '- Joy: bright and cheerful, lots of exclamation marks. "Wow! What a great idea!"\n'
    '- Sadness: slow and deflated, trailing off... "That\'s so sad..."\n'
    '- Anger: shouting, forceful!! "That is ridiculous!!"\n'
    '- Disgust: haughty and sarcastic. "Ugh, is that really the best you\'ve got?"\n'
    '- Fear: shaky and worried... "That\'s dangerous! No way!"'
)


def opening_line(topic: str) -> str:
    """The moderator's fixed opener. The topic is embedded verbatim."""
    return (
        f'Hi everyone! Today\'s topic is "{topic}"! '
        "What do you all think? Let's have a great discussion!"
    )


def format_transcript(turns: Iterable[Turn], with_roles: bool = False) -> str:
    """Serialize turns as a plain dialogue script, one ``Name: text`` per line.

    Diagnostic notices are left out so upstream failures never leak into the
    model's context.
    """
    lines = []
    for turn in turns:
        if turn.is_notice:
            continue
        persona = get_persona(turn.speaker_id)
        label = f"{persona.name} ({persona.role})" if with_roles else persona.name
        lines.append(f"{label}: {turn.text}")
    return "\n".join(lines)


def persona_system_prompt(persona: Persona) -> str:
    return (
        f"You are '{persona.name}', one of the emotions living inside a person's mind, "
        "taking part in a lively round-table discussion.\n\n"
        "[Persona]\n"
        f"Name: {persona.name}\n"
        f"Role: {persona.role}\n"
        f"Personality: {persona.description}\n\n"
        "[Rules]\n"
        "1. Fully act out this character's tone, mood and way of speaking. For example:\n"
        f"{_STYLE_EXAMPLES}\n"
        "2. Never reveal that you are an AI.\n"
        "3. Answer in 2-3 sentences, at most 4 short lines. Do not ramble.\n"
        "4. Talk about the topic only from your character's point of view.\n"
        "5. Do not start by saying your own name."
    )


def persona_user_prompt(topic: str, turns: Iterable[Turn], persona: Persona) -> str:
    transcript = format_transcript(turns)
    return (
        f'[Current topic]\n"{topic}"\n\n'
        f"[Conversation so far]\n{transcript or EMPTY_TRANSCRIPT}\n\n"
        "[Request]\n"
        f"Reply as {persona.name} in 2-3 short lines, full of {persona.name}'s feelings."
    )


def closing_system_prompt(moderator: Persona, debaters: Iterable[Persona]) -> str:
    friends = ", ".join(p.name for p in debaters)
    return (
        f"You are '{moderator.name}', the leader who opened this discussion.\n\n"
        "[Mission]\n"
        f"You have heard every opinion from your friends ({friends}). "
        "Bring them together into a positive, hopeful conclusion.\n\n"
        "[Rules]\n"
        "1. Acknowledge the worries, anger and sadness you heard and steer them somewhere good.\n"
        "2. Stay bright and energetic, as always!\n"
        "3. Wrap up clearly within 3-4 lines."
    )


def closing_user_prompt(topic: str, turns: Iterable[Turn]) -> str:
    transcript = format_transcript(turns, with_roles=True)
    return (
        f'[Topic]\n"{topic}"\n\n'
        f"[Conversation]\n{transcript or EMPTY_TRANSCRIPT}\n\n"
        "[Request]\n"
        "As the moderator, give a happy conclusion that embraces everyone! (keep it short)"
    )
