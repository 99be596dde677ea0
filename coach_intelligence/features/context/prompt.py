"""
System prompt rendering for a context bundle.

Sections without data are omitted, so a fail-soft bundle (fallback
persona, nothing else) still renders a usable prompt.
"""

from typing import List

from coach_intelligence.features.context.models import ContextBundle


def _fmt(value, suffix: str = "") -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value}{suffix}"


def render_system_prompt(bundle: ContextBundle) -> str:
    persona = bundle.persona
    sections: List[str] = []

    intro = f"You are {persona.name}"
    if persona.title:
        intro += f", {persona.title}"
    intro += "."
    if persona.bio:
        intro += f" {persona.bio}"
    sections.append(intro)

    if persona.style:
        sections.append("Style: " + ", ".join(persona.style))
    if persona.voice:
        sections.append(f"Voice: {persona.voice}")
    if persona.catchphrase:
        sections.append(f"Catchphrase: {persona.catchphrase}")

    memory = bundle.memory
    if memory:
        lines = ["## Relationship"]
        if memory.relationship_stage:
            lines.append(f"Stage: {memory.relationship_stage}")
        if memory.trust_level is not None:
            lines.append(f"Trust: {memory.trust_level}")
        if memory.last_context:
            lines.append(f"Last time: {memory.last_context}")
        if memory.preferences:
            lines.append("Preferences: " + ", ".join(f"{k}={v}" for k, v in memory.preferences.items()))
        if memory.achievements:
            lines.append("Achievements: " + "; ".join(str(a) for a in memory.achievements[:5]))
        if memory.challenges:
            lines.append("Challenges: " + "; ".join(str(c) for c in memory.challenges[:5]))
        sections.append("\n".join(lines))

    if bundle.conversation_summary:
        sections.append("## Conversation so far\n" + bundle.conversation_summary)

    daily = bundle.daily
    if daily:
        lines = [f"## Today ({daily.date})"]
        if daily.kcal_left is not None:
            lines.append(f"Calories left: {_fmt(daily.kcal_left, ' kcal')}")
        elif daily.calories is not None:
            lines.append(f"Calories eaten: {_fmt(daily.calories, ' kcal')}")
        if daily.protein is not None:
            lines.append(f"Protein: {_fmt(daily.protein, ' g')}")
        if daily.workout_volume:
            lines.append(f"Workout volume: {_fmt(daily.workout_volume, ' kg')}")
        if daily.sleep_score is not None:
            lines.append(f"Sleep score: {_fmt(daily.sleep_score)}")
        sections.append("\n".join(lines))

    if bundle.rag_chunks:
        lines = ["## Knowledge"]
        for index, chunk in enumerate(bundle.rag_chunks, start=1):
            source = chunk.title or chunk.source_id
            lines.append(f"[#{index} {source}]\n{chunk.content}")
        sections.append("\n".join(lines))

    if persona.sign_off:
        sections.append(f"Sign off with: {persona.sign_off}")

    return "\n\n".join(sections)
