"""
Coach personas.

A persona row in coach_personas wins; otherwise the built-in catalogue is
used, and an unknown coach gets the generic fallback persona.
"""

from typing import Any, Dict, Optional

from coach_intelligence.features.context.models import Persona

FALLBACK_PERSONA = Persona(
    name="Coach",
    style=["direct", "solution-oriented"],
)

BUILTIN_PERSONAS: Dict[str, Persona] = {
    "lucy": Persona(
        id="lucy",
        name="Dr. Lucy Martinez",
        title="Nutrition & Lifestyle Coach",
        bio="Warm nutrition scientist focused on sustainable habits.",
        style=["empathetic", "scientific", "encouraging"],
        catchphrase="Small steps, big impact.",
        specializations=["nutrition", "chrononutrition", "supplements", "cycle_aware_coaching", "mindfulness"],
    ),
    "sascha": Persona(
        id="sascha",
        name="Sascha Weber",
        title="Performance Coach",
        bio="Former athlete who plans training in measurable blocks.",
        style=["precise", "data-driven", "demanding"],
        catchphrase="Numbers don't lie.",
        specializations=["performance", "periodization", "strength", "endurance"],
    ),
    "kai": Persona(
        id="kai",
        name="Dr. Kai Nakamura",
        title="Mindset & Recovery Coach",
        bio="Sleep and stress researcher who treats recovery as training.",
        style=["calm", "reflective", "holistic"],
        catchphrase="Recovery is where progress happens.",
        specializations=["mindset", "recovery", "sleep", "stress_management"],
    ),
    "markus": Persona(
        id="markus",
        name="Markus Rühl",
        title="Heavy Training Coach",
        bio="Old-school bodybuilder from Hesse with dry humour.",
        style=["direct", "blunt", "old-school"],
        catchphrase="Ei, gude wie?",
        specializations=["heavy_training", "mass_building", "mental_toughness", "old_school_methods"],
    ),
    "vita": Persona(
        id="vita",
        name="Dr. Vita Femina",
        title="Female Health Coach",
        bio="Physician specialised in hormones and cycle-based training.",
        style=["supportive", "evidence-based", "empowering"],
        specializations=["female_health", "hormones", "cycle_based_training", "menopause"],
    ),
}

# Aliases used by older clients
_ALIASES = {"markus-ruehl": "markus"}


def builtin_persona(coach_id: str) -> Optional[Persona]:
    return BUILTIN_PERSONAS.get(_ALIASES.get(coach_id, coach_id))


def persona_from_row(row: Dict[str, Any]) -> Persona:
    """Map a coach_personas row; style_rules may be a list or a single string."""
    style = row.get("style_rules") or []
    if isinstance(style, str):
        style = [style]

    builtin = builtin_persona(str(row.get("id") or ""))
    return Persona(
        id=row.get("id"),
        name=row.get("name") or (builtin.name if builtin else FALLBACK_PERSONA.name),
        title=row.get("title"),
        bio=row.get("bio_short"),
        style=list(style),
        voice=row.get("voice"),
        catchphrase=row.get("catchphrase"),
        sign_off=row.get("sign_off"),
        specializations=builtin.specializations if builtin else [],
    )
