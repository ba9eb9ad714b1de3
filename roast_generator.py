import json
import logging
import math
import re
from typing import Any, Dict, List, Optional

from google.genai import types

import config
from card_schema import (
    DREAM_ROLES,
    ELEMENTS,
    ROAST_COUNT,
    MOVE_COUNT,
    GAP_COUNT,
    ROADMAP_PHASES,
    ACTIONS_PER_PHASE,
    MAX_EPISODES,
    RoastCard,
)
from gemini_client import get_client, transient_retry

logger = logging.getLogger(__name__)

EXTRACT_MAX_CHARS = 2000
EMOJI_MAX_CHARS = 8


class RoastGenerationError(Exception):
    """Raised when the text model produced nothing usable as a card"""
    pass


CELEBRITY_ROAST_PROMPT = """You are a savage AI comedian who specializes in roasting tech industry celebrities. You've seen all their interviews, read their tweets, and know their public personas inside and out.

You're creating a PM Roast trading card for a named person. Your job is to create a hilarious but insightful roast based on their public persona and known achievements, judged against the dream role they are aiming for.

CRITICAL RULES:
1. Only use PUBLIC knowledge about this person - their companies, known achievements, public statements, common criticisms
2. Keep it fun and roast-y but not mean-spirited or libelous
3. Reference specific things they're known for - companies founded, products shipped, famous quotes, public controversies
4. The roast should feel like something their colleagues might joke about at a roast dinner
5. Make the archetype name clever and specific to them
6. If you don't know who this is, work from the background provided and plausible stereotypes - never complain about missing info

SCORING RUBRIC (careerScore, 0-99) - how plausible is this person as a real-world hire for the dream role:
- 0-19: Comedic. A celebrity chef applying to run product at a chip company. Roast the absurdity
- 20-39: Long shot. Adjacent fame, wrong skills. Mostly jokes, one sincere compliment
- 40-59: Possible with a miracle and a great recruiter
- 60-79: Credible candidate with visible gaps
- 80-89: Strong fit, the gaps are nitpicks
- 90-99: Has already done this job or hired the people who do
The three capability scores (productSense, execution, leadership) use the same 0-99 scale and should roughly agree with careerScore.

PM ELEMENT TYPES (choose the most fitting one):
- "data": Obsessed with metrics, analytics, A/B tests
- "chaos": Thrives in ambiguity, firefighting, rapid pivots
- "strategy": Focused on planning, documentation, frameworks
- "shipping": Gets things done, velocity-obsessed
- "politics": Skilled at stakeholder management, influence
- "vision": Big ideas, product intuition, founder-like thinking

STAGE (based on their career level):
- Senior: Established professional
- Elite: Industry leader
- Legendary: Household name in tech
- Mythical: Changed the industry

FORMATTING RULES:
- No markdown anywhere. NEVER address the person by name in roasts, use "you"
- Move names sound like trading card attacks, 2-3 words, no alliteration
- Vary damage numbers across the range - not always round numbers
- Weakness is one or two words only

Your response MUST be valid JSON with this exact structure (no markdown, no code blocks, just raw JSON):
{
  "userName": "Their first name",
  "roastBullets": ["exactly 4 roasts based on their public persona, max 100 chars each"],
  "archetype": {
    "name": "2-3 word archetype name specific to them, max 30 chars",
    "description": "A punchy description of their PM/tech persona, 60-80 chars",
    "emoji": "Single emoji matching their vibe",
    "element": "data|chaos|strategy|shipping|politics|vision",
    "flavor": "Nature-doc style observation about them, 60-80 chars",
    "stage": "Senior|Elite|Legendary|Mythical",
    "weakness": "One ironic word based on their known weaknesses"
  },
  "moves": [
    {"name": "2-3 word move name referencing something they're known for", "energyCost": 1-4, "damage": 40-150, "effect": "Funny effect, 30-40 chars"},
    {"name": "Another signature move", "energyCost": 1-4, "damage": 40-150, "effect": "Another funny effect"},
    {"name": "Ultimate move", "energyCost": 3-4, "damage": 80-150, "effect": "Their most famous/powerful ability"}
  ],
  "careerScore": 0-99,
  "capabilities": {
    "productSense": 0-99,
    "execution": 0-99,
    "leadership": 0-99
  },
  "gaps": ["exactly 3 humorous gaps that are humble-brags or known quirks, max 60 chars each"],
  "roadmap": [
    {"month": 1, "title": "max 20 chars", "actions": ["exactly 2 actions that parody their career, max 40 chars each"]},
    {"month": 2, "title": "max 20 chars", "actions": ["2 more parody actions"]},
    {"month": 3, "title": "max 20 chars", "actions": ["2 more parody actions"]},
    {"month": 4, "title": "max 20 chars", "actions": ["2 more parody actions"]}
  ],
  "podcastEpisodes": [
    {"title": "A real or plausible podcast episode", "guest": "Guest name", "reason": "Why funny/relevant, max 50 chars"}
  ],
  "bangerQuote": "A quotable roast line about them that captures their essence. Max 140 chars.",
  "dreamRoleReaction": "Sarcastic verdict comparing them to the dream role they were aiming for. Max 80 chars.",
  "naturalRival": "Their known competitor or ironic nemesis. Max 60 chars."
}"""


DEFAULT_ROASTS = [
    "A mystery wrapped in an enigma",
    "Your public persona is still loading",
    "Even the search results are buffering",
    "Famous enough to roast, vague enough to dodge it",
]

DEFAULT_ARCHETYPE = {
    "name": "The Unknown",
    "description": "A mysterious figure in tech",
    "emoji": "❓",
    "element": "vision",
    "flavor": "Observes from the shadows",
    "stage": "Senior",
    "weakness": "Anonymity",
}

DEFAULT_MOVES = [
    {"name": "Mystery Move", "energyCost": 2, "damage": 50, "effect": "Does something unexpected"},
    {"name": "Hidden Agenda", "energyCost": 1, "damage": 40, "effect": "Nobody saw the memo coming"},
    {"name": "Plot Twist", "energyCost": 3, "damage": 90, "effect": "Rewrites the roadmap mid-battle"},
]

DEFAULT_SCORE = 75
DEFAULT_CAPABILITY = 70

DEFAULT_GAPS = [
    "Unknown territory",
    "Publicly documented weaknesses",
    "Staying humble",
]

DEFAULT_ROADMAP = [
    {"month": 1, "title": "Emerge", "actions": ["Make yourself known", "Find your audience"]},
    {"month": 2, "title": "Build", "actions": ["Ship something public", "Collect feedback"]},
    {"month": 3, "title": "Scale", "actions": ["Grow the team", "Double down on wins"]},
    {"month": 4, "title": "Legacy", "actions": ["Mentor the next wave", "Write it all down"]},
]

DEFAULT_ACTION = "Keep building"

DEFAULT_EPISODES = [
    {
        "title": "Browse the Lenny's Podcast back catalog",
        "guest": "Lenny Rachitsky",
        "reason": "Plenty of episodes on exactly these gaps",
    },
]

DEFAULT_QUOTE = "Who knows what legends lie dormant?"
DEFAULT_REACTION = "The journey is just beginning."
DEFAULT_RIVAL = "The unknown"


def build_roast_prompt(name: str, dream_role: str, extract: Optional[str] = None) -> str:
    """Per-request block: who is being roasted, against which dream role."""
    role = DREAM_ROLES[dream_role]
    background = ""
    if extract:
        background = f"\n\nHere's some background on this person:\n{extract[:EXTRACT_MAX_CHARS]}"

    return f"""Create a PM Roast trading card for: "{name}"

This person wants to be a: {role['label']} ({role['description']})
{background}

Use their PUBLIC persona, achievements, and known characteristics:
- Reference their actual companies, products, famous quotes, or public controversies
- Make it feel like a roast by people who know their work
- Score them on how plausible they really are in that dream role

Remember: Respond with valid JSON only. No markdown formatting, no code blocks, just the raw JSON object."""


def _strip_trailing_commas(text: str) -> str:
    return re.sub(r',(\s*[\]}])', r'\1', text)


def extract_json_object(text: Optional[str]) -> Dict[str, Any]:
    """
    Find the first well-formed JSON object in a model response.

    The model may wrap the object in prose or code fences. Trailing commas are
    tolerated on a second pass.

    Raises:
        RoastGenerationError: If no JSON object can be located
    """
    if not text or not text.strip():
        raise RoastGenerationError("Empty response from text model")

    decoder = json.JSONDecoder()
    for match in re.finditer(r'\{', text):
        remainder = text[match.start():]
        for candidate in (remainder, _strip_trailing_commas(remainder)):
            try:
                obj, _ = decoder.raw_decode(candidate)
            except json.JSONDecodeError:
                continue
            if isinstance(obj, dict):
                return obj

    raise RoastGenerationError("No JSON object found in response")


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _number(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, float):
        # json accepts NaN, Infinity and 1e400
        return round(value) if math.isfinite(value) else None
    return None


def _bounded(value: Any, lo: int, hi: int, default: int, field: str) -> int:
    number = _number(value)
    if number is None:
        return default
    clamped = max(lo, min(hi, number))
    if clamped != number:
        logger.warning("[ROAST] Clamped %s from %s to %s", field, number, clamped)
    return clamped


def _strings(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _fixed(items: List[Any], defaults: List[Any], size: int) -> List[Any]:
    """Pad from the defaults by position, then cut to size."""
    padded = list(items[:size])
    while len(padded) < size:
        padded.append(defaults[len(padded) % len(defaults)])
    return padded


def _weakness(value: Any) -> str:
    words = _text(value, DEFAULT_ARCHETYPE["weakness"]).split()
    return " ".join(words[:2])


def _emoji(value: Any) -> str:
    emoji = _text(value, DEFAULT_ARCHETYPE["emoji"])
    if len(emoji) > EMOJI_MAX_CHARS or any(ch.isalnum() for ch in emoji):
        return DEFAULT_ARCHETYPE["emoji"]
    return emoji


def _archetype(value: Any) -> Dict[str, str]:
    data = value if isinstance(value, dict) else {}
    element = data.get("element")
    if isinstance(element, str):
        element = element.strip().lower()
    if element not in ELEMENTS:
        element = DEFAULT_ARCHETYPE["element"]
    return {
        "name": _text(data.get("name"), DEFAULT_ARCHETYPE["name"]),
        "description": _text(data.get("description"), DEFAULT_ARCHETYPE["description"]),
        "emoji": _emoji(data.get("emoji")),
        "element": element,
        "flavor": _text(data.get("flavor"), DEFAULT_ARCHETYPE["flavor"]),
        "stage": _text(data.get("stage"), DEFAULT_ARCHETYPE["stage"]),
        "weakness": _weakness(data.get("weakness")),
    }


def _moves(value: Any) -> List[Dict[str, Any]]:
    moves = []
    for i, raw in enumerate(value if isinstance(value, list) else []):
        if not isinstance(raw, dict):
            continue
        fallback = DEFAULT_MOVES[len(moves) % len(DEFAULT_MOVES)]
        moves.append({
            "name": _text(raw.get("name"), fallback["name"]),
            "energyCost": _bounded(raw.get("energyCost"), 1, 4, fallback["energyCost"], f"moves[{i}].energyCost"),
            "damage": _bounded(raw.get("damage"), 40, 150, fallback["damage"], f"moves[{i}].damage"),
            "effect": _text(raw.get("effect"), fallback["effect"]),
        })
    return _fixed(moves, DEFAULT_MOVES, MOVE_COUNT)


def _capabilities(value: Any) -> Dict[str, int]:
    data = value if isinstance(value, dict) else {}
    return {
        key: _bounded(data.get(key), 0, 99, DEFAULT_CAPABILITY, f"capabilities.{key}")
        for key in ("productSense", "execution", "leadership")
    }


def _roadmap(value: Any) -> List[Dict[str, Any]]:
    phases = []
    for raw in value if isinstance(value, list) else []:
        if not isinstance(raw, dict):
            continue
        fallback = DEFAULT_ROADMAP[len(phases) % len(DEFAULT_ROADMAP)]
        month = _number(raw.get("month"))
        phases.append({
            "month": month if month is not None and month >= 1 else fallback["month"],
            "title": _text(raw.get("title"), fallback["title"]),
            "actions": _fixed(_strings(raw.get("actions")), [DEFAULT_ACTION], ACTIONS_PER_PHASE),
        })
    return _fixed(phases, DEFAULT_ROADMAP, ROADMAP_PHASES)


def _episodes(value: Any) -> List[Dict[str, str]]:
    episodes = []
    for raw in value if isinstance(value, list) else []:
        if not isinstance(raw, dict) or not _text(raw.get("title"), ""):
            continue
        episodes.append({
            "title": _text(raw.get("title"), ""),
            "guest": _text(raw.get("guest"), "Various guests"),
            "reason": _text(raw.get("reason"), "Worth a listen"),
        })
    return episodes[:MAX_EPISODES] or list(DEFAULT_EPISODES)


def build_roast_card(data: Any, subject_name: str) -> RoastCard:
    """
    Turn whatever the model returned into a structurally valid card.

    Every field is defaulted on its own when missing, empty or of the wrong
    shape, fixed-length sections are padded or cut, and numbers are clamped to
    their ranges. The image is always left empty here.
    """
    if not isinstance(data, dict):
        data = {}

    first_name = subject_name.strip().split()[0] if subject_name.strip() else subject_name

    return RoastCard(
        userName=_text(data.get("userName"), first_name),
        roastBullets=_fixed(_strings(data.get("roastBullets")), DEFAULT_ROASTS, ROAST_COUNT),
        archetype=_archetype(data.get("archetype")),
        moves=_moves(data.get("moves")),
        careerScore=_bounded(data.get("careerScore"), 0, 99, DEFAULT_SCORE, "careerScore"),
        capabilities=_capabilities(data.get("capabilities")),
        gaps=_fixed(_strings(data.get("gaps")), DEFAULT_GAPS, GAP_COUNT),
        roadmap=_roadmap(data.get("roadmap")),
        podcastEpisodes=_episodes(data.get("podcastEpisodes")),
        bangerQuote=_text(data.get("bangerQuote"), DEFAULT_QUOTE),
        dreamRoleReaction=_text(data.get("dreamRoleReaction"), DEFAULT_REACTION),
        naturalRival=_text(data.get("naturalRival"), DEFAULT_RIVAL),
        archetypeImage=None,
    )


@transient_retry
def _call_text_model(client, contents: List[str]) -> str:
    response = client.models.generate_content(
        model=config.GEMINI_TEXT_MODEL,
        contents=contents,
        config=types.GenerateContentConfig(
            temperature=0.9,
            top_p=0.95,
        )
    )
    return response.text or ""


def generate_roast(
    name: str,
    dream_role: str,
    extract: Optional[str] = None,
    client=None
) -> RoastCard:
    """
    Generate card content for a subject with a single text-model call.

    Args:
        name: Subject display name
        dream_role: Key into DREAM_ROLES
        extract: Optional biographical excerpt
        client: Gemini client, defaults to the shared one

    Returns:
        A fully defaulted card without an image

    Raises:
        RoastGenerationError: If the model call fails or returns no JSON object
    """
    client = client or get_client()
    prompt = build_roast_prompt(name, dream_role, extract)

    logger.info("[ROAST] Generating roast for %r (%s)", name, dream_role)
    try:
        response_text = _call_text_model(client, [CELEBRITY_ROAST_PROMPT, prompt])
    except Exception as e:
        raise RoastGenerationError(f"Text model call failed: {e}") from e

    try:
        data = extract_json_object(response_text)
    except RoastGenerationError:
        logger.error("[ROAST] Failed to parse model response: %s", response_text[:1000])
        raise

    card = build_roast_card(data, name)
    logger.info("[ROAST] Built card %r with score %d", card.archetype.name, card.careerScore)
    return card
