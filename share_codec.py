"""
Stateless share links.

A card is projected into a short-keyed object, serialized as compact UTF-8 JSON
and encoded as unpadded base64url so the whole card fits in a URL path segment.
Free text is hard-cut to fixed ceilings before encoding to bound the URL length.
The generated image is never carried in the link.
"""

import base64
import json
import re
from typing import Any, Dict, List, NamedTuple, Optional

from card_schema import RoastCard


NAME_MAX = 30
EMOJI_MAX = 8
DESCRIPTION_MAX = 95
STAGE_MAX = 20
WEAKNESS_MAX = 20
FLAVOR_MAX = 95
MOVE_NAME_MAX = 20
MOVE_EFFECT_MAX = 40
QUOTE_MAX = 140
REACTION_MAX = 80
RIVAL_MAX = 60
GAP_MAX = 60
ROADMAP_TITLE_MAX = 20
ROADMAP_ACTION_MAX = 40
EPISODE_TITLE_MAX = 80
EPISODE_GUEST_MAX = 40
EPISODE_REASON_MAX = 50
ROAST_MAX = 100

_BASE64URL_RE = re.compile(r'^[A-Za-z0-9_-]+$')


class SharedCard(NamedTuple):
    card: RoastCard
    dreamRole: str


def _cut(text: str, limit: int) -> str:
    return text[:limit]


def to_shareable(card: RoastCard, dream_role: str) -> Dict[str, Any]:
    """Project a card into the short-keyed link object, applying text ceilings."""
    archetype = card.archetype
    return {
        "s": card.careerScore,
        "u": _cut(card.userName, NAME_MAX),
        "n": _cut(archetype.name, NAME_MAX),
        "e": _cut(archetype.emoji, EMOJI_MAX),
        "d": _cut(archetype.description, DESCRIPTION_MAX),
        "el": archetype.element,
        "st": _cut(archetype.stage, STAGE_MAX),
        "w": _cut(archetype.weakness, WEAKNESS_MAX),
        "f": _cut(archetype.flavor, FLAVOR_MAX),
        "m": [
            [_cut(m.name, MOVE_NAME_MAX), m.energyCost, m.damage, _cut(m.effect, MOVE_EFFECT_MAX)]
            for m in card.moves
        ],
        "ps": card.capabilities.productSense,
        "ex": card.capabilities.execution,
        "ld": card.capabilities.leadership,
        "dr": dream_role,
        "q": _cut(card.bangerQuote, QUOTE_MAX),
        "rr": _cut(card.dreamRoleReaction, REACTION_MAX),
        "rv": _cut(card.naturalRival, RIVAL_MAX),
        "g": [_cut(gap, GAP_MAX) for gap in card.gaps],
        "rm": [
            [phase.month, _cut(phase.title, ROADMAP_TITLE_MAX), [_cut(a, ROADMAP_ACTION_MAX) for a in phase.actions]]
            for phase in card.roadmap
        ],
        "ep": [
            [_cut(ep.title, EPISODE_TITLE_MAX), _cut(ep.guest, EPISODE_GUEST_MAX), _cut(ep.reason, EPISODE_REASON_MAX)]
            for ep in card.podcastEpisodes
        ],
        "r": [_cut(roast, ROAST_MAX) for roast in card.roastBullets],
    }


def from_shareable(data: Dict[str, Any]) -> SharedCard:
    """Rebuild a validated card from the short-keyed link object."""
    moves: List[Dict[str, Any]] = [
        {"name": n, "energyCost": c, "damage": d, "effect": e}
        for n, c, d, e in data["m"]
    ]
    roadmap = [
        {"month": month, "title": title, "actions": list(actions)}
        for month, title, actions in data["rm"]
    ]
    episodes = [
        {"title": title, "guest": guest, "reason": reason}
        for title, guest, reason in data["ep"]
    ]
    card = RoastCard(
        userName=data["u"],
        roastBullets=data["r"],
        archetype={
            "name": data["n"],
            "description": data["d"],
            "emoji": data["e"],
            "element": data["el"],
            "flavor": data["f"],
            "stage": data["st"],
            "weakness": data["w"],
        },
        moves=moves,
        careerScore=data["s"],
        capabilities={
            "productSense": data["ps"],
            "execution": data["ex"],
            "leadership": data["ld"],
        },
        gaps=data["g"],
        roadmap=roadmap,
        podcastEpisodes=episodes,
        bangerQuote=data["q"],
        dreamRoleReaction=data["rr"],
        naturalRival=data["rv"],
    )
    dream_role = data["dr"]
    if not isinstance(dream_role, str):
        raise TypeError("dream role must be a string")
    return SharedCard(card=card, dreamRole=dream_role)


def encode_card(card: RoastCard, dream_role: str) -> str:
    """Encode a card for a URL path (handles UTF-8/Unicode)."""
    payload = json.dumps(to_shareable(card, dream_role), ensure_ascii=False, separators=(',', ':'))
    encoded = base64.urlsafe_b64encode(payload.encode('utf-8')).decode('ascii')
    return encoded.rstrip('=')


def decode_card(encoded: str) -> Optional[SharedCard]:
    """
    Decode a share link payload.

    Returns None for anything that is not a well-formed encoded card, so the
    caller can render a "not found" state instead of an error.
    """
    if not isinstance(encoded, str) or not _BASE64URL_RE.match(encoded):
        return None
    try:
        padded = encoded + '=' * (-len(encoded) % 4)
        raw = base64.b64decode(padded, altchars=b'-_', validate=True)
        data = json.loads(raw.decode('utf-8'))
        if not isinstance(data, dict):
            return None
        return from_shareable(data)
    except (ValueError, TypeError, KeyError, IndexError, RecursionError):
        return None


def share_url(base_url: str, card: RoastCard, dream_role: str) -> str:
    """Stateless share URL carrying the whole card."""
    return f"{base_url.rstrip('/')}/share/{encode_card(card, dream_role)}"


def permalink_url(base_url: str, card_id: str) -> str:
    """Permalink to a persisted card."""
    return f"{base_url.rstrip('/')}/card/{card_id}"
