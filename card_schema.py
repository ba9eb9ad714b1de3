from typing import Dict, Any, List, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator


DREAM_ROLES: Dict[str, Dict[str, str]] = {
    "founder": {
        "label": "Founder / CEO",
        "description": "Start my own company",
    },
    "cpo-startup": {
        "label": "CPO at Series B",
        "description": "Lead product at a hot startup",
    },
    "cpo-enterprise": {
        "label": "CPO at Enterprise",
        "description": "Lead product at scale",
    },
    "l6-faang": {
        "label": "L6 at FAANG",
        "description": "Staff PM at big tech",
    },
    "l7-faang": {
        "label": "L7+ at FAANG",
        "description": "Principal/Director at big tech",
    },
    "vp-product": {
        "label": "VP of Product",
        "description": "Executive leadership",
    },
    "ic-senior": {
        "label": "Senior IC PM",
        "description": "Deep craft, high impact",
    },
}

ELEMENTS = ("data", "chaos", "strategy", "shipping", "politics", "vision")
Element = Literal["data", "chaos", "strategy", "shipping", "politics", "vision"]

ROAST_COUNT = 4
MOVE_COUNT = 3
GAP_COUNT = 3
ROADMAP_PHASES = 4
ACTIONS_PER_PHASE = 2
MAX_EPISODES = 3

MIN_NAME_LENGTH = 2


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class LegendRequest(BaseModel):
    """Inbound request to roast a named subject against a dream role"""
    name: str
    dreamRole: str
    imageUrl: Optional[str] = None
    wikipediaExtract: Optional[str] = None
    forceRegenerate: bool = False

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if len(v) < MIN_NAME_LENGTH:
            raise ValueError("Invalid name provided")
        return v

    @field_validator('dreamRole')
    @classmethod
    def validate_dream_role(cls, v):
        if v not in DREAM_ROLES:
            raise ValueError("Invalid dream role")
        return v

    @field_validator('imageUrl', 'wikipediaExtract')
    @classmethod
    def blank_to_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v


class Archetype(_Frozen):
    """The character class assigned to a card"""
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    emoji: str = Field(..., min_length=1)
    element: Element
    flavor: str = Field(..., min_length=1)
    stage: str = Field(..., min_length=1)
    weakness: str = Field(..., min_length=1)

    @field_validator('weakness')
    @classmethod
    def validate_weakness(cls, v):
        if len(v.split()) > 2:
            raise ValueError("Weakness must be one or two words")
        return v


class Move(_Frozen):
    """Trading-card attack"""
    name: str = Field(..., min_length=1)
    energyCost: int = Field(..., ge=1, le=4)
    damage: int = Field(..., ge=40, le=150)
    effect: str = Field(..., min_length=1)


class Capabilities(_Frozen):
    """FIFA-style sub-scores, 0-99 each"""
    productSense: int = Field(..., ge=0, le=99)
    execution: int = Field(..., ge=0, le=99)
    leadership: int = Field(..., ge=0, le=99)


class RoadmapPhase(_Frozen):
    month: int = Field(..., ge=1)
    title: str = Field(..., min_length=1)
    actions: List[str] = Field(..., min_length=ACTIONS_PER_PHASE, max_length=ACTIONS_PER_PHASE)


class PodcastEpisode(_Frozen):
    title: str
    guest: str
    reason: str


class RoastCard(_Frozen):
    """Complete roast card with enforced fixed-length sections"""
    userName: str = Field(..., min_length=1)
    roastBullets: List[str] = Field(..., min_length=ROAST_COUNT, max_length=ROAST_COUNT)
    archetype: Archetype
    moves: List[Move] = Field(..., min_length=MOVE_COUNT, max_length=MOVE_COUNT)
    careerScore: int = Field(..., ge=0, le=99)
    capabilities: Capabilities
    gaps: List[str] = Field(..., min_length=GAP_COUNT, max_length=GAP_COUNT)
    roadmap: List[RoadmapPhase] = Field(..., min_length=ROADMAP_PHASES, max_length=ROADMAP_PHASES)
    podcastEpisodes: List[PodcastEpisode] = Field(default_factory=list, max_length=MAX_EPISODES)
    bangerQuote: str = Field(..., min_length=1)
    dreamRoleReaction: str = Field(..., min_length=1)
    naturalRival: str = Field(..., min_length=1)
    archetypeImage: Optional[str] = None

    def with_image(self, image: Optional[str]) -> "RoastCard":
        """Return a copy carrying the given image reference"""
        return self.model_copy(update={"archetypeImage": image})


class ResolveOutcome(_Frozen):
    """What the pipeline hands back for one resolved request"""
    origin: Literal["corpus", "cache", "synthesized"]
    cached: bool
    card: RoastCard
    cardId: str


def validate_roast_card(card_json: Dict[str, Any]) -> RoastCard:
    """
    Validate a roast card JSON against the schema with full field-level enforcement.

    Args:
        card_json: Card as dictionary

    Returns:
        The parsed card

    Raises:
        ValueError: If validation fails
    """
    try:
        # Remove internal metadata fields before validation
        clean_json = {k: v for k, v in card_json.items() if not k.startswith('_')}
        return RoastCard(**clean_json)
    except Exception as e:
        raise ValueError(f"Roast card validation failed: {str(e)}")


def get_schema_example() -> Dict[str, Any]:
    """
    Get an example roast card that conforms to the schema.

    Returns:
        Example roast card JSON
    """
    return {
        "userName": "Alex",
        "roastBullets": [
            "Three years at a fintech and the login page still needs a sync.",
            "Your OKRs have OKRs.",
            "You called a button color change a platform bet.",
            "Every retro you run is a pre-mortem for the next retro.",
        ],
        "archetype": {
            "name": "Dashboard Druid",
            "description": "Summons charts to avoid making a single decision",
            "emoji": "📊",
            "element": "data",
            "flavor": "Often found staring at a funnel that only goes down.",
            "stage": "Senior",
            "weakness": "Deadlines",
        },
        "moves": [
            {"name": "Per My Last", "energyCost": 1, "damage": 45, "effect": "Forwards the thread. Again."},
            {"name": "But The Data", "energyCost": 2, "damage": 70, "effect": "Confuses a metric for a strategy."},
            {"name": "Quarterly Pivot", "energyCost": 4, "damage": 120, "effect": "Resets the roadmap to zero."},
        ],
        "careerScore": 62,
        "capabilities": {"productSense": 58, "execution": 64, "leadership": 55},
        "gaps": [
            "Saying no to stakeholders",
            "Shipping before the deck is done",
            "Writing a one-page strategy",
        ],
        "roadmap": [
            {"month": 1, "title": "Cut Scope", "actions": ["Kill one pet project", "Ship a tiny win"]},
            {"month": 2, "title": "Own a Metric", "actions": ["Pick one north star", "Review it weekly"]},
            {"month": 3, "title": "Lead Up", "actions": ["Pitch a bet to your VP", "Write the memo"]},
            {"month": 4, "title": "Go Big", "actions": ["Run a launch end to end", "Mentor a junior PM"]},
        ],
        "podcastEpisodes": [
            {"title": "The art of product strategy", "guest": "Shreyas Doshi", "reason": "You need fewer dashboards"},
        ],
        "bangerQuote": "You don't have a roadmap, you have a list of meetings with dates.",
        "dreamRoleReaction": "VP of Product? First, ship the settings page.",
        "naturalRival": "The engineer asking when it ships",
    }
