"""
Pre-authored legend cards.

The corpus is an immutable lookup table built once at start-up and passed to the
pipeline, so tests can swap in their own table.
"""

import logging
import re
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from card_schema import Element, Move, RoastCard

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 5

_WHITESPACE_RE = re.compile(r'\s+')


class FamousCard(BaseModel):
    """A pre-generated legend card with a precomputed image"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    title: str
    company: str
    score: int = Field(..., ge=0, le=99)
    archetypeName: str
    archetypeEmoji: str
    archetypeDescription: str
    element: Element
    flavor: str
    stage: str
    weakness: str
    moves: Tuple[Move, ...] = Field(..., min_length=3, max_length=3)
    roastBullets: Tuple[str, ...] = Field(..., min_length=4, max_length=4)
    bangerQuote: str
    naturalRival: str
    reaction: str
    imageUrl: str


def normalize_name(name: str) -> str:
    """Case-fold, trim and collapse internal whitespace."""
    return _WHITESPACE_RE.sub(' ', name.strip()).casefold()


def accept_fuzzy_match(query: str, candidate_name: str) -> bool:
    """
    Conservative acceptance rule for a fuzzy candidate.

    Accept only when the candidate's name starts with the query, or the query
    starts with the candidate's first name token. A lone surname or an unrelated
    first name never resolves to a legend.
    """
    q = normalize_name(query)
    c = normalize_name(candidate_name)
    if not q or not c:
        return False
    first_token = c.split(' ')[0]
    return c.startswith(q) or q.startswith(first_token)


class FamousCardCorpus:
    """Read-only table of legend cards with exact and fuzzy name lookup."""

    def __init__(self, cards: Iterable[FamousCard]):
        self._cards: Tuple[FamousCard, ...] = tuple(cards)
        self._by_name: Dict[str, FamousCard] = {normalize_name(c.name): c for c in self._cards}
        self._by_id: Dict[str, FamousCard] = {c.id: c for c in self._cards}
        if len(self._by_id) != len(self._cards):
            raise ValueError("Famous card ids must be unique")

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self):
        return iter(self._cards)

    def get_by_name(self, name: str) -> Optional[FamousCard]:
        return self._by_name.get(normalize_name(name))

    def get_by_id(self, card_id: str) -> Optional[FamousCard]:
        return self._by_id.get(card_id)

    def search(self, query: str, limit: int = SEARCH_LIMIT) -> List[FamousCard]:
        """
        Rank legend cards by substring and token similarity.

        Ranking, best first: name starts with the query, a name token starts with
        the query, name contains the query, company or title contains the query.
        """
        q = normalize_name(query)
        if not q:
            return []

        ranked: List[Tuple[int, int, FamousCard]] = []
        for position, card in enumerate(self._cards):
            name = normalize_name(card.name)
            if name.startswith(q):
                rank = 0
            elif any(token.startswith(q) for token in name.split(' ')):
                rank = 1
            elif q in name:
                rank = 2
            elif q in card.company.casefold() or q in card.title.casefold():
                rank = 3
            else:
                continue
            ranked.append((rank, position, card))

        ranked.sort(key=lambda item: (item[0], item[1]))
        return [card for _, _, card in ranked[:limit]]

    def find(self, name: str) -> Optional[FamousCard]:
        """Exact match, else the best fuzzy candidate if it passes the prefix rule."""
        exact = self.get_by_name(name)
        if exact:
            return exact
        candidates = self.search(name)
        if candidates and accept_fuzzy_match(name, candidates[0].name):
            logger.info("[CORPUS] Fuzzy match %r -> %r", name, candidates[0].name)
            return candidates[0]
        return None


LEGEND_GAPS = [
    "Already a legend - gaps are irrelevant",
    "Too famous to have weaknesses",
    "The gaps fear them instead",
]

LEGEND_ROADMAP = [
    {"month": 1, "title": "Continue Dominating", "actions": ["Stay legendary", "Ignore the haters"]},
    {"month": 2, "title": "Scale Empire", "actions": ["Acquire competitors", "Expand influence"]},
    {"month": 3, "title": "Build Legacy", "actions": ["Write memoirs", "Start foundation"]},
    {"month": 4, "title": "World Domination", "actions": ["Complete ascension", "Transcend mortality"]},
]


def _capability(score: int, weight: float, bonus: float) -> int:
    return max(0, min(99, round(score * weight + bonus)))


def famous_card_to_result(card: FamousCard) -> RoastCard:
    """Map a legend entry to the card shape. Independent of the dream role."""
    return RoastCard(
        userName=card.name,
        roastBullets=list(card.roastBullets),
        archetype={
            "name": card.archetypeName,
            "description": card.archetypeDescription,
            "emoji": card.archetypeEmoji,
            "element": card.element,
            "flavor": card.flavor,
            "stage": card.stage,
            "weakness": card.weakness,
        },
        moves=list(card.moves),
        careerScore=card.score,
        capabilities={
            "productSense": _capability(card.score, 0.95, 2.5),
            "execution": _capability(card.score, 0.9, 4),
            "leadership": _capability(card.score, 0.85, 5),
        },
        gaps=LEGEND_GAPS,
        roadmap=LEGEND_ROADMAP,
        podcastEpisodes=[
            {"title": "How I Built This", "guest": card.name, "reason": "Learn from the legend directly"},
        ],
        bangerQuote=card.bangerQuote,
        dreamRoleReaction=card.reaction,
        naturalRival=card.naturalRival,
        archetypeImage=card.imageUrl,
    )


FAMOUS_CARD_DATA: Tuple[Dict[str, Any], ...] = (
    {
        "id": "brian-chesky",
        "name": "Brian Chesky",
        "title": "Co-founder & CEO",
        "company": "Airbnb",
        "score": 94,
        "archetypeName": "The Design Dictator",
        "archetypeEmoji": "🎨",
        "archetypeDescription": "Reviews every pixel personally, then calls it founder mode",
        "element": "vision",
        "flavor": "Can be heard rejecting a font choice from three floors away.",
        "stage": "Legendary",
        "weakness": "Kerning",
        "moves": [
            {"name": "Founder Mode", "energyCost": 2, "damage": 90, "effect": "Skips five layers of management."},
            {"name": "Belong Anywhere", "energyCost": 1, "damage": 55, "effect": "Adds a cleaning fee to the attack."},
            {"name": "Eleven Star Stay", "energyCost": 4, "damage": 140, "effect": "Redesigns the battlefield. Twice."},
        ],
        "roastBullets": [
            "Turned air mattresses into a trillion-dollar vibe check.",
            "Personally reviews more decks than most design agencies.",
            "Made the cleaning fee a household debate topic.",
            "Coined founder mode so nobody else could skip-level you first.",
        ],
        "bangerQuote": "You flattened the org chart so you could critique button padding with no one in the way.",
        "naturalRival": "Hotel lobbyists",
        "reaction": "Already surpassed any PM ladder. Busy redesigning the ladder.",
        "imageUrl": "/cards/brian-card.png",
    },
    {
        "id": "demis-hassabis",
        "name": "Demis Hassabis",
        "title": "Co-founder & CEO",
        "company": "Google DeepMind",
        "score": 97,
        "archetypeName": "The Galaxy Brain",
        "archetypeEmoji": "🧠",
        "archetypeDescription": "Solved protein folding as a side quest between board games",
        "element": "data",
        "flavor": "Plays chess against itself and still files a research paper.",
        "stage": "Mythical",
        "weakness": "Small Talk",
        "moves": [
            {"name": "Move Thirty Seven", "energyCost": 3, "damage": 120, "effect": "Nobody understands it until it wins."},
            {"name": "Fold Protein", "energyCost": 2, "damage": 95, "effect": "Casually ends a 50-year problem."},
            {"name": "Nobel Flex", "energyCost": 4, "damage": 150, "effect": "Mentions it exactly once. Loudly."},
        ],
        "roastBullets": [
            "Your idea of a fun weekend is beating a world champion at Go.",
            "Builds games, then builds AIs to beat the games.",
            "Collected a Nobel Prize like it was a side achievement.",
            "Every roadmap you write ends with general intelligence.",
        ],
        "bangerQuote": "Most PMs ship features; you ship scientific breakthroughs and call them research previews.",
        "naturalRival": "The OpenAI press cycle",
        "reaction": "The dream role is a rounding error on this resume.",
        "imageUrl": "/cards/demis-card.png",
    },
    {
        "id": "lenny-rachitsky",
        "name": "Lenny Rachitsky",
        "title": "Writer & Podcast Host",
        "company": "Lenny's Newsletter",
        "score": 88,
        "archetypeName": "The PM Whisperer",
        "archetypeEmoji": "🎙️",
        "archetypeDescription": "Interviews the best PMs so the rest of us can pretend",
        "element": "strategy",
        "flavor": "Observed turning a single tweet into a 40-minute framework.",
        "stage": "Elite",
        "weakness": "Brevity",
        "moves": [
            {"name": "Deep Dive", "energyCost": 2, "damage": 70, "effect": "Drops a 6,000 word post before lunch."},
            {"name": "Guest Drop", "energyCost": 1, "damage": 50, "effect": "Summons a famous CPO to agree with you."},
            {"name": "Paid Tier", "energyCost": 3, "damage": 110, "effect": "The rest of the attack is paywalled."},
        ],
        "roastBullets": [
            "Left Airbnb to become the PM industry's group chat.",
            "Has more frameworks than most companies have products.",
            "Every PM interview answer now starts with 'as Lenny said'.",
            "Turned a newsletter into a career ladder for other people.",
        ],
        "bangerQuote": "You figured out the real product was the content about making products.",
        "naturalRival": "Unsubscribe buttons",
        "reaction": "Already coaching everyone who holds that role.",
        "imageUrl": "/cards/lenny-card.png",
    },
    {
        "id": "reid-hoffman",
        "name": "Reid Hoffman",
        "title": "Co-founder",
        "company": "LinkedIn",
        "score": 90,
        "archetypeName": "The Network Node",
        "archetypeEmoji": "🕸️",
        "archetypeDescription": "Knows everyone, invested in everyone, endorsed you for Excel",
        "element": "politics",
        "flavor": "Sends connection requests at a rate scientists cannot measure.",
        "stage": "Legendary",
        "weakness": "Agree?",
        "moves": [
            {"name": "Blitzscale", "energyCost": 3, "damage": 115, "effect": "Grows first, asks questions never."},
            {"name": "Warm Intro", "energyCost": 1, "damage": 45, "effect": "Gets you a meeting you did not want."},
            {"name": "Endorse Skill", "energyCost": 2, "damage": 60, "effect": "You are now an expert in Synergy."},
        ],
        "roastBullets": [
            "Built the only social network where people humblebrag in suits.",
            "Turned 'I'm humbled to announce' into a content genre.",
            "Wrote the book on blitzscaling, then the audiobook, then the podcast.",
            "Probably has a second-degree connection to your landlord.",
        ],
        "bangerQuote": "You built a platform where every layoff becomes a thought leadership post.",
        "naturalRival": "Recruiter InMail fatigue",
        "reaction": "Doesn't need the role. Already connected to whoever has it.",
        "imageUrl": "/cards/reid-card.png",
    },
    {
        "id": "elon-musk",
        "name": "Elon Musk",
        "title": "CEO",
        "company": "Tesla, SpaceX",
        "score": 91,
        "archetypeName": "The Chaos Emperor",
        "archetypeEmoji": "🚀",
        "archetypeDescription": "Runs six companies and one extremely online timeline",
        "element": "chaos",
        "flavor": "Most active between 2am and 4am local time.",
        "stage": "Mythical",
        "weakness": "Deadlines",
        "moves": [
            {"name": "Hardcore Mode", "energyCost": 3, "damage": 100, "effect": "Half the team leaves the arena."},
            {"name": "Rapid Disassembly", "energyCost": 2, "damage": 85, "effect": "Calls the explosion a success."},
            {"name": "Next Year FSD", "energyCost": 4, "damage": 150, "effect": "Damage arrives next year. Again."},
        ],
        "roastBullets": [
            "Your launch dates are more of a vibe than a commitment.",
            "Bought a social network to win an argument with it.",
            "Treats rocket explosions as a sprint retro.",
            "Ships features by replying 'done' to a tweet.",
        ],
        "bangerQuote": "You don't miss deadlines, you just deploy them to a future roadmap on Mars.",
        "naturalRival": "The SEC",
        "reaction": "Will rename the dream role to X and ship it by Friday.",
        "imageUrl": "/cards/elon-card.png",
    },
    {
        "id": "mark-zuckerberg",
        "name": "Mark Zuckerberg",
        "title": "Founder & CEO",
        "company": "Meta",
        "score": 92,
        "archetypeName": "The Metaverse Missionary",
        "archetypeEmoji": "🥽",
        "archetypeDescription": "Bet the company name on legs that arrived a year late",
        "element": "shipping",
        "flavor": "Spotted surfing with a flag while hydrating at normal human intervals.",
        "stage": "Legendary",
        "weakness": "Legs",
        "moves": [
            {"name": "Move Fast", "energyCost": 1, "damage": 65, "effect": "Breaks things. Fixes none of them."},
            {"name": "Copy Stories", "energyCost": 2, "damage": 80, "effect": "Clones the opponent's best move."},
            {"name": "Year of Efficiency", "energyCost": 4, "damage": 135, "effect": "Deletes a layer of the org chart."},
        ],
        "roastBullets": [
            "Renamed the whole company for a product nobody logs into.",
            "Turned competitor research into a feature roadmap.",
            "Made hoodies business casual and legs a headline feature.",
            "Your efficiency plan had more reorgs than launches.",
        ],
        "bangerQuote": "You rebranded a social network as a spaceship and still can't get anyone to visit.",
        "naturalRival": "The App Store review team",
        "reaction": "Overqualified. Would acquire the dream role instead.",
        "imageUrl": "/cards/mark-card.png",
    },
    {
        "id": "sam-altman",
        "name": "Sam Altman",
        "title": "CEO",
        "company": "OpenAI",
        "score": 93,
        "archetypeName": "The Scaling Prophet",
        "archetypeEmoji": "🔮",
        "archetypeDescription": "Announces the future in lowercase and ships it on a Monday",
        "element": "vision",
        "flavor": "Communicates exclusively in understated lowercase tweets.",
        "stage": "Mythical",
        "weakness": "Boards",
        "moves": [
            {"name": "Surprise Launch", "energyCost": 2, "damage": 95, "effect": "Ships on a holiday. Nobody sleeps."},
            {"name": "Compute Ask", "energyCost": 3, "damage": 120, "effect": "Requests seven trillion dollars."},
            {"name": "Weekend Return", "energyCost": 4, "damage": 150, "effect": "Comes back stronger by Tuesday."},
        ],
        "roastBullets": [
            "Got fired and rehired faster than most teams close a ticket.",
            "Treats capital expenditure like a lowercase tweet.",
            "Pitched world-changing technology with a straight face and a hoodie.",
            "Turned 'we'll figure out revenue later' into a strategy.",
        ],
        "bangerQuote": "You survived a board coup over a weekend and called it a learning moment.",
        "naturalRival": "Its own safety team",
        "reaction": "Outgrew the dream role before finishing the sentence.",
        "imageUrl": "/cards/sam-card.png",
    },
    {
        "id": "paul-graham",
        "name": "Paul Graham",
        "title": "Co-founder",
        "company": "Y Combinator",
        "score": 95,
        "archetypeName": "The Essay Oracle",
        "archetypeEmoji": "📜",
        "archetypeDescription": "Writes one essay and an entire generation quits its job",
        "element": "strategy",
        "flavor": "Native to Cambridge, migrated to England, still tweets in essays.",
        "stage": "Legendary",
        "weakness": "Brevity",
        "moves": [
            {"name": "Do Things", "energyCost": 1, "damage": 60, "effect": "Tells you to do unscalable things."},
            {"name": "Make Something", "energyCost": 2, "damage": 85, "effect": "Demands people want it. Rude."},
            {"name": "Demo Day", "energyCost": 4, "damage": 140, "effect": "Converts 200 founders into unicorns."},
        ],
        "roastBullets": [
            "Turned a Lisp hobby into the startup industrial complex.",
            "Your essays have more citations in pitch decks than in schools.",
            "Convinced thousands of people that ramen is a business model.",
            "Invented the startup advice genre, then retired from it.",
        ],
        "bangerQuote": "You wrote 'do things that don't scale' and then scaled it into a global accelerator.",
        "naturalRival": "MBA programs",
        "reaction": "Already taught everyone in that role how to get it.",
        "imageUrl": "/cards/paul-card.png",
    },
    {
        "id": "marc-andreessen",
        "name": "Marc Andreessen",
        "title": "Co-founder & General Partner",
        "company": "Andreessen Horowitz",
        "score": 89,
        "archetypeName": "The Software Eater",
        "archetypeEmoji": "🥚",
        "archetypeDescription": "Announced software ate the world, then invested in dessert",
        "element": "vision",
        "flavor": "Produces manifestos at roughly the rate others produce emails.",
        "stage": "Legendary",
        "weakness": "Nuance",
        "moves": [
            {"name": "Time To Build", "energyCost": 2, "damage": 75, "effect": "Writes an essay about building."},
            {"name": "Mega Fund", "energyCost": 3, "damage": 110, "effect": "Raises billions to back the attack."},
            {"name": "Browser Wars", "energyCost": 4, "damage": 130, "effect": "Invented the battlefield you're on."},
        ],
        "roastBullets": [
            "Built the first popular browser, then decided everything else should be tabs.",
            "Your manifestos have more words than most term sheets.",
            "Blocked half of Twitter and still wins the argument.",
            "Turned a venture firm into a media company with a fund attached.",
        ],
        "bangerQuote": "You said it's time to build and then wrote another thousand-word post about it.",
        "naturalRival": "Regulators and the word 'no'",
        "reaction": "Would rather fund ten people with this dream role.",
        "imageUrl": "/cards/marc-card.png",
    },
    {
        "id": "stewart-butterfield",
        "name": "Stewart Butterfield",
        "title": "Co-founder",
        "company": "Slack, Flickr",
        "score": 87,
        "archetypeName": "The Pivot Master",
        "archetypeEmoji": "🎮",
        "archetypeDescription": "Failed at games twice and accidentally built two unicorns",
        "element": "chaos",
        "flavor": "Its failed projects evolve into billion-dollar companies.",
        "stage": "Elite",
        "weakness": "Games",
        "moves": [
            {"name": "Glorious Pivot", "energyCost": 2, "damage": 90, "effect": "Turns a flop into a unicorn."},
            {"name": "At Channel", "energyCost": 1, "damage": 55, "effect": "Notifies 4,000 people at once."},
            {"name": "Huddle Up", "energyCost": 3, "damage": 100, "effect": "Replaces email. Adds 300 channels."},
        ],
        "roastBullets": [
            "Two failed games, two unicorns. The games were the real product all along.",
            "You made every workplace feel like a group chat that never ends.",
            "Sold a photo site and a chat app, still no hit game.",
            "Invented the notification that ruins every vacation.",
        ],
        "bangerQuote": "You failed at games so well that the side projects became billion-dollar exits.",
        "naturalRival": "Microsoft Teams",
        "reaction": "Would pivot away from the dream role and IPO instead.",
        "imageUrl": "/cards/stewart-card.png",
    },
)


@lru_cache(maxsize=1)
def load_default_corpus() -> FamousCardCorpus:
    """Built-in legend table, constructed once per process."""
    return FamousCardCorpus(FamousCard(**entry) for entry in FAMOUS_CARD_DATA)
