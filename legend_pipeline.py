"""
Resolution pipeline for legend roast requests.

corpus -> cache -> text synthesis -> image synthesis -> persistence, run
strictly in sequence for each request.
"""

import logging
from typing import Callable, Optional

import config
from card_cache import (
    CACHE_TTL_SECONDS,
    CardCache,
    InMemoryCardCache,
    SqliteCardCache,
    cache_key,
    get_cached_card,
    put_cached_card,
)
from card_schema import LegendRequest, ResolveOutcome, RoastCard
from card_storage import CardStore, InMemoryCardStore, SqliteCardStore
from famous_cards import FamousCardCorpus, famous_card_to_result, load_default_corpus
from image_generator import generate_card_image
from roast_generator import generate_roast

logger = logging.getLogger(__name__)


class LegendPipeline:
    """Resolves a LegendRequest into a card plus a new shareable record."""

    def __init__(
        self,
        corpus: FamousCardCorpus,
        cache: CardCache,
        store: CardStore,
        client=None,
        roast_fn: Callable[..., RoastCard] = generate_roast,
        image_fn: Callable[..., Optional[str]] = generate_card_image,
        cache_ttl: int = CACHE_TTL_SECONDS,
    ):
        self.corpus = corpus
        self.cache = cache
        self.store = store
        self.client = client
        self._roast_fn = roast_fn
        self._image_fn = image_fn
        self._cache_ttl = cache_ttl

    def resolve(self, request: LegendRequest) -> ResolveOutcome:
        """
        Resolve one request.

        Raises:
            RoastGenerationError: Text synthesis failed; nothing was cached or stored
            CardStorageError: The shareable record could not be written
        """
        key = cache_key(request.name)

        if request.forceRegenerate:
            logger.info("[PIPELINE] Force regenerate for %r, skipping corpus and cache", request.name)
        else:
            famous = self.corpus.find(request.name)
            if famous is not None:
                logger.info("[PIPELINE] Corpus hit for %r -> %s", request.name, famous.id)
                return self._finish("corpus", False, famous_card_to_result(famous), request.dreamRole)

            cached = get_cached_card(self.cache, key)
            if cached is not None:
                logger.info("[PIPELINE] Cache hit for %s", key)
                return self._finish("cache", True, cached, request.dreamRole)

        card = self._roast_fn(
            request.name,
            request.dreamRole,
            request.wikipediaExtract,
            client=self.client,
        )
        image = self._image_fn(
            request.name,
            card.archetype,
            request.imageUrl,
            client=self.client,
        )
        card = card.with_image(image)

        # Written even on force regenerate so later normal lookups see the new card
        put_cached_card(self.cache, key, card, self._cache_ttl)
        return self._finish("synthesized", False, card, request.dreamRole)

    def _finish(self, origin: str, cached: bool, card: RoastCard, dream_role: str) -> ResolveOutcome:
        card_id = self.store.store_card(card, dream_role)
        logger.info("[PIPELINE] Resolved origin=%s cached=%s card=%s", origin, cached, card_id)
        return ResolveOutcome(origin=origin, cached=cached, card=card, cardId=card_id)


def build_default_pipeline() -> LegendPipeline:
    """SQLite-backed cache and store when CARD_DB_PATH is set, in-memory otherwise."""
    if config.CARD_DB_PATH:
        logger.info("[PIPELINE] Using SQLite storage at %s", config.CARD_DB_PATH)
        cache = SqliteCardCache(config.CARD_DB_PATH)
        store = SqliteCardStore(config.CARD_DB_PATH)
    else:
        logger.info("[PIPELINE] CARD_DB_PATH not set, using in-memory storage")
        cache = InMemoryCardCache()
        store = InMemoryCardStore()
    return LegendPipeline(load_default_corpus(), cache, store)
