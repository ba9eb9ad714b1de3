"""End-to-end resolution: corpus, cache, synthesis, image and persistence"""

import pytest

import legend_pipeline
from conftest import FakeClient, image_response, text_response
from card_cache import cache_key, get_cached_card
from card_schema import LegendRequest, RoastCard, get_schema_example
from card_storage import CardStorageError, InMemoryCardStore
from famous_cards import famous_card_to_result
from legend_pipeline import LegendPipeline, build_default_pipeline
from roast_generator import RoastGenerationError

IMAGE = "data:image/png;base64,iVBORw0KGgo="


class Recorder:
    """Stand-in for the text and image generators that records every call."""

    def __init__(self, image=IMAGE, error=None):
        self.roast_calls = []
        self.image_calls = []
        self.image = image
        self.error = error

    def roast(self, name, dream_role, extract=None, client=None):
        self.roast_calls.append((name, dream_role, extract))
        if self.error:
            raise self.error
        return RoastCard(**get_schema_example())

    def draw(self, name, archetype, photo_url=None, client=None):
        self.image_calls.append((name, archetype.name, photo_url))
        return self.image


class BrokenCache:
    def get(self, key):
        raise ConnectionError("cache down")

    def set(self, key, value, ttl):
        raise ConnectionError("cache down")


class BrokenStore(InMemoryCardStore):
    def store_card(self, result, dream_role):
        raise CardStorageError("disk full")


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def pipeline(corpus, cache, store, recorder):
    return LegendPipeline(corpus, cache, store, roast_fn=recorder.roast, image_fn=recorder.draw)


def _request(name, dream_role="founder", **kwargs):
    return LegendRequest(name=name, dreamRole=dream_role, **kwargs)


def test_corpus_hit_skips_generation(pipeline, corpus, store, recorder):
    outcome = pipeline.resolve(_request("Brian Chesky"))

    assert outcome.origin == "corpus"
    assert outcome.cached is False
    assert outcome.card == famous_card_to_result(corpus.get_by_id("brian-chesky"))
    assert recorder.roast_calls == []
    assert recorder.image_calls == []
    assert store.get_card(outcome.cardId).dreamRole == "founder"


def test_fuzzy_corpus_hit(pipeline):
    assert pipeline.resolve(_request("brian")).origin == "corpus"


def test_surname_alone_is_synthesized(pipeline, recorder):
    outcome = pipeline.resolve(_request("Chesky"))
    assert outcome.origin == "synthesized"
    assert recorder.roast_calls == [("Chesky", "founder", None)]


def test_corpus_card_does_not_depend_on_dream_role(pipeline):
    first = pipeline.resolve(_request("Sam Altman", "founder"))
    second = pipeline.resolve(_request("Sam Altman", "ic-senior"))
    assert first.card == second.card


def test_synthesis_merges_image_and_caches(pipeline, cache, store, recorder):
    outcome = pipeline.resolve(_request(
        "Ada Lovelace",
        "l7-faang",
        imageUrl="https://example.org/ada.jpg",
        wikipediaExtract="Wrote the first program.",
    ))

    assert outcome.origin == "synthesized"
    assert outcome.cached is False
    assert outcome.card.archetypeImage == IMAGE
    assert recorder.roast_calls == [("Ada Lovelace", "l7-faang", "Wrote the first program.")]
    assert recorder.image_calls == [("Ada Lovelace", "Dashboard Druid", "https://example.org/ada.jpg")]
    assert get_cached_card(cache, cache_key("Ada Lovelace")) == outcome.card
    assert store.get_card(outcome.cardId).result == outcome.card


def test_second_request_is_served_from_cache(pipeline, store, recorder):
    first = pipeline.resolve(_request("Ada Lovelace"))
    second = pipeline.resolve(_request("  ada   LOVELACE "))

    assert second.origin == "cache"
    assert second.cached is True
    assert second.card == first.card
    assert second.cardId != first.cardId
    assert len(recorder.roast_calls) == 1
    assert store.total_cards() == 2


def test_force_regenerate_bypasses_corpus(pipeline, cache, recorder):
    outcome = pipeline.resolve(_request("Brian Chesky", forceRegenerate=True))

    assert outcome.origin == "synthesized"
    assert len(recorder.roast_calls) == 1
    assert get_cached_card(cache, cache_key("Brian Chesky")) == outcome.card


def test_force_regenerate_bypasses_cache_but_refreshes_it(pipeline, cache, recorder):
    pipeline.resolve(_request("Ada Lovelace"))
    recorder.image = None

    outcome = pipeline.resolve(_request("Ada Lovelace", forceRegenerate=True))

    assert outcome.origin == "synthesized"
    assert len(recorder.roast_calls) == 2
    assert get_cached_card(cache, cache_key("Ada Lovelace")).archetypeImage is None

    follow_up = pipeline.resolve(_request("Ada Lovelace"))
    assert follow_up.origin == "cache"
    assert follow_up.card.archetypeImage is None


def test_missing_image_is_not_an_error(corpus, cache, store):
    recorder = Recorder(image=None)
    pipeline = LegendPipeline(corpus, cache, store, roast_fn=recorder.roast, image_fn=recorder.draw)
    outcome = pipeline.resolve(_request("Ada Lovelace"))
    assert outcome.card.archetypeImage is None
    assert store.total_cards() == 1


def test_generation_failure_leaves_no_trace(corpus, cache, store):
    recorder = Recorder(error=RoastGenerationError("no json"))
    pipeline = LegendPipeline(corpus, cache, store, roast_fn=recorder.roast, image_fn=recorder.draw)

    with pytest.raises(RoastGenerationError):
        pipeline.resolve(_request("Ada Lovelace"))

    assert recorder.image_calls == []
    assert get_cached_card(cache, cache_key("Ada Lovelace")) is None
    assert store.total_cards() == 0


def test_broken_cache_falls_through_to_synthesis(corpus, store, recorder):
    pipeline = LegendPipeline(corpus, BrokenCache(), store, roast_fn=recorder.roast, image_fn=recorder.draw)

    first = pipeline.resolve(_request("Ada Lovelace"))
    second = pipeline.resolve(_request("Ada Lovelace"))

    assert first.origin == second.origin == "synthesized"
    assert store.total_cards() == 2


def test_storage_failure_propagates(corpus, cache, recorder):
    pipeline = LegendPipeline(corpus, cache, BrokenStore(), roast_fn=recorder.roast, image_fn=recorder.draw)
    with pytest.raises(CardStorageError):
        pipeline.resolve(_request("Ada Lovelace"))


def test_resolve_with_fake_gemini_client(corpus, cache, store, roast_json, png_bytes):
    client = FakeClient(text_response(roast_json), image_response(png_bytes))
    pipeline = LegendPipeline(corpus, cache, store, client=client)

    outcome = pipeline.resolve(_request("Grace Hopper", "vp-product"))

    assert outcome.origin == "synthesized"
    assert outcome.card.archetype.name == "Dashboard Druid"
    assert outcome.card.archetypeImage.startswith("data:image/png;base64,")
    assert len(client.calls) == 2


def test_default_pipeline_uses_memory_without_db(monkeypatch):
    monkeypatch.setattr(legend_pipeline.config, "CARD_DB_PATH", "")
    pipeline = build_default_pipeline()
    assert isinstance(pipeline.store, InMemoryCardStore)


def test_default_pipeline_uses_sqlite_with_db(monkeypatch, tmp_path, example_card):
    monkeypatch.setattr(legend_pipeline.config, "CARD_DB_PATH", str(tmp_path / "cards.db"))
    pipeline = build_default_pipeline()
    card_id = pipeline.store.store_card(example_card, "founder")
    assert build_default_pipeline().store.get_card(card_id).result == example_card
