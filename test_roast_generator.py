"""Roast text generation: prompt, JSON extraction, defaults and clamping"""

import json
import logging

import pytest

import config
from conftest import FakeClient, text_response
from card_schema import DREAM_ROLES, get_schema_example
from roast_generator import (
    CELEBRITY_ROAST_PROMPT,
    DEFAULT_GAPS,
    DEFAULT_QUOTE,
    DEFAULT_ROASTS,
    EXTRACT_MAX_CHARS,
    RoastGenerationError,
    build_roast_card,
    build_roast_prompt,
    extract_json_object,
    generate_roast,
)


class TestExtractJsonObject:
    def test_plain_object(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_prose_and_code_fences(self):
        text = 'Here you go!\n```json\n{"a": {"b": [1, 2]}}\n```\nEnjoy.'
        assert extract_json_object(text) == {"a": {"b": [1, 2]}}

    def test_trailing_commas(self):
        assert extract_json_object('{"a": [1, 2,], "b": 3,}') == {"a": [1, 2], "b": 3}

    def test_skips_braces_that_are_not_json(self):
        assert extract_json_object('Use {curly} braces. {"a": 1}') == {"a": 1}

    @pytest.mark.parametrize("text", [None, "", "   ", "no json here", "[1, 2, 3]", '{"a": '])
    def test_no_object_raises(self, text):
        with pytest.raises(RoastGenerationError):
            extract_json_object(text)


class TestBuildRoastCard:
    def test_full_response_passes_through(self):
        data = get_schema_example()
        card = build_roast_card(data, "Alex Example")
        assert card.model_dump() == {**data, "archetypeImage": None}

    def test_empty_object_gets_every_default(self):
        card = build_roast_card({}, "Ada Lovelace")
        assert card.userName == "Ada"
        assert card.roastBullets == DEFAULT_ROASTS
        assert card.archetype.element == "vision"
        assert card.archetype.weakness == "Anonymity"
        assert card.careerScore == 75
        assert card.capabilities.model_dump() == {"productSense": 70, "execution": 70, "leadership": 70}
        assert card.gaps == DEFAULT_GAPS
        assert len(card.moves) == 3
        assert [phase.month for phase in card.roadmap] == [1, 2, 3, 4]
        assert len(card.podcastEpisodes) == 1
        assert card.bangerQuote == DEFAULT_QUOTE
        assert card.archetypeImage is None

    def test_non_object_is_treated_as_empty(self):
        assert build_roast_card(["not", "a", "dict"], "Ada").careerScore == 75

    def test_numbers_are_clamped_and_logged(self, caplog):
        data = get_schema_example()
        data["careerScore"] = 120
        data["capabilities"]["leadership"] = -5
        data["moves"][0]["damage"] = 10
        data["moves"][1]["energyCost"] = 9

        with caplog.at_level(logging.WARNING, logger="roast_generator"):
            card = build_roast_card(data, "Alex")

        assert card.careerScore == 99
        assert card.capabilities.leadership == 0
        assert card.moves[0].damage == 40
        assert card.moves[1].energyCost == 4
        assert "Clamped careerScore from 120 to 99" in caplog.text

    def test_numeric_strings_are_accepted(self):
        data = get_schema_example()
        data["careerScore"] = "88"
        data["moves"][2]["damage"] = 99.6
        card = build_roast_card(data, "Alex")
        assert card.careerScore == 88
        assert card.moves[2].damage == 100

    def test_wrong_types_fall_back(self):
        data = get_schema_example()
        data["careerScore"] = True
        data["bangerQuote"] = 42
        data["archetype"] = "not an object"
        card = build_roast_card(data, "Alex")
        assert card.careerScore == 75
        assert card.bangerQuote == DEFAULT_QUOTE
        assert card.archetype.name == "The Unknown"

    @pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan"), 1e400, "Infinity", "NaN", "-inf"])
    def test_non_finite_numbers_fall_back(self, value):
        data = get_schema_example()
        data["careerScore"] = value
        data["capabilities"]["execution"] = value
        data["moves"][0]["damage"] = value
        card = build_roast_card(data, "Alex")
        assert card.careerScore == 75
        assert card.capabilities.execution == 70
        assert card.moves[0].damage == 50

    def test_non_finite_json_literals_fall_back(self):
        data = json.loads('{"careerScore": NaN, "moves": [{"name": "Boom", "damage": Infinity}]}')
        card = build_roast_card(data, "Alex")
        assert card.careerScore == 75
        assert card.moves[0].name == "Boom"
        assert card.moves[0].damage == 50

    def test_episodes_are_capped_at_three(self):
        data = get_schema_example()
        data["podcastEpisodes"] = [{"title": f"Episode {i}"} for i in range(5)]
        card = build_roast_card(data, "Alex")
        assert [ep.title for ep in card.podcastEpisodes] == ["Episode 0", "Episode 1", "Episode 2"]

    def test_arrays_are_padded_and_cut(self):
        data = get_schema_example()
        data["roastBullets"] = [f"roast {i}" for i in range(6)]
        data["gaps"] = ["only gap", "", 7]
        data["moves"] = data["moves"][:1]
        data["roadmap"] = data["roadmap"] + data["roadmap"]
        data["roadmap"][0]["actions"] = ["one", "two", "three"]
        data["roadmap"][1]["actions"] = []

        card = build_roast_card(data, "Alex")

        assert card.roastBullets == ["roast 0", "roast 1", "roast 2", "roast 3"]
        assert card.gaps == ["only gap", DEFAULT_GAPS[1], DEFAULT_GAPS[2]]
        assert len(card.moves) == 3
        assert card.moves[0].name == "Per My Last"
        assert len(card.roadmap) == 4
        assert card.roadmap[0].actions == ["one", "two"]
        assert len(card.roadmap[1].actions) == 2

    def test_archetype_fields_are_normalized(self):
        data = get_schema_example()
        data["archetype"]["element"] = "SHIPPING"
        data["archetype"]["weakness"] = "saying no to anyone"
        data["archetype"]["emoji"] = "rocket"
        card = build_roast_card(data, "Alex")
        assert card.archetype.element == "shipping"
        assert card.archetype.weakness == "saying no"
        assert card.archetype.emoji == "❓"

    def test_unknown_element_defaults_to_vision(self):
        data = get_schema_example()
        data["archetype"]["element"] = "fire"
        assert build_roast_card(data, "Alex").archetype.element == "vision"

    def test_episodes_without_title_are_dropped(self):
        data = get_schema_example()
        data["podcastEpisodes"] = [{"guest": "Nobody"}, {"title": "Real one"}]
        card = build_roast_card(data, "Alex")
        assert [ep.title for ep in card.podcastEpisodes] == ["Real one"]
        assert card.podcastEpisodes[0].guest == "Various guests"


def test_prompt_mentions_subject_and_role():
    prompt = build_roast_prompt("Ada Lovelace", "l7-faang", None)
    assert '"Ada Lovelace"' in prompt
    assert DREAM_ROLES["l7-faang"]["label"] in prompt
    assert "background" not in prompt


def test_prompt_truncates_extract():
    prompt = build_roast_prompt("Ada", "founder", "y" * (EXTRACT_MAX_CHARS + 500))
    assert "y" * EXTRACT_MAX_CHARS in prompt
    assert "y" * (EXTRACT_MAX_CHARS + 1) not in prompt


def test_generate_roast_calls_text_model(roast_json):
    client = FakeClient(text_response(f"```json\n{roast_json}\n```"))

    card = generate_roast("Alex Example", "vp-product", "Some bio", client=client)

    assert card.archetype.name == "Dashboard Druid"
    assert len(client.calls) == 1
    call = client.calls[0]
    assert call["model"] == config.GEMINI_TEXT_MODEL
    assert call["contents"][0] == CELEBRITY_ROAST_PROMPT
    assert "Alex Example" in call["contents"][1]
    assert "Some bio" in call["contents"][1]


def test_generate_roast_without_json_raises():
    client = FakeClient(text_response("Sorry, I can't help with that."))
    with pytest.raises(RoastGenerationError):
        generate_roast("Alex", "founder", client=client)


def test_generate_roast_with_empty_text_raises():
    client = FakeClient(text_response(None))
    with pytest.raises(RoastGenerationError):
        generate_roast("Alex", "founder", client=client)


def test_generate_roast_wraps_model_errors():
    client = FakeClient(RuntimeError("model exploded"))
    with pytest.raises(RoastGenerationError, match="model exploded"):
        generate_roast("Alex", "founder", client=client)
    assert len(client.calls) == 1


def test_generate_roast_tolerates_partial_json():
    client = FakeClient(text_response(json.dumps({"userName": "Al", "careerScore": 12})))
    card = generate_roast("Alex", "founder", client=client)
    assert card.userName == "Al"
    assert card.careerScore == 12
    assert card.roastBullets == DEFAULT_ROASTS
