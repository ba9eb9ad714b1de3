"""Schema validation for requests and cards"""

import pytest
from pydantic import ValidationError

from card_schema import (
    DREAM_ROLES,
    LegendRequest,
    RoastCard,
    get_schema_example,
    validate_roast_card,
)


def test_request_name_is_trimmed():
    request = LegendRequest(name="  Ada Lovelace  ", dreamRole="founder")
    assert request.name == "Ada Lovelace"
    assert request.forceRegenerate is False


@pytest.mark.parametrize("name", ["A", " B ", "   "])
def test_request_rejects_short_names(name):
    with pytest.raises(ValidationError, match="Invalid name provided"):
        LegendRequest(name=name, dreamRole="founder")


def test_request_rejects_unknown_dream_role():
    with pytest.raises(ValidationError, match="Invalid dream role"):
        LegendRequest(name="Ada Lovelace", dreamRole="astronaut")


def test_every_dream_role_is_accepted():
    for key in DREAM_ROLES:
        assert LegendRequest(name="Ada", dreamRole=key).dreamRole == key


def test_blank_optional_fields_become_none():
    request = LegendRequest(name="Ada", dreamRole="founder", imageUrl="  ", wikipediaExtract="")
    assert request.imageUrl is None
    assert request.wikipediaExtract is None


def test_schema_example_is_valid():
    card = validate_roast_card(get_schema_example())
    assert card.careerScore == 62
    assert card.archetypeImage is None


def test_validate_ignores_internal_fields():
    data = get_schema_example()
    data["_debug"] = "ignored"
    assert validate_roast_card(data).userName == "Alex"


@pytest.mark.parametrize("field, value", [
    ("roastBullets", ["only one"]),
    ("gaps", ["a", "b", "c", "d"]),
    ("careerScore", 100),
    ("careerScore", -1),
])
def test_invalid_cards_are_rejected(field, value):
    data = get_schema_example()
    data[field] = value
    with pytest.raises(ValueError):
        validate_roast_card(data)


def test_move_ranges_are_enforced():
    data = get_schema_example()
    data["moves"][0]["damage"] = 151
    with pytest.raises(ValueError):
        validate_roast_card(data)

    data = get_schema_example()
    data["moves"][1]["energyCost"] = 0
    with pytest.raises(ValueError):
        validate_roast_card(data)


def test_roadmap_phase_needs_two_actions():
    data = get_schema_example()
    data["roadmap"][0]["actions"] = ["just one"]
    with pytest.raises(ValueError):
        validate_roast_card(data)


def test_weakness_is_at_most_two_words():
    data = get_schema_example()
    data["archetype"]["weakness"] = "way too many words"
    with pytest.raises(ValueError):
        validate_roast_card(data)


def test_unknown_element_is_rejected():
    data = get_schema_example()
    data["archetype"]["element"] = "fire"
    with pytest.raises(ValueError):
        validate_roast_card(data)


def test_cards_are_immutable(example_card):
    with pytest.raises(ValidationError):
        example_card.careerScore = 10


def test_with_image_returns_a_copy(example_card):
    updated = example_card.with_image("data:image/png;base64,AAAA")
    assert updated.archetypeImage == "data:image/png;base64,AAAA"
    assert example_card.archetypeImage is None
    assert updated.roastBullets == example_card.roastBullets


def test_podcast_episodes_default_to_empty():
    data = get_schema_example()
    del data["podcastEpisodes"]
    assert RoastCard(**data).podcastEpisodes == []


def test_at_most_three_podcast_episodes():
    data = get_schema_example()
    data["podcastEpisodes"] = [
        {"title": f"Episode {i}", "guest": "Guest", "reason": "Reason"} for i in range(4)
    ]
    with pytest.raises(ValueError):
        validate_roast_card(data)
    data["podcastEpisodes"] = data["podcastEpisodes"][:3]
    assert len(validate_roast_card(data).podcastEpisodes) == 3
