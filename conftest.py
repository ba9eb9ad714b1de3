"""Shared fixtures: fake Gemini client shaped like google-genai responses, in-memory stores."""

import io
import json
from types import SimpleNamespace

import pytest
from PIL import Image

from card_cache import InMemoryCardCache
from card_schema import RoastCard, get_schema_example
from card_storage import InMemoryCardStore
from famous_cards import load_default_corpus


def make_png(size=(4, 4), color="red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def text_response(text):
    return SimpleNamespace(
        text=text,
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=[SimpleNamespace(text=text, inline_data=None)]))],
    )


def image_response(data, mime_type="image/png"):
    part = SimpleNamespace(text=None, inline_data=SimpleNamespace(mime_type=mime_type, data=data))
    return SimpleNamespace(text=None, candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


class FakeModels:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if not self.responses:
            raise AssertionError("Unexpected generate_content call")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeClient:
    """Stand-in for genai.Client that replays queued responses in order."""

    def __init__(self, *responses):
        self.models = FakeModels(responses)

    @property
    def calls(self):
        return self.models.calls


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def example_card():
    return RoastCard(**get_schema_example())


@pytest.fixture
def roast_json():
    data = get_schema_example()
    return json.dumps(data)


@pytest.fixture
def corpus():
    return load_default_corpus()


@pytest.fixture
def cache():
    return InMemoryCardCache()


@pytest.fixture
def store():
    return InMemoryCardStore()
