import json
import os

# Cosmetic stream pauses off for the whole test session; set before config is imported.
os.environ["STREAM_PACING"] = "0"

import pytest
from fastapi.testclient import TestClient

from deck_assembler import assemble
from llm import get_text_model
from main import app


SOLAR_DECK = {
    "title": "Solar Energy",
    "description": "How sunlight becomes electricity",
    "slides": [
        {"title": "Introduction", "content": ["Why solar matters", "Growth of **solar** adoption", "Scope of this talk"], "layout": "title", "order": 3},
        {"title": "How Photovoltaics Work", "content": ["Photons excite electrons", "Silicon cells form a junction", "Inverters convert DC to AC"], "layout": "content"},
        {"title": "Costs", "content": "- Panel prices fell sharply\n- Installation dominates cost\n* Incentives vary by region", "layout": "two-column"},
        {"title": "Storage", "content": ["Batteries smooth supply", "Grid-scale projects grow", "Home systems pair with panels"]},
        {"title": "Challenges", "content": ["Intermittency", "Land use", "Recycling of panels"], "layout": "diagram"},
        {"title": "Conclusion", "content": ["Solar is now mainstream", "Storage is the next frontier", "Policy still matters"]},
    ],
}


class FakeTextModel:
    """Stands in for GeminiTextModel: canned streamed chunks and one-shot completions."""

    def __init__(self, chunks=None, completion="", error=None):
        self.chunks = chunks or []
        self.completion = completion
        self.error = error
        self.prompts = []

    async def stream_text(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        for chunk in self.chunks:
            yield chunk

    async def complete(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.completion


def chunked(text, size=40):
    return [text[i:i + size] for i in range(0, len(text), size)]


@pytest.fixture
def solar_deck_json():
    return json.dumps(SOLAR_DECK)


@pytest.fixture
def solar_presentation():
    return assemble(json.loads(json.dumps(SOLAR_DECK)), "Solar energy")


@pytest.fixture
def fake_model():
    return FakeTextModel()


@pytest.fixture
def api_client(fake_model):
    app.dependency_overrides[get_text_model] = lambda: fake_model
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def sse_payloads(body):
    return [line[len("data: "):] for line in body.split("\n") if line.startswith("data: ")]
