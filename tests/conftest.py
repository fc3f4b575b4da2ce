"""
Shared pytest fixtures for unit and integration tests.

Uses FakeListChatModel for deterministic LLM output and a scripted fake for
the slide fan-out, so no API keys are needed.
"""

from __future__ import annotations

import json
import os
import re
from collections.abc import Callable

# Must be set before pitchdeck settings are first read.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STRICT_STATE_KEYS", "true")

import pytest
import structlog
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import BaseMessage
from structlog.testing import LogCapture

from pitchdeck.agents.collaborators import Collaborators
from pitchdeck.agents.slides.state import SlideOutline, SlideRequest
from pitchdeck.core.exceptions import ExternalCallFailure
from pitchdeck.core.logging import add_correlation_id
from pitchdeck.services.document_store import InMemoryDocumentStore
from pitchdeck.services.llm_service import LLMService
from pitchdeck.services.settings_service import PitchSettingsService

SAMPLE_OUTLINE = """## Slide 1: Title & Introduction
**Key Takeaway:** Acme gains a partner, not a vendor.
**Key Points:** - Tailored treasury - Senior coverage

## Slide 2: Executive Summary

**Key Takeaway:** We cut Acme's payment costs.

**Key Points:**
- Lower fees
- Faster settlement"""

SAMPLE_SUMMARY = "A focused outline that positions us as Acme's long-term treasury partner."


class ScriptedLLM:
    """
    Async stand-in for LLMService.

    ``responder`` receives the messages of each call and returns the model's
    text, or raises to simulate a failed call. Every call is recorded.
    """

    def __init__(self, responder: Callable[[list[BaseMessage]], str]) -> None:
        self._responder = responder
        self.calls: list[dict] = []

    async def complete(self, messages, *, model_name, temperature=None, max_tokens=None) -> str:
        self.calls.append(
            {"messages": list(messages), "model_name": model_name, "temperature": temperature,
             "max_tokens": max_tokens}
        )
        return self._responder(list(messages))


def slide_number_in(messages: list[BaseMessage]) -> int:
    match = re.search(r"slide (\d+):", messages[-1].content)
    return int(match.group(1)) if match else 0


def slide_json(number: int) -> str:
    return json.dumps(
        {
            "title": f"Generated slide {number}",
            "subtitle": "",
            "body": f"Body of slide {number}",
            "blocks": [
                {"type": "heading", "content": f"Heading {number}", "level": 1},
                {"type": "bullet", "content": f"Point for slide {number}"},
            ],
        }
    )


def deck_responder(
    *,
    fail_slides: frozenset[int] = frozenset(),
    review: str | None = None,
    titles: str | None = None,
    revision: str | None = None,
) -> Callable[[list[BaseMessage]], str]:
    """Route each call by its system prompt and answer like a well-behaved model."""

    def respond(messages: list[BaseMessage]) -> str:
        system = messages[0].content
        if system.startswith("You write the content of one slide"):
            number = slide_number_in(messages)
            if number in fail_slides:
                raise ExternalCallFailure(f"model timed out for slide {number}")
            return f"```json\n{slide_json(number)}\n```"
        if system.startswith("You review pitch decks"):
            return review if review is not None else json.dumps(
                {"issues": [], "overallScore": 9, "summary": "Clean deck"}
            )
        if system.startswith("You edit pitch deck slides"):
            if revision is None:
                raise ExternalCallFailure("no revision scripted")
            return revision
        if system.startswith("You write slide titles"):
            return titles if titles is not None else "not json"
        raise AssertionError(f"unexpected prompt: {system[:60]}")

    return respond


@pytest.fixture
def log_events():
    """Captured structlog events, with bound run context and correlation id merged in."""
    capture = LogCapture()
    structlog.configure(processors=[structlog.contextvars.merge_contextvars, add_correlation_id, capture])
    yield capture.entries
    structlog.reset_defaults()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """Store seeded with one client, two competitors and an empty pitch."""
    return InMemoryDocumentStore(
        seed={
            "clients": {
                "client-1": {"name": "Acme", "industry": "Manufacturing", "size": "Large"},
            },
            "competitors": {
                "comp-1": {"name": "Big Bank", "industry": "Banking"},
                "comp-2": {"name": "Other Bank", "description": "Regional lender"},
            },
            "pitches": {
                "pitch-1": {"status": "draft"},
            },
        }
    )


@pytest.fixture
def make_collaborators(store: InMemoryDocumentStore):
    def _make(llm) -> Collaborators:
        return Collaborators(store=store, llm=llm, settings_service=PitchSettingsService(store))

    return _make


@pytest.fixture
def outline_llm() -> LLMService:
    """Real LLMService over a fake chat model: first the outline, then its summary."""
    fake = FakeListChatModel(responses=[SAMPLE_OUTLINE, SAMPLE_SUMMARY])
    return LLMService(chat_model_factory=lambda **_: fake, timeout_seconds=5)


@pytest.fixture
def outline_request() -> dict:
    return {
        "pitch_id": "pitch-1",
        "client_id": "client-1",
        "client_name": "Acme",
        "pitch_stage": "stage4",
        "competitors_selected": {"comp-1": True, "comp-2": False, "manual-Fintech Co": True},
        "client_sentiment": 55,
        "pitch_focus": "Treasury modernisation",
        "data_sources_selected": {"Annual Reports": True, "News": False},
        "uploaded_file_names": ["brief.pdf"],
    }


@pytest.fixture
def slide_outlines() -> list[SlideOutline]:
    return [
        SlideOutline(
            id=f"slide-{n}",
            number=n,
            title=f"Outline title {n}",
            slide_type="title" if n == 1 else "content",
            purpose=f"Purpose {n}",
            key_content=[f"Point {n}a", f"Point {n}b"],
            key_takeaway=f"Takeaway {n}",
        )
        for n in range(1, 6)
    ]


@pytest.fixture
def slide_request(slide_outlines: list[SlideOutline]) -> SlideRequest:
    return SlideRequest(
        pitch_id="pitch-1",
        client_name="Acme",
        pitch_stage="stage4",
        slide_outlines=slide_outlines,
        pitch_context={
            "client_details": {"name": "Acme"},
            "additional_context": {"pitch_focus": "Treasury modernisation"},
        },
    )
