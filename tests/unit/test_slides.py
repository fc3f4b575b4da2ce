"""Unit tests for the slide pipeline: fan-out, review, revision, titles and aggregation."""

from __future__ import annotations

import asyncio
import json

import pytest

from pitchdeck.agents.slides.graph import run_slide_pipeline
from pitchdeck.agents.slides.nodes.aggregator import aggregator_node, error_handler_node
from pitchdeck.agents.slides.nodes.content_updater import content_updater_node
from pitchdeck.agents.slides.nodes.generator import build_context, parallel_slide_generator_node
from pitchdeck.agents.slides.nodes.initializer import initializer_node
from pitchdeck.agents.slides.nodes.reviewer import needs_revision, normalise_review, reviewer_node
from pitchdeck.agents.slides.nodes.title_enhancer import apply_titles, title_enhancer_node
from pitchdeck.core.exceptions import SlideGenerationError

from tests.conftest import ScriptedLLM, deck_responder, slide_json


def _config(collaborators) -> dict:
    return {"configurable": {"collaborators": collaborators}}


def _prompts_starting(llm: ScriptedLLM, prefix: str) -> list[dict]:
    return [call for call in llm.calls if call["messages"][0].content.startswith(prefix)]


def _generated_state(slide_request, make_collaborators) -> dict:
    """State right after a fully successful fan-out."""
    llm = ScriptedLLM(deck_responder())
    state = {"input": slide_request}
    state.update(asyncio.run(initializer_node(state, {})))
    patch = asyncio.run(parallel_slide_generator_node(state, _config(make_collaborators(llm))))
    state["processing_metadata"] = {**state["processing_metadata"], **patch.pop("processing_metadata")}
    state.update(patch)
    return state


# ── Initializer tests ───────────────────────────────────────
class TestInitializer:
    def test_seeds_progress_and_metadata(self, slide_request):
        patch = asyncio.run(initializer_node({"input": slide_request}, {}))

        assert patch["slide_progress"] == {f"slide-{n}": "pending" for n in range(1, 6)}
        assert patch["processing_metadata"]["total_slides"] == 5
        assert patch["processing_metadata"]["completed_slides"] == 0
        assert patch["context_data"] == slide_request["pitch_context"]

    def test_empty_outlines_rejected(self, slide_request):
        patch = asyncio.run(initializer_node({"input": {**slide_request, "slide_outlines": []}}, {}))
        assert patch == {"error": "Initialization error: no slide outlines provided for generation"}

    def test_missing_context_rejected(self, slide_request):
        request = {k: v for k, v in slide_request.items() if k != "pitch_context"}
        patch = asyncio.run(initializer_node({"input": request}, {}))
        assert "no pitch context" in patch["error"]


# ── Fan-out tests ───────────────────────────────────────────
class TestParallelGeneration:
    def test_every_outline_accounted_for(self, slide_request, make_collaborators):
        llm = ScriptedLLM(deck_responder(fail_slides=frozenset({3})))
        state = {"input": slide_request}
        state.update(asyncio.run(initializer_node(state, {})))
        patch = asyncio.run(parallel_slide_generator_node(state, _config(make_collaborators(llm))))

        assert len(_prompts_starting(llm, "You write the content of one slide")) == 5
        assert [s["id"] for s in patch["generated_slides"]] == ["slide-1", "slide-2", "slide-4", "slide-5"]
        assert patch["slide_progress"]["slide-3"] == "failed"
        assert sum(1 for v in patch["slide_progress"].values() if v == "completed") == 4
        assert patch["processing_metadata"]["completed_slides"] == 4
        assert patch["processing_metadata"]["failed_slides"] == 1
        assert patch["error"].startswith("Some slides failed: Slide 3:")

    def test_missing_blocks_counts_as_failure(self, slide_request, make_collaborators):
        def respond(messages):
            return json.dumps({"title": "No blocks here"})

        state = {"input": slide_request}
        state.update(asyncio.run(initializer_node(state, {})))
        patch = asyncio.run(parallel_slide_generator_node(state, _config(make_collaborators(ScriptedLLM(respond)))))

        assert patch["generated_slides"] == []
        assert set(patch["slide_progress"].values()) == {"failed"}

    def test_slide_shape(self, slide_request, make_collaborators):
        state = _generated_state(slide_request, make_collaborators)
        first = state["generated_slides"][0]

        assert first["type"] == "title"
        assert first["content"]["title"] == "Generated slide 1"
        assert first["content"]["blocks"][1] == {"type": "bullet", "content": "Point for slide 1", "level": 1}
        assert first["metadata"]["outline"]["number"] == 1
        assert first["metadata"]["context_used"] == ["Client Details", "Pitch Context"]

    def test_skips_after_error(self):
        assert asyncio.run(parallel_slide_generator_node({"error": "Initialization error: x"}, {})) == {}

    def test_build_context_sources(self):
        text, sources = build_context(
            {"client_details": {"a": 1}, "competitor_details": {"c": {}}, "additional_context": {"key_metrics": "ROE"}}
        )
        assert sources == ["Client Details", "Competitor Analysis", "Pitch Context"]
        assert "Key Metrics: ROE" in text


# ── Reviewer tests ──────────────────────────────────────────
class TestReviewer:
    def test_garbage_review_defaults_to_seven(self, slide_request, make_collaborators):
        state = _generated_state(slide_request, make_collaborators)
        llm = ScriptedLLM(deck_responder(review="I'm sorry, I can't produce JSON today."))
        patch = asyncio.run(reviewer_node(state, _config(make_collaborators(llm))))

        assert patch["review_results"]["overall_score"] == 7
        assert patch["review_results"]["issues"] == []
        assert patch["needs_revision"] is False

    def test_high_issue_requests_revision(self, slide_request, make_collaborators):
        state = _generated_state(slide_request, make_collaborators)
        review = json.dumps(
            {
                "issues": [{"type": "repetitive_content", "severity": "HIGH", "affectedSlides": [2],
                            "description": "Repeats slide 1", "recommendation": "Cut it"}],
                "overallScore": 8,
                "summary": "One repeat",
            }
        )
        llm = ScriptedLLM(deck_responder(review=review))
        patch = asyncio.run(reviewer_node(state, _config(make_collaborators(llm))))

        assert patch["needs_revision"] is True
        assert patch["review_results"]["issues"][0]["affected_slides"] == [2]

    def test_low_score_requests_revision(self, slide_request, make_collaborators):
        state = _generated_state(slide_request, make_collaborators)
        llm = ScriptedLLM(deck_responder(review='{"issues": [], "overallScore": 5}'))
        assert asyncio.run(reviewer_node(state, _config(make_collaborators(llm))))["needs_revision"] is True

    @pytest.mark.parametrize(
        ("raw", "score", "revise"),
        [
            ("5", 5, True),
            (" 8.5 ", 8.5, False),
            (True, 7, False),
            (False, 7, False),
            ("high", 7, False),
            (None, 7, False),
            (float("nan"), 7, False),
            (4, 4, True),
        ],
    )
    def test_score_coercion(self, raw, score, revise):
        review = normalise_review({"overallScore": raw, "issues": []})
        assert review["overall_score"] == score
        assert needs_revision(review) is revise

    def test_uses_review_model(self, slide_request, make_collaborators):
        state = _generated_state(slide_request, make_collaborators)
        llm = ScriptedLLM(deck_responder())
        asyncio.run(reviewer_node(state, _config(make_collaborators(llm))))
        assert llm.calls[0]["model_name"] == "gemini-2.5-flash"


# ── Content updater tests ───────────────────────────────────
class TestContentUpdater:
    def _review(self) -> dict:
        return {
            "issues": [{"type": "narrative_gap", "severity": "HIGH", "affected_slides": [2],
                        "description": "Abrupt", "recommendation": "Bridge from slide 1"}],
            "overall_score": 6,
            "summary": "",
        }

    def test_revises_only_flagged_slides(self, slide_request, make_collaborators):
        state = _generated_state(slide_request, make_collaborators)
        state["review_results"] = self._review()
        revision = json.dumps({"title": "Bridged", "blocks": [{"type": "text", "content": "Smoother"}]})
        llm = ScriptedLLM(deck_responder(revision=revision))
        patch = asyncio.run(content_updater_node(state, _config(make_collaborators(llm))))

        updated = patch["generated_slides"]
        assert updated[1]["content"]["blocks"] == [{"type": "text", "content": "Smoother", "level": 1}]
        assert updated[1]["metadata"]["revised"] is True
        assert updated[1]["metadata"]["revision_reason"] == "narrative_gap"
        assert updated[1]["metadata"]["outline"] == state["generated_slides"][1]["metadata"]["outline"]
        for before, after in zip(state["generated_slides"][:1] + state["generated_slides"][2:],
                                 updated[:1] + updated[2:]):
            assert after is before

        prompt = llm.calls[0]["messages"][1].content
        assert "Bridge from slide 1" in prompt
        assert "Slide 1: Outline title 1" in prompt

    def test_bad_revision_keeps_original(self, slide_request, make_collaborators):
        state = _generated_state(slide_request, make_collaborators)
        state["review_results"] = self._review()
        llm = ScriptedLLM(deck_responder(revision="not json at all"))
        patch = asyncio.run(content_updater_node(state, _config(make_collaborators(llm))))
        assert patch["generated_slides"][1] is state["generated_slides"][1]


# ── Title enhancer tests ────────────────────────────────────
class TestTitleEnhancer:
    def test_applies_changed_titles_only(self, slide_request, make_collaborators):
        state = _generated_state(slide_request, make_collaborators)
        titles = json.dumps({"enhancedTitles": {"1": "Acme's Treasury Partner", "2": "Generated slide 2"}})
        llm = ScriptedLLM(deck_responder(titles=titles))
        patch = asyncio.run(title_enhancer_node(state, _config(make_collaborators(llm))))

        assert patch["enhanced_titles"] == {"1": "Acme's Treasury Partner"}
        first = patch["generated_slides"][0]
        assert first["content"]["title"] == "Acme's Treasury Partner"
        assert first["metadata"]["enhanced_title"] == "Acme's Treasury Partner"
        assert first["metadata"]["outline"]["title"] == "Outline title 1"
        assert "enhanced_title" not in patch["generated_slides"][1]["metadata"]

    def test_unparseable_titles_change_nothing(self, slide_request, make_collaborators):
        state = _generated_state(slide_request, make_collaborators)
        llm = ScriptedLLM(deck_responder(titles="Here are some great titles!"))
        assert asyncio.run(title_enhancer_node(state, _config(make_collaborators(llm)))) == {}

    def test_apply_titles_ignores_unknown_numbers(self, slide_request, make_collaborators):
        slides = _generated_state(slide_request, make_collaborators)["generated_slides"]
        result, applied = apply_titles(slides, {"99": "Nowhere"})
        assert applied == {}
        assert result == slides


# ── Aggregation tests ───────────────────────────────────────
class TestAggregation:
    def test_orders_by_outline_number(self, slide_request, make_collaborators):
        state = _generated_state(slide_request, make_collaborators)
        state["generated_slides"] = list(reversed(state["generated_slides"]))
        patch = asyncio.run(aggregator_node(state, _config(make_collaborators(ScriptedLLM(deck_responder())))))

        numbers = [s["metadata"]["outline"]["number"] for s in patch["output"]["slides"]]
        assert numbers == [1, 2, 3, 4, 5]

    def test_empty_slides_is_an_error(self, make_collaborators):
        patch = asyncio.run(aggregator_node({"generated_slides": []}, _config(make_collaborators(None))))
        assert patch == {"error": "Aggregation error: no slides were generated successfully"}

    def test_error_handler_keeps_successes(self, slide_request, make_collaborators):
        state = _generated_state(slide_request, make_collaborators)
        state["generated_slides"] = state["generated_slides"][:2]
        state["error"] = "Some slides failed: Slide 3: x"
        patch = asyncio.run(error_handler_node(state, _config(make_collaborators(None))))

        meta = patch["output"]["generation_metadata"]
        assert (meta["total_slides"], meta["successful_slides"], meta["failed_slides"]) == (5, 2, 3)
        assert patch["output"]["summary"].endswith("3 slides failed to generate.")


# ── End-to-end tests ────────────────────────────────────────
class TestRunSlidePipeline:
    def test_happy_path(self, slide_request, make_collaborators, store):
        llm = ScriptedLLM(deck_responder())
        result = asyncio.run(run_slide_pipeline(slide_request, _config(make_collaborators(llm))))

        assert [s["id"] for s in result["slides"]] == [f"slide-{n}" for n in range(1, 6)]
        meta = result["generation_metadata"]
        assert (meta["total_slides"], meta["successful_slides"], meta["failed_slides"]) == (5, 5, 0)
        assert meta["context_sources"] == ["Client Details", "Pitch Context"]
        assert meta["processing_time"] >= 0
        assert result["summary"].startswith("Generated 5 of 5 slides successfully for Acme.")
        assert "failed" not in result["summary"]
        assert _prompts_starting(llm, "You edit pitch deck slides") == []

        pitch = asyncio.run(store.get("pitches", "pitch-1"))
        assert pitch["status"] == "slides-generated"
        assert len(pitch["generated_slides"]) == 5

    def test_partial_failure_returns_survivors(self, slide_request, make_collaborators):
        llm = ScriptedLLM(deck_responder(fail_slides=frozenset({3})))
        result = asyncio.run(run_slide_pipeline(slide_request, _config(make_collaborators(llm))))

        assert [s["metadata"]["outline"]["number"] for s in result["slides"]] == [1, 2, 4, 5]
        assert result["generation_metadata"]["failed_slides"] == 1
        assert "1 slides failed to generate" in result["summary"]
        assert _prompts_starting(llm, "You review pitch decks") == []

    def test_total_failure_raises(self, slide_request, make_collaborators):
        llm = ScriptedLLM(deck_responder(fail_slides=frozenset(range(1, 6))))
        with pytest.raises(SlideGenerationError, match="Some slides failed"):
            asyncio.run(run_slide_pipeline(slide_request, _config(make_collaborators(llm))))

    def test_invalid_request_raises(self, slide_request, make_collaborators):
        llm = ScriptedLLM(deck_responder())
        with pytest.raises(SlideGenerationError, match="no slide outlines"):
            asyncio.run(run_slide_pipeline({**slide_request, "slide_outlines": []}, _config(make_collaborators(llm))))
        assert llm.calls == []

    def test_review_triggers_revision_then_titles(self, slide_request, make_collaborators):
        review = json.dumps(
            {
                "issues": [{"type": "repetitive_content", "severity": "HIGH", "affectedSlides": [4],
                            "description": "Same as slide 2", "recommendation": "Merge the points"}],
                "overallScore": 6,
            }
        )
        revision = json.dumps({"title": "Fresh angle", "blocks": [{"type": "bullet", "content": "New point"}]})
        titles = json.dumps({"enhancedTitles": {"5": "Next Steps Together"}})
        llm = ScriptedLLM(deck_responder(review=review, revision=revision, titles=titles))
        result = asyncio.run(run_slide_pipeline(slide_request, _config(make_collaborators(llm))))

        revised = [s for s in result["slides"] if s["metadata"].get("revised")]
        assert [s["id"] for s in revised] == ["slide-4"]
        assert revised[0]["metadata"]["revision_reason"] == "repetitive_content"
        assert result["slides"][4]["content"]["title"] == "Next Steps Together"
        assert len(_prompts_starting(llm, "You write slide titles")) == 1

    def test_unparseable_review_is_not_fatal(self, slide_request, make_collaborators):
        llm = ScriptedLLM(deck_responder(review="no json, sorry"))
        result = asyncio.run(run_slide_pipeline(slide_request, _config(make_collaborators(llm))))

        assert result["generation_metadata"]["successful_slides"] == 5
        assert _prompts_starting(llm, "You edit pitch deck slides") == []
        assert len(_prompts_starting(llm, "You write slide titles")) == 1

    def test_progress_reported_per_stage(self, slide_request, make_collaborators):
        messages: list[str] = []
        llm = ScriptedLLM(deck_responder())
        asyncio.run(run_slide_pipeline(slide_request, _config(make_collaborators(llm)), on_progress=messages.append))

        assert messages == [
            "Starting slide generation for Acme",
            "Initialized slide generation for 5 slides",
            "Generated 5 of 5 slides",
            "Reviewed slides for quality and consistency",
            "Polished slide titles",
            "Aggregated slide results",
            "Slide generation completed",
        ]

    def test_progress_on_partial_failure(self, slide_request, make_collaborators):
        messages: list[str] = []
        llm = ScriptedLLM(deck_responder(fail_slides=frozenset({3})))
        asyncio.run(run_slide_pipeline(slide_request, _config(make_collaborators(llm)), on_progress=messages.append))

        assert "Generated 4 of 5 slides" in messages
        assert "Collected the slides that generated successfully" in messages
        assert "Reviewed slides for quality and consistency" not in messages

    def test_broken_progress_callback_is_not_fatal(self, slide_request, make_collaborators, log_events):
        def explode(message: str) -> None:
            raise RuntimeError("listener gone")

        llm = ScriptedLLM(deck_responder())
        result = asyncio.run(run_slide_pipeline(slide_request, _config(make_collaborators(llm)), on_progress=explode))

        assert result["generation_metadata"]["successful_slides"] == 5
        assert any(e["event"] == "progress_callback_failed" for e in log_events)

    def test_events_carry_run_context(self, slide_request, make_collaborators, log_events):
        llm = ScriptedLLM(deck_responder())
        config = {"configurable": {"collaborators": make_collaborators(llm), "thread_id": "slides-thread"}}
        asyncio.run(run_slide_pipeline(slide_request, config))

        fan_in = [e for e in log_events if e["event"] == "slide_fan_in_complete"]
        assert fan_in
        assert fan_in[0]["pipeline"] == "slides"
        assert fan_in[0]["thread_id"] == "slides-thread"

    def test_slide_json_helper_is_valid(self):
        assert json.loads(slide_json(2))["title"] == "Generated slide 2"
