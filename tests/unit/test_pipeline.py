"""Unit tests for the pipeline driver: graph validation, routing and the stage guard."""

from __future__ import annotations

import asyncio
from typing import Annotated, Literal, TypedDict

import pytest
from langgraph.graph import END

from pitchdeck.agents.outline.graph import build_outline_graph
from pitchdeck.agents.pipeline import PipelineBuilder
from pitchdeck.agents.reducers import keep_error, merge_dicts
from pitchdeck.agents.slides.graph import build_slide_graph, route_after_generation, route_after_review
from pitchdeck.core.config import get_settings
from pitchdeck.core.exceptions import GraphConfigurationError


class ToyState(TypedDict, total=False):
    input: dict
    trail: Annotated[dict, merge_dicts]
    error: Annotated[str | None, keep_error]
    failed_stage: str | None
    output: str | None


RUN_INPUT = {"input": {"run": 1}}


def _mark(name: str):
    async def stage(state: ToyState, config) -> dict:
        return {"trail": {name: True}}

    return stage


async def _explode(state: ToyState, config) -> dict:
    raise RuntimeError("kaboom")


def route_ok(state: ToyState) -> Literal["left", "right"]:
    return "right" if state.get("error") else "left"


def route_wrong_annotation(state: ToyState) -> Literal["left", "elsewhere"]:
    return "left"


def route_unannotated(state: ToyState):
    return "left"


def route_rogue(state: ToyState) -> Literal["left", "right"]:
    return "nowhere"  # type: ignore[return-value]


def _branching(router) -> PipelineBuilder:
    builder = PipelineBuilder(ToyState, name="toy")
    builder.add_stage("start", _mark("start"))
    builder.add_stage("left", _mark("left"))
    builder.add_stage("right", _mark("right"))
    builder.set_entry("start")
    builder.add_router("start", router, ("left", "right"))
    builder.add_edge("left", END)
    builder.add_edge("right", END)
    return builder


# ── Validation tests ────────────────────────────────────────
class TestValidation:
    def test_valid_graph_compiles(self):
        assert _branching(route_ok).compile() is not None

    def test_missing_entry_rejected(self):
        builder = PipelineBuilder(ToyState, name="toy")
        builder.add_stage("only", _mark("only"))
        builder.add_edge("only", END)
        with pytest.raises(GraphConfigurationError, match="entry"):
            builder.compile()

    def test_cycle_rejected(self):
        builder = PipelineBuilder(ToyState, name="toy")
        builder.add_stage("a", _mark("a"))
        builder.add_stage("b", _mark("b"))
        builder.set_entry("a")
        builder.add_edge("a", "b")
        builder.add_edge("b", "a")
        with pytest.raises(GraphConfigurationError, match="cycle"):
            builder.compile()

    def test_unknown_target_rejected(self):
        builder = PipelineBuilder(ToyState, name="toy")
        builder.add_stage("a", _mark("a"))
        builder.set_entry("a")
        builder.add_edge("a", "ghost")
        with pytest.raises(GraphConfigurationError, match="unknown stage"):
            builder.compile()

    def test_stage_without_outgoing_edge_rejected(self):
        builder = PipelineBuilder(ToyState, name="toy")
        builder.add_stage("a", _mark("a"))
        builder.add_stage("b", _mark("b"))
        builder.set_entry("a")
        builder.add_edge("a", END)
        with pytest.raises(GraphConfigurationError, match="no outgoing edge"):
            builder.compile()

    def test_second_outgoing_edge_rejected(self):
        builder = PipelineBuilder(ToyState, name="toy")
        builder.add_stage("a", _mark("a"))
        builder.add_edge("a", END)
        with pytest.raises(GraphConfigurationError, match="already has"):
            builder.add_edge("a", END)

    def test_router_literal_must_match_destinations(self):
        with pytest.raises(GraphConfigurationError, match="destinations"):
            _branching(route_wrong_annotation).compile()

    def test_router_requires_literal_annotation(self):
        with pytest.raises(GraphConfigurationError, match="Literal"):
            _branching(route_unannotated).compile()

    def test_topological_order(self):
        builder = _branching(route_ok)
        order = builder.topological_order()
        assert order[0] == "start"
        assert set(order) == {"start", "left", "right"}

    def test_shipped_pipelines_validate(self):
        assert build_outline_graph() is not None
        assert build_slide_graph() is not None


# ── Routing tests ───────────────────────────────────────────
class TestRouting:
    def test_router_sees_state(self):
        result = asyncio.run(_branching(route_ok).compile().ainvoke(RUN_INPUT))
        assert result["trail"] == {"start": True, "left": True}

    def test_undeclared_destination_raises(self):
        app = _branching(route_rogue).compile()
        with pytest.raises(GraphConfigurationError, match="undeclared"):
            asyncio.run(app.ainvoke(RUN_INPUT))

    def test_slide_routers(self):
        assert route_after_generation({"error": "Some slides failed: Slide 3: x"}) == "handle_error"
        assert route_after_generation({}) == "review"
        assert route_after_review({"needs_revision": True}) == "update_content"
        assert route_after_review({"needs_revision": False}) == "enhance_titles"


# ── Guard tests ─────────────────────────────────────────────
class TestGuard:
    def test_raising_stage_ends_run_with_error(self):
        builder = PipelineBuilder(ToyState, name="toy")
        builder.add_stage("boom", _explode)
        builder.add_stage("after", _mark("after"))
        builder.set_entry("boom")
        builder.add_edge("boom", "after")
        builder.add_edge("after", END)

        result = asyncio.run(builder.compile().ainvoke(RUN_INPUT))
        assert result["error"] == "boom failed: kaboom"
        assert result["failed_stage"] == "boom"
        assert "after" not in (result.get("trail") or {})

    def test_router_can_route_a_raised_error(self):
        builder = PipelineBuilder(ToyState, name="toy")
        builder.add_stage("start", _explode)
        builder.add_stage("left", _mark("left"))
        builder.add_stage("right", _mark("right"))
        builder.set_entry("start")
        builder.add_router("start", route_ok, ("left", "right"))
        builder.add_edge("left", END)
        builder.add_edge("right", END)

        result = asyncio.run(builder.compile().ainvoke(RUN_INPUT))
        assert result["trail"] == {"right": True}

    def _sloppy_builder(self, strict_keys: bool) -> PipelineBuilder:
        async def sloppy(state, config) -> dict:
            return {"trail": {"sloppy": True}, "not_a_field": 1}

        builder = PipelineBuilder(ToyState, name="toy", strict_keys=strict_keys)
        builder.add_stage("sloppy", sloppy)
        builder.set_entry("sloppy")
        builder.add_edge("sloppy", END)
        return builder

    def test_unknown_keys_dropped(self):
        result = asyncio.run(self._sloppy_builder(strict_keys=False).compile().ainvoke(RUN_INPUT))
        assert result["trail"] == {"sloppy": True}
        assert "not_a_field" not in result

    def test_unknown_keys_raise_when_strict(self):
        graph = self._sloppy_builder(strict_keys=True).compile()
        with pytest.raises(GraphConfigurationError, match="not_a_field"):
            asyncio.run(graph.ainvoke(RUN_INPUT))

    def test_strict_mode_follows_settings(self):
        assert get_settings().strict_state_keys is True
        assert PipelineBuilder(ToyState, name="toy")._strict_keys is True

    def test_error_is_never_cleared(self):
        async def set_error(state, config) -> dict:
            return {"error": "first failure"}

        async def try_clear(state, config) -> dict:
            return {"error": None}

        builder = PipelineBuilder(ToyState, name="toy")
        builder.add_stage("fail", set_error)
        builder.add_stage("clear", try_clear)
        builder.set_entry("fail")
        builder.add_edge("fail", "clear")
        builder.add_edge("clear", END)

        result = asyncio.run(builder.compile().ainvoke(RUN_INPUT))
        assert result["error"] == "first failure"
