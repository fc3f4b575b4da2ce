"""
Pipeline driver: declares a stage graph, validates it, compiles it to LangGraph.

Both generation pipelines are built through ``PipelineBuilder`` rather than
raw ``StateGraph`` calls so that every graph gets the same guarantees:

  - routers are pure ``(state) -> Literal[...]`` functions whose Literal
    members must equal the declared destinations
  - the graph is acyclic (checked with a topological sort at compile time)
  - a stage that raises is converted into an ``error`` patch; routers still
    see it, a plain edge out of the failed stage goes straight to END
  - patch keys the state does not declare are dropped with a warning, or
    raise ``GraphConfigurationError`` when ``strict_state_keys`` is on
"""

from __future__ import annotations

from collections import deque
from collections.abc import Awaitable, Callable
from typing import Literal, get_args, get_origin, get_type_hints

from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, START, StateGraph

from pitchdeck.core.config import get_settings
from pitchdeck.core.exceptions import GraphConfigurationError
from pitchdeck.core.logging import get_logger

logger = get_logger(__name__)

StageFn = Callable[[dict, RunnableConfig], Awaitable[dict]]
RouterFn = Callable[[dict], str]


class PipelineBuilder:
    """Collects stages and edges, then compiles them into a runnable graph."""

    def __init__(self, state_schema: type, name: str, *, strict_keys: bool | None = None) -> None:
        self.name = name
        self._schema = state_schema
        self._fields = frozenset(get_type_hints(state_schema, include_extras=True))
        self._stages: dict[str, StageFn] = {}
        self._edges: dict[str, str] = {}
        self._routers: dict[str, tuple[RouterFn, tuple[str, ...]]] = {}
        self._entry: str | None = None
        self._strict_keys = get_settings().strict_state_keys if strict_keys is None else strict_keys

    # ── Declaration ─────────────────────────────────────────
    def add_stage(self, name: str, fn: StageFn) -> PipelineBuilder:
        if name in self._stages or name in (START, END):
            raise GraphConfigurationError(f"{self.name}: duplicate or reserved stage name '{name}'")
        self._stages[name] = fn
        return self

    def set_entry(self, name: str) -> PipelineBuilder:
        self._entry = name
        return self

    def add_edge(self, source: str, target: str) -> PipelineBuilder:
        self._claim_outgoing(source)
        self._edges[source] = target
        return self

    def add_router(
        self, source: str, router: RouterFn, destinations: tuple[str, ...]
    ) -> PipelineBuilder:
        self._claim_outgoing(source)
        self._routers[source] = (router, tuple(destinations))
        return self

    def _claim_outgoing(self, source: str) -> None:
        if source in self._edges or source in self._routers:
            raise GraphConfigurationError(
                f"{self.name}: stage '{source}' already has an outgoing edge"
            )

    # ── Validation ──────────────────────────────────────────
    def successors(self, stage: str) -> tuple[str, ...]:
        if stage in self._edges:
            return (self._edges[stage],)
        if stage in self._routers:
            return self._routers[stage][1]
        return ()

    def validate(self) -> None:
        if self._entry is None or self._entry not in self._stages:
            raise GraphConfigurationError(f"{self.name}: entry stage is missing or unknown")

        for stage in self._stages:
            targets = self.successors(stage)
            if not targets:
                raise GraphConfigurationError(f"{self.name}: stage '{stage}' has no outgoing edge")
            for target in targets:
                if target != END and target not in self._stages:
                    raise GraphConfigurationError(
                        f"{self.name}: edge {stage} -> {target} points at an unknown stage"
                    )

        for source in (*self._edges, *self._routers):
            if source not in self._stages:
                raise GraphConfigurationError(f"{self.name}: edge from unknown stage '{source}'")

        for source, (router, destinations) in self._routers.items():
            _check_router_signature(self.name, source, router, destinations)

        order = self.topological_order()
        unreachable = set(self._stages) - _reachable(self._entry, self.successors)
        if unreachable:
            raise GraphConfigurationError(
                f"{self.name}: unreachable stages {sorted(unreachable)}"
            )
        logger.debug("pipeline_validated", pipeline=self.name, order=order)

    def topological_order(self) -> list[str]:
        """Kahn's algorithm over all stages; raises if any cycle exists."""
        indegree = {stage: 0 for stage in self._stages}
        for stage in self._stages:
            for target in self.successors(stage):
                if target in indegree:
                    indegree[target] += 1

        queue = deque(stage for stage, degree in indegree.items() if degree == 0)
        order: list[str] = []
        while queue:
            stage = queue.popleft()
            order.append(stage)
            for target in self.successors(stage):
                if target in indegree:
                    indegree[target] -= 1
                    if indegree[target] == 0:
                        queue.append(target)

        if len(order) != len(self._stages):
            cyclic = sorted(set(self._stages) - set(order))
            raise GraphConfigurationError(f"{self.name}: cycle detected among {cyclic}")
        return order

    # ── Compilation ─────────────────────────────────────────
    def compile(self, checkpointer=None):
        """
        Validate and compile into a LangGraph runnable.

        Args:
            checkpointer: optional LangGraph checkpointer; runs are stateless
                          without one.
        """
        self.validate()
        workflow = StateGraph(self._schema)

        for name, fn in self._stages.items():
            workflow.add_node(name, _guard(self.name, name, fn, self._fields, self._strict_keys))

        workflow.add_edge(START, self._entry)

        for source, target in self._edges.items():
            path_map = [END] if target == END else [target, END]
            workflow.add_conditional_edges(source, _plain_edge(source, target), path_map)

        for source, (router, destinations) in self._routers.items():
            workflow.add_conditional_edges(
                source, _checked_router(self.name, source, router, destinations), list(destinations)
            )

        app = workflow.compile(checkpointer=checkpointer)
        logger.info("pipeline_graph_compiled", pipeline=self.name, node_count=len(self._stages))
        return app


# ── Helpers ─────────────────────────────────────────────────
def _reachable(entry: str, successors: Callable[[str], tuple[str, ...]]) -> set[str]:
    seen: set[str] = set()
    stack = [entry]
    while stack:
        stage = stack.pop()
        if stage in seen or stage == END:
            continue
        seen.add(stage)
        stack.extend(successors(stage))
    return seen


def _check_router_signature(
    pipeline: str, source: str, router: RouterFn, destinations: tuple[str, ...]
) -> None:
    """A router's return annotation must be a Literal naming exactly its destinations."""
    try:
        returns = get_type_hints(router).get("return")
    except NameError as e:
        raise GraphConfigurationError(f"{pipeline}: router for '{source}' has unresolvable hints") from e

    if get_origin(returns) is not Literal:
        raise GraphConfigurationError(
            f"{pipeline}: router for '{source}' must be annotated to return Literal[...]"
        )
    declared = set(get_args(returns))
    if declared != set(destinations):
        raise GraphConfigurationError(
            f"{pipeline}: router for '{source}' returns {sorted(declared)} "
            f"but destinations are {sorted(destinations)}"
        )


def _guard(pipeline: str, stage: str, fn: StageFn, fields: frozenset[str], strict_keys: bool) -> StageFn:
    """Wrap a stage so an exception becomes an error patch instead of aborting the run."""

    async def guarded(state: dict, config: RunnableConfig) -> dict:
        try:
            patch = await fn(state, config)
        except Exception as e:
            logger.error("stage_raised", pipeline=pipeline, stage=stage, error=str(e))
            return {"error": f"{stage} failed: {e}", "failed_stage": stage}

        patch = dict(patch or {})
        unknown = set(patch) - fields
        if unknown and strict_keys:
            raise GraphConfigurationError(
                f"{pipeline}: stage '{stage}' patched undeclared state keys {sorted(unknown)}"
            )
        if unknown:
            logger.warning("unknown_state_keys_dropped", pipeline=pipeline, stage=stage, keys=sorted(unknown))
            patch = {key: value for key, value in patch.items() if key in fields}
        return patch

    guarded.__name__ = stage
    return guarded


def _plain_edge(source: str, target: str) -> Callable[[dict], str]:
    def route(state: dict) -> str:
        if state.get("failed_stage") == source:
            return END
        return target

    return route


def _checked_router(
    pipeline: str, source: str, router: RouterFn, destinations: tuple[str, ...]
) -> Callable[[dict], str]:
    def route(state: dict) -> str:
        choice = router(state)
        if choice not in destinations:
            raise GraphConfigurationError(
                f"{pipeline}: router for '{source}' returned undeclared destination '{choice}'"
            )
        return choice

    return route
