"""Topological scheduler: turns a dependency graph into an execution plan."""

from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass
from typing import Iterable

from stackdeploy.errors import CyclicDependencyError
from stackdeploy.graph import DependencyGraph, build_graph
from stackdeploy.models import ResourceSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionPlan:
    """Dependency-respecting order in which resources are applied."""

    graph: DependencyGraph
    resources: tuple[ResourceSpec, ...]

    @property
    def order(self) -> list[str]:
        return [spec.id for spec in self.resources]

    def waves(self) -> list[list[str]]:
        """Group plan entries by dependency depth.

        Everything in wave N depends only on resources in earlier waves, so
        a wave is a set of resources that may be applied side by side.
        """
        depth: dict[str, int] = {}
        for spec in self.resources:
            depth[spec.id] = 1 + max((depth[d] for d in spec.depends_on), default=-1)
        waves: list[list[str]] = [[] for _ in range(max(depth.values(), default=-1) + 1)]
        for spec in self.resources:
            waves[depth[spec.id]].append(spec.id)
        return waves

    def __iter__(self):
        return iter(self.resources)

    def __len__(self) -> int:
        return len(self.resources)


def create_plan(graph: DependencyGraph) -> ExecutionPlan:
    """Kahn's algorithm; ties are broken by declaration order."""
    remaining = {rid: len(graph.dependencies(rid)) for rid in graph.nodes}
    ready = [(graph.index(rid), rid) for rid, count in remaining.items() if count == 0]
    heapq.heapify(ready)

    ordered: list[ResourceSpec] = []
    while ready:
        _, rid = heapq.heappop(ready)
        ordered.append(graph.spec(rid))
        del remaining[rid]
        for dependent in graph.dependents(rid):
            remaining[dependent] -= 1
            if remaining[dependent] == 0:
                heapq.heappush(ready, (graph.index(dependent), dependent))

    if remaining:
        # build_graph rejects cycles already; only a hand-built graph gets here
        cycle = graph.find_cycle(among=remaining) or sorted(remaining, key=graph.index)
        raise CyclicDependencyError(cycle)

    plan = ExecutionPlan(graph=graph, resources=tuple(ordered))
    logger.info(f"Execution plan: {' -> '.join(plan.order)}")
    return plan


def plan_resources(specs: Iterable[ResourceSpec]) -> ExecutionPlan:
    """Build the graph and plan it in one step."""
    return create_plan(build_graph(specs))
