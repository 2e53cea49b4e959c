"""Dependency graph builder with cycle detection."""

from __future__ import annotations

import logging
from typing import Iterable

from stackdeploy.errors import CyclicDependencyError, UnknownDependencyError
from stackdeploy.models import ResourceSpec
from stackdeploy.resources import validate_resources

logger = logging.getLogger(__name__)

_WHITE, _GREY, _BLACK = 0, 1, 2


class DependencyGraph:
    """Read-only DAG of resources. Edges point from a resource to what it depends on."""

    def __init__(self, specs: list[ResourceSpec]):
        self._specs: dict[str, ResourceSpec] = {spec.id: spec for spec in specs}
        self._index: dict[str, int] = {spec.id: i for i, spec in enumerate(specs)}
        self._dependencies: dict[str, tuple[str, ...]] = {spec.id: spec.depends_on for spec in specs}
        dependents: dict[str, list[str]] = {spec.id: [] for spec in specs}
        for spec in specs:
            for dep_id in spec.depends_on:
                if dep_id in dependents:
                    dependents[dep_id].append(spec.id)
        self._dependents = {rid: tuple(ids) for rid, ids in dependents.items()}

    @property
    def nodes(self) -> list[str]:
        """Resource ids in declaration order."""
        return list(self._specs)

    def spec(self, resource_id: str) -> ResourceSpec:
        return self._specs[resource_id]

    def index(self, resource_id: str) -> int:
        return self._index[resource_id]

    def dependencies(self, resource_id: str) -> tuple[str, ...]:
        return self._dependencies[resource_id]

    def dependents(self, resource_id: str) -> tuple[str, ...]:
        return self._dependents[resource_id]

    def edges(self) -> list[tuple[str, str]]:
        """(resource, dependency) pairs in declaration order."""
        return [(rid, dep) for rid, deps in self._dependencies.items() for dep in deps]

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def find_cycle(self, among: Iterable[str] | None = None) -> list[str] | None:
        """Depth-first search with grey/black marking.

        Returns the first cycle found as a path whose last id repeats the
        first, or None when the (sub)graph is acyclic. The walk keeps its own
        stack so chain length is not bounded by the recursion limit.
        """
        allowed = set(self._specs) if among is None else set(among)
        candidates = [rid for rid in self._specs if rid in allowed]
        color = {rid: _WHITE for rid in candidates}

        for root in candidates:
            if color[root] != _WHITE:
                continue
            color[root] = _GREY
            path = [root]
            stack = [iter(self._dependencies[root])]
            while stack:
                for dep_id in stack[-1]:
                    if dep_id not in allowed:
                        continue
                    if color[dep_id] == _GREY:
                        return path[path.index(dep_id):] + [dep_id]
                    if color[dep_id] == _WHITE:
                        color[dep_id] = _GREY
                        path.append(dep_id)
                        stack.append(iter(self._dependencies[dep_id]))
                        break
                else:
                    # every dependency of path[-1] is finished
                    color[path.pop()] = _BLACK
                    stack.pop()
        return None


def build_graph(specs: Iterable[ResourceSpec]) -> DependencyGraph:
    """Validate declarations and assemble an acyclic dependency graph.

    Raises DuplicateResourceError, SelfDependencyError, UnknownDependencyError
    or CyclicDependencyError; nothing is deployed when any of them is raised.
    """
    validated = validate_resources(specs)
    known = {spec.id for spec in validated}
    for spec in validated:
        for dep_id in spec.depends_on:
            if dep_id not in known:
                raise UnknownDependencyError(spec.id, dep_id)

    graph = DependencyGraph(validated)
    cycle = graph.find_cycle()
    if cycle:
        raise CyclicDependencyError(cycle)

    logger.debug(f"Built dependency graph: {len(graph)} resources, {len(graph.edges())} edges")
    return graph
