# Copyright 2026 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""Dependency graph and deterministic publish order for workspace packages.

Builds a directed graph from normalized package records, checks it for
dangling references and cycles, and computes a total publish order with
Kahn's algorithm.

Key Concepts (ELI5)::

    ┌─────────────────────────┬─────────────────────────────────────────────┐
    │ Concept                 │ ELI5 Explanation                            │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Dependency graph        │ A map of "who needs what". If package A    │
    │                         │ depends on B, draw an arrow A → B.         │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Arena + index           │ Records live in one tuple. Edges are pairs │
    │                         │ of positions into it, not references.      │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Topological sort        │ An order where every package comes after   │
    │                         │ all its dependencies.                      │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Tie-break               │ When several packages are ready, take the  │
    │                         │ alphabetically smallest. Same input, same  │
    │                         │ order, every run.                          │
    ├─────────────────────────┼─────────────────────────────────────────────┤
    │ Cycle report            │ Names a concrete loop (a → b → a) so the   │
    │                         │ user knows which edge to cut.              │
    └─────────────────────────┴─────────────────────────────────────────────┘

Edge direction::

    edges: (dependent, dependency) index pairs

    app ──→ core ──→ utils

    nodes = (app, core, utils)     index = {app: 0, core: 1, utils: 2}
    edges = ((0, 1), (1, 2))

From discovery to publish order::

    discover_workspace()        build_graph()            topo_sort()
    ┌──────────────────┐    ┌────────────────────┐    ┌────────────────┐
    │ Resolve members, │    │ Node table + edge  │    │ Kahn's algo,   │
    │ normalize        │───→│ list; duplicate &  │───→│ smallest ready │
    │ manifests        │    │ dangling checks    │    │ name first     │
    └──────────────────┘    └────────────────────┘    └────────────────┘
          │                        │                        │
    list[PackageRecord]     DependencyGraph            PublishPlan
"""

from __future__ import annotations

import hashlib
import heapq
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field

from cargo_workspace.errors import CargoWorkspaceError, E
from cargo_workspace.logging import get_logger
from cargo_workspace.manifest import PackageRecord

logger = get_logger(__name__)


@dataclass(frozen=True)
class DependencyGraph:
    """Workspace dependency graph stored as a node table plus edge list.

    Attributes:
        nodes: Package records, in input order.
        index: Package name to position in :attr:`nodes`.
        edges: ``(dependent, dependency)`` pairs of node positions,
            sorted and without duplicates.
    """

    nodes: tuple[PackageRecord, ...] = ()
    index: Mapping[str, int] = field(default_factory=dict)
    edges: tuple[tuple[int, int], ...] = ()

    @property
    def names(self) -> list[str]:
        """Return sorted list of all package names in the graph."""
        return sorted(self.index)

    def __len__(self) -> int:
        """Return the number of packages in the graph."""
        return len(self.nodes)

    def __contains__(self, name: object) -> bool:
        """Return True if a package with this name is in the graph."""
        return name in self.index

    def node(self, name: str) -> PackageRecord:
        """Return the record for ``name``."""
        return self.nodes[self.index[name]]

    def dependencies_of(self, name: str) -> list[str]:
        """Return sorted names of the workspace packages ``name`` depends on."""
        pos = self.index[name]
        return sorted(self.nodes[dep].name for src, dep in self.edges if src == pos)

    def dependents_of(self, name: str) -> list[str]:
        """Return sorted names of the workspace packages that depend on ``name``."""
        pos = self.index[name]
        return sorted(self.nodes[src].name for src, dep in self.edges if dep == pos)


@dataclass(frozen=True)
class PublishPlan:
    """Packages in publish order: every dependency precedes its dependents.

    Attributes:
        packages: Records in publish order, each exactly once.
    """

    packages: tuple[PackageRecord, ...] = ()

    @property
    def names(self) -> list[str]:
        """Package names in publish order."""
        return [p.name for p in self.packages]

    def __iter__(self) -> Iterator[PackageRecord]:
        """Iterate records in publish order."""
        return iter(self.packages)

    def __len__(self) -> int:
        """Return the number of packages in the plan."""
        return len(self.packages)

    def __contains__(self, name: object) -> bool:
        """Return True if a package with this name is in the plan."""
        return any(p.name == name for p in self.packages)

    def get(self, name: str) -> PackageRecord | None:
        """Return the record for ``name``, or ``None``."""
        for pkg in self.packages:
            if pkg.name == name:
                return pkg
        return None

    def fingerprint(self) -> str:
        """Return a SHA-256 digest of the ordered ``name@version`` list.

        Two plans have the same fingerprint only if they publish the same
        versions of the same packages in the same order.
        """
        digest = hashlib.sha256()
        for pkg in self.packages:
            digest.update(f'{pkg.name}@{pkg.version}\n'.encode())
        return digest.hexdigest()


def build_graph(records: Iterable[PackageRecord]) -> DependencyGraph:
    """Build a dependency graph from normalized package records.

    Args:
        records: Workspace package records.

    Returns:
        A :class:`DependencyGraph` over the records.

    Raises:
        CargoWorkspaceError: If two records share a name, or a record
            depends on a name that is not in the record set.
    """
    nodes = tuple(records)
    index: dict[str, int] = {}
    for pos, record in enumerate(nodes):
        if record.name in index:
            other = nodes[index[record.name]]
            raise CargoWorkspaceError(
                E.GRAPH_DUPLICATE_PACKAGE,
                f"Package name '{record.name}' is declared by both {other.path} and {record.path}.",
                hint='Package names must be unique within a workspace.',
            )
        index[record.name] = pos

    edges: set[tuple[int, int]] = set()
    for pos, record in enumerate(nodes):
        for dep in record.workspace_dependencies:
            if dep not in index:
                raise CargoWorkspaceError(
                    E.GRAPH_DANGLING_DEPENDENCY,
                    f"Package '{record.name}' depends on '{dep}', which is not a workspace member.",
                    hint=f"Add '{dep}' to [workspace].members or remove it from [workspace].exclude.",
                )
            edges.add((pos, index[dep]))

    graph = DependencyGraph(nodes=nodes, index=index, edges=tuple(sorted(edges)))
    logger.debug('graph_built', packages=len(nodes), edges=len(edges))
    return graph


def find_cycle(graph: DependencyGraph, among: Iterable[str] | None = None) -> list[str]:
    """Return one concrete dependency cycle, or an empty list.

    The result starts and ends with the same name, following edges from
    dependent to dependency (``['a', 'b', 'a']`` means a needs b needs a).

    Args:
        graph: The dependency graph.
        among: Restrict the search to these names. Every name in the
            restricted set must keep at least one dependency inside it
            for a cycle to exist (true for the nodes Kahn's algorithm
            could not emit). Defaults to all nodes.
    """
    remaining = set(graph.index) if among is None else set(among)
    deps: dict[str, list[str]] = {
        name: [d for d in graph.dependencies_of(name) if d in remaining] for name in remaining
    }
    # Peel off nodes that cannot be on a cycle (no remaining dependency).
    changed = True
    while changed:
        changed = False
        for name in sorted(remaining):
            if not deps[name]:
                remaining.discard(name)
                for other in remaining:
                    if name in deps[other]:
                        deps[other].remove(name)
                changed = True
    if not remaining:
        return []

    current = min(remaining)
    path: list[str] = []
    seen: dict[str, int] = {}
    while current not in seen:
        seen[current] = len(path)
        path.append(current)
        current = deps[current][0]
    return [*path[seen[current] :], current]


def topo_sort(graph: DependencyGraph) -> PublishPlan:
    """Compute the publish order with Kahn's algorithm.

    Among packages whose dependencies are all emitted, the one with the
    lexicographically smallest name goes next, so an unchanged graph
    always yields the same order.

    Args:
        graph: The dependency graph.

    Returns:
        A :class:`PublishPlan` containing every package exactly once.

    Raises:
        CargoWorkspaceError: If the graph contains a cycle. The message
            names one concrete cycle path.
    """
    in_degree = [0] * len(graph.nodes)
    dependents: list[list[int]] = [[] for _ in graph.nodes]
    for src, dep in graph.edges:
        in_degree[src] += 1
        dependents[dep].append(src)

    ready = [graph.nodes[pos].name for pos, degree in enumerate(in_degree) if degree == 0]
    heapq.heapify(ready)

    order: list[PackageRecord] = []
    while ready:
        name = heapq.heappop(ready)
        pos = graph.index[name]
        order.append(graph.nodes[pos])
        for dependent in dependents[pos]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                heapq.heappush(ready, graph.nodes[dependent].name)

    if len(order) != len(graph.nodes):
        emitted = {p.name for p in order}
        stuck = [name for name in graph.index if name not in emitted]
        cycle = find_cycle(graph, stuck)
        cycle_str = ' -> '.join(cycle)
        logger.error('cycle_detected', cycle=cycle, unresolved=sorted(stuck))
        raise CargoWorkspaceError(
            E.GRAPH_CYCLE_DETECTED,
            f'Circular dependency detected: {cycle_str}',
            hint=f'Break one of the edges in {cycle_str}. Cargo cannot publish packages that depend on each other.',
        )

    plan = PublishPlan(packages=tuple(order))
    logger.info('topo_sort_complete', packages=len(plan), order=plan.names)
    return plan


__all__ = [
    'DependencyGraph',
    'PublishPlan',
    'build_graph',
    'find_cycle',
    'topo_sort',
]
