"""Dependency graph over service descriptors.

This module provides the DependencyGraph class, an index-based directed
acyclic graph built with rustworkx. Edges point from a service to each of
its dependencies (A depends on B means edge A -> B).
"""

from collections.abc import Callable, Sequence  # noqa: TC003 - Used in runtime type annotations
from typing import Final, final

import rustworkx as rx

from stackup.exceptions import (
    CircularDependencyError,
    ConfigValidationError,
    ServiceNotFoundError,
    UnknownDependencyError,
)

from ._models import ServiceSpec

Waves = tuple[tuple[str, ...], ...]


@final
class DependencyGraph:
    """Validated dependency graph of a service table.

    Construction fails with a configuration error if names are duplicated,
    a dependency is unknown, or the dependencies form a cycle, so holding a
    DependencyGraph means the table can be launched.
    """

    __slots__: Final = ("_graph", "_indices", "_specs")

    def __init__(self, specs: Sequence[ServiceSpec]) -> None:
        """Build and validate the graph.

        Args:
            specs: Service descriptors in declaration order.

        Raises:
            ConfigValidationError: If two services share a name.
            UnknownDependencyError: If a dependency names no service.
            CircularDependencyError: If the dependencies form a cycle.
        """
        self._graph: rx.PyDiGraph[str, None] = rx.PyDiGraph(check_cycle=False)
        self._indices: dict[str, int] = {}
        self._specs: dict[str, ServiceSpec] = {}

        for spec in specs:
            if spec.name in self._indices:
                msg = f"Duplicate service name '{spec.name}'"
                raise ConfigValidationError(
                    msg, key="services.name", value=spec.name, expected="unique name"
                )
            self._indices[spec.name] = self._graph.add_node(spec.name)
            self._specs[spec.name] = spec

        for spec in specs:
            for dependency in dict.fromkeys(spec.depends_on):
                if dependency not in self._indices:
                    msg = (
                        f"Service '{spec.name}' depends on "
                        f"unknown service '{dependency}'"
                    )
                    raise UnknownDependencyError(
                        msg, service_name=spec.name, dependency=dependency
                    )
                if dependency == spec.name:
                    msg = f"Circular dependency detected: {spec.name} -> {spec.name}"
                    raise CircularDependencyError(msg, cycle=[spec.name, spec.name])
                _ = self._graph.add_edge(
                    self._indices[spec.name], self._indices[dependency], None
                )

        self._check_acyclic()

    def _check_acyclic(self) -> None:
        """Raise CircularDependencyError if the graph has a cycle."""
        if rx.is_directed_acyclic_graph(self._graph):
            return

        cycle_edges = rx.digraph_find_cycle(self._graph)
        cycle = [self._graph[source] for source, _ in cycle_edges]
        if cycle_edges:
            _, last_target = cycle_edges[-1]
            cycle.append(self._graph[last_target])
        msg = f"Circular dependency detected: {' -> '.join(cycle)}"
        raise CircularDependencyError(msg, cycle=cycle)

    @property
    def names(self) -> tuple[str, ...]:
        """Return service names in declaration order."""
        return tuple(self._specs)

    @property
    def specs(self) -> tuple[ServiceSpec, ...]:
        """Return service descriptors in declaration order."""
        return tuple(self._specs.values())

    def spec(self, name: str) -> ServiceSpec:
        """Return the descriptor of a service.

        Raises:
            ServiceNotFoundError: If no service has that name.
        """
        spec = self._specs.get(name)
        if spec is None:
            msg = f"Service '{name}' not found"
            raise ServiceNotFoundError(msg, service_name=name)
        return spec

    def _sorted(self, indices: list[int] | set[int]) -> tuple[str, ...]:
        # Node indices follow declaration order.
        return tuple(self._graph[idx] for idx in sorted(indices))

    def dependencies(self, name: str) -> tuple[str, ...]:
        """Return the direct dependencies of a service."""
        idx = self._indices[self.spec(name).name]
        return self._sorted(set(self._graph.successor_indices(idx)))

    def dependents(self, name: str) -> tuple[str, ...]:
        """Return the services that directly depend on a service."""
        idx = self._indices[self.spec(name).name]
        return self._sorted(set(self._graph.predecessor_indices(idx)))

    def has_dependents(self, name: str) -> bool:
        """Return True if at least one service depends on this one."""
        return self._graph.in_degree(self._indices[self.spec(name).name]) > 0

    def launch_waves(self) -> Waves:
        """Group services into launch waves.

        Wave 0 holds services without dependencies; wave k holds services
        whose dependencies all lie in earlier waves.
        """
        return self._layers(
            remaining={
                idx: self._graph.out_degree(idx) for idx in self._indices.values()
            },
            release=self._graph.predecessor_indices,
        )

    def shutdown_waves(self) -> Waves:
        """Group services into shutdown waves.

        Wave 0 holds services nothing depends on; a service only appears
        after every service depending on it.
        """
        return self._layers(
            remaining={
                idx: self._graph.in_degree(idx) for idx in self._indices.values()
            },
            release=self._graph.successor_indices,
        )

    def _layers(
        self,
        remaining: dict[int, int],
        release: Callable[[int], Sequence[int]],
    ) -> Waves:
        """Kahn layering over the graph.

        Args:
            remaining: Blocking edge count per node index.
            release: Callable returning the nodes unblocked by a finished node.
        """
        waves: list[tuple[str, ...]] = []
        current = [idx for idx, count in remaining.items() if count == 0]
        while current:
            waves.append(self._sorted(current))
            following: set[int] = set()
            for idx in current:
                for neighbor in release(idx):
                    remaining[neighbor] -= 1
                    if remaining[neighbor] == 0:
                        following.add(neighbor)
            current = sorted(following)
        return tuple(waves)

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._specs
