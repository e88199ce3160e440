"""Enumeration of every aggregation node implied by a hierarchy spec.

A node is a hierarchy prefix (length 0 to depth, length 0 being the total
over the hierarchy) crossed with a subset of group columns fixed to observed
values. Only combinations supported by at least one bottom series become
nodes.

Enumeration visits each bottom key once per (prefix length, group subset):
the prefix -> members mapping is built once per prefix length and reused
for every group subset at that length.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import combinations
from typing import TYPE_CHECKING, Any

import numpy as np

if TYPE_CHECKING:
    from htskit.contracts.spec import HierarchySpec
    from htskit.hierarchy.keys import BottomKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Level:
    """One aggregation level: a hierarchy depth and a set of fixed groups.

    Attributes:
        depth: Number of hierarchy columns fixed (0 = hierarchy total)
        group_positions: Indices into ``spec.groups`` of the fixed groups
    """

    depth: int
    group_positions: tuple[int, ...] = ()

    def columns(self, spec: HierarchySpec) -> tuple[str, ...]:
        """Structure columns that are not aggregated away at this level."""
        return (
            *spec.hierarchy[: self.depth],
            *(spec.groups[i] for i in self.group_positions),
        )

    def is_bottom(self, spec: HierarchySpec) -> bool:
        return self.depth == spec.depth and len(self.group_positions) == spec.n_groups

    def is_total(self) -> bool:
        return self.depth == 0 and not self.group_positions

    def name(
        self,
        spec: HierarchySpec,
        total_label: str = "Total",
        path_separator: str = "/",
        group_separator: str = "::",
    ) -> str:
        """Readable level name, e.g. ``"State/City::Sector"``."""
        if self.is_total():
            return total_label
        parts = []
        if spec.hierarchy:
            parts.append(path_separator.join(spec.hierarchy[: self.depth]) or total_label)
        parts.extend(spec.groups[i] for i in self.group_positions)
        return group_separator.join(parts)


@dataclass(frozen=True)
class AggregateNode:
    """Identity of one series in the full hierarchy.

    Two nodes are equal when their hierarchy prefix and fixed group values
    are equal; ``level`` is derived from those and takes no part in
    identity.
    """

    path: tuple[Any, ...]
    groups: tuple[tuple[str, Any], ...] = ()
    level: Level = field(default=Level(0), compare=False)

    @property
    def depth(self) -> int:
        return len(self.path)

    @property
    def is_grand_total(self) -> bool:
        return not self.path and not self.groups

    def group_value(self, column: str, default: Any = None) -> Any:
        for name, value in self.groups:
            if name == column:
                return value
        return default

    def column_value(self, column: str, spec: HierarchySpec, total: Any = "Total") -> Any:
        """Value of a structure column for this node, ``total`` if aggregated."""
        if column in spec.hierarchy:
            position = spec.hierarchy.index(column)
            return self.path[position] if position < self.depth else total
        return self.group_value(column, total)


@dataclass(frozen=True)
class NodeEnumeration:
    """Nodes with the column positions of their member bottom series.

    ``members[i]`` is a sorted integer array of bottom-key positions
    summing to ``nodes[i]``.
    """

    nodes: tuple[AggregateNode, ...]
    members: tuple[np.ndarray, ...]
    levels: tuple[Level, ...]

    def __len__(self) -> int:
        return len(self.nodes)


def group_subsets(n_groups: int) -> list[tuple[int, ...]]:
    """All subsets of group positions, by size then lexicographically."""
    return [
        subset
        for size in range(n_groups + 1)
        for subset in combinations(range(n_groups), size)
    ]


def enumerate_nodes(
    spec: HierarchySpec,
    bottom_keys: tuple[BottomKey, ...] | list[BottomKey],
) -> NodeEnumeration:
    """Enumerate every non-empty aggregation node.

    Args:
        spec: Hierarchy/group structure
        bottom_keys: Distinct bottom keys in column order

    Returns:
        NodeEnumeration ordered by level (depth, then group subset), and by
        first member within a level
    """
    subsets = group_subsets(spec.n_groups)
    nodes: list[AggregateNode] = []
    members: list[list[int]] = []
    levels: list[Level] = []

    for depth in range(spec.depth + 1):
        by_prefix: dict[tuple[Any, ...], list[int]] = {}
        for position, key in enumerate(bottom_keys):
            by_prefix.setdefault(key.path[:depth], []).append(position)

        for subset in subsets:
            level = Level(depth, subset)
            names = tuple(spec.groups[i] for i in subset)

            buckets: dict[tuple[tuple[Any, ...], tuple[Any, ...]], list[int]] = {}
            for prefix, prefix_members in by_prefix.items():
                for position in prefix_members:
                    values = tuple(bottom_keys[position].groups[i] for i in subset)
                    buckets.setdefault((prefix, values), []).append(position)

            # Buckets are keyed by node identity within a level, and levels never
            # share identities (they differ in depth or in fixed group columns).
            n_before = len(nodes)
            for (prefix, values), bucket in buckets.items():
                nodes.append(AggregateNode(prefix, tuple(zip(names, values)), level))
                members.append(bucket)

            if len(nodes) > n_before:
                levels.append(level)
            logger.debug(
                "Level depth=%d groups=%s: %d nodes", depth, names, len(nodes) - n_before
            )

    return NodeEnumeration(
        nodes=tuple(nodes),
        members=tuple(np.unique(np.asarray(m, dtype=np.intp)) for m in members),
        levels=tuple(levels),
    )
