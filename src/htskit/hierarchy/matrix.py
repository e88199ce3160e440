"""Summation matrix construction.

The summation matrix S has one row per series (aggregates and bottom) and
one column per bottom series; S[i, j] = 1 if bottom series j contributes to
series i. For any period, ``S @ y_bottom`` gives every series' value.

Row order is canonical: the grand total first, then levels by increasing
hierarchy depth and group-subset size, label order among rows of equal depth
and size, and the bottom series last in column order so that the bottom block is an identity.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, NamedTuple

import numpy as np
import pandas as pd

from htskit.core.errors import EInvalidSpecification
from htskit.hierarchy.levels import AggregateNode, NodeEnumeration

if TYPE_CHECKING:
    from htskit.contracts.spec import HierarchySpec
    from htskit.core.config import AggregationConfig


class SummationMatrix(NamedTuple):
    """Summation matrix with row (all series) and column (bottom) labels."""

    matrix: np.ndarray
    row_labels: list[str]
    col_labels: list[str]

    @property
    def shape(self) -> tuple[int, int]:
        return self.matrix.shape

    def to_s_df(self, id_col: str = "unique_id") -> pd.DataFrame:
        """Return the matrix as an ``S_df`` frame (id column + one column per bottom)."""
        s_df = pd.DataFrame(self.matrix, columns=self.col_labels)
        s_df.insert(0, id_col, self.row_labels)
        return s_df


def node_label(node: AggregateNode, spec: HierarchySpec, config: AggregationConfig) -> str:
    """Human-readable label, e.g. ``"RJ/Rio::Industry"`` or ``"Total::Agriculture"``."""
    if node.is_grand_total:
        return config.total_label
    parts = []
    if spec.hierarchy:
        path = config.path_separator.join(str(v) for v in node.path)
        parts.append(path or config.total_label)
    for column in spec.groups:
        parts.append(str(node.group_value(column, config.total_label)))
    return config.group_separator.join(parts)


def order_rows(
    enumeration: NodeEnumeration,
    spec: HierarchySpec,
    config: AggregationConfig,
) -> NodeEnumeration:
    """Put the enumerated nodes in canonical row order."""
    labels = [node_label(node, spec, config) for node in enumeration.nodes]
    bottom_rank = spec.depth + 1

    def row_key(i: int) -> tuple[int, int, int, str]:
        level = enumeration.nodes[i].level
        if level.is_bottom(spec):
            # single member: its column position
            return (bottom_rank, 0, int(enumeration.members[i][0]), "")
        return (level.depth, len(level.group_positions), 0, labels[i])

    order = sorted(range(len(enumeration)), key=row_key)
    return NodeEnumeration(
        nodes=tuple(enumeration.nodes[i] for i in order),
        members=tuple(enumeration.members[i] for i in order),
        levels=enumeration.levels,
    )


def build_summation_matrix(
    enumeration: NodeEnumeration,
    col_labels: list[str],
    spec: HierarchySpec,
    config: AggregationConfig,
) -> SummationMatrix:
    """Fill S from the node memberships found during enumeration.

    Args:
        enumeration: Nodes in row order with their member bottom positions
        col_labels: Labels of the bottom series in column order
        spec: Hierarchy/group structure
        config: Label configuration

    Returns:
        SummationMatrix of shape (n_series, n_bottom)

    Raises:
        EInvalidSpecification: If two series render to the same label
    """
    row_labels = [node_label(node, spec, config) for node in enumeration.nodes]
    _check_unique_labels(row_labels, enumeration.nodes)

    n_total = len(enumeration)
    n_bottom = len(col_labels)
    s_matrix = np.zeros((n_total, n_bottom), dtype=int)
    for row, members in enumerate(enumeration.members):
        s_matrix[row, members] = 1
    s_matrix.setflags(write=False)

    return SummationMatrix(matrix=s_matrix, row_labels=row_labels, col_labels=list(col_labels))


def _check_unique_labels(labels: list[str], nodes: tuple[AggregateNode, ...]) -> None:
    """Raise if two nodes render to the same label."""
    by_label: dict[str, list[AggregateNode]] = defaultdict(list)
    for label, node in zip(labels, nodes):
        by_label[label].append(node)
    clashes = {label: found for label, found in by_label.items() if len(found) > 1}
    if not clashes:
        return

    label, found = next(iter(clashes.items()))
    raise EInvalidSpecification(
        f"{len(clashes)} labels are shared by more than one series, first: {label!r}",
        context={
            "label": label,
            "series": [{"path": list(n.path), "groups": dict(n.groups)} for n in found],
        },
        fix_hint=(
            "A key value equals total_label or contains a separator; choose "
            "AggregationConfig total_label, path_separator and group_separator "
            "values that do not occur in the data"
        ),
    )
