"""Bottom-level key extraction.

Scans the bottom-level rows once to find the distinct hierarchy-path and
group-value combinations, check strict nesting of the hierarchy columns,
index the periods and reject repeated (series, period) observations.
"""

from __future__ import annotations

import logging
from itertools import repeat
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NamedTuple

import numpy as np

from htskit.core.errors import EDuplicateObservation, EInconsistentNesting, ESpecification
from htskit.hierarchy.indexer import SeriesIndexer

if TYPE_CHECKING:
    from htskit.core.config import AggregationConfig
    from htskit.data.adapter import BottomTable

logger = logging.getLogger(__name__)


class BottomKey(NamedTuple):
    """Identity of one bottom-level series."""

    path: tuple[Any, ...]  # hierarchy values, top to bottom
    groups: tuple[Any, ...]  # group values, in spec order


@dataclass(frozen=True)
class KeyExtraction:
    """Result of the single scan over the bottom-level table.

    Attributes:
        index: Bottom keys in canonical column order
        key_codes: Per input row, the column position of its bottom key
        periods: Sorted distinct periods
        period_codes: Per input row, the position of its period
    """

    index: SeriesIndexer[BottomKey]
    key_codes: np.ndarray
    periods: np.ndarray
    period_codes: np.ndarray

    @property
    def bottom_keys(self) -> tuple[BottomKey, ...]:
        return tuple(self.index.keys)

    @property
    def n_bottom(self) -> int:
        return len(self.index)

    @property
    def n_periods(self) -> int:
        return len(self.periods)


def extract_keys(table: BottomTable, config: AggregationConfig) -> KeyExtraction:
    """Extract bottom keys and period index from the bottom-level table.

    Args:
        table: Typed bottom-level table
        config: Aggregation config (bottom ordering policy)

    Returns:
        KeyExtraction with keys in canonical order

    Raises:
        ESpecification: If the table has no rows
        EInconsistentNesting: If a hierarchy value has two parents
        EDuplicateObservation: If a (bottom key, period) pair repeats
    """
    if table.n_rows == 0:
        raise ESpecification(
            "No observations to build a hierarchy from",
            context={"columns": list(table.spec.columns)},
        )

    spec = table.spec
    depth = spec.depth
    hierarchy_values = [table.keys[c] for c in spec.hierarchy]
    group_values = [table.keys[c] for c in spec.groups]

    # child value -> parent value, one mapping per hierarchy level below the top
    parents: list[dict[Any, Any]] = [{} for _ in range(depth)]

    index: SeriesIndexer[BottomKey] = SeriesIndexer()
    key_codes = np.empty(table.n_rows, dtype=np.intp)
    empty: tuple[Any, ...] = ()

    paths = zip(*hierarchy_values) if hierarchy_values else repeat(empty)
    combos = zip(*group_values) if group_values else repeat(empty)

    for row, path, combo in zip(range(table.n_rows), paths, combos):
        key = BottomKey(path, combo)
        position = index.get(key)
        if position is None:
            _check_nesting(key.path, parents, spec.hierarchy)
            position = index.add(key)
        key_codes[row] = position

    if config.bottom_order == "sorted":
        index, key_codes = _sort_keys(index, key_codes)

    periods, period_codes = np.unique(table.time, return_inverse=True)
    period_codes = np.asarray(period_codes, dtype=np.intp).reshape(-1)

    _check_duplicates(index, key_codes, periods, period_codes, table.time_col)

    logger.debug(
        "Extracted %d bottom series over %d periods from %d rows",
        len(index),
        len(periods),
        table.n_rows,
    )
    return KeyExtraction(
        index=index,
        key_codes=key_codes,
        periods=periods,
        period_codes=period_codes,
    )


def _check_nesting(
    path: tuple[Any, ...],
    parents: list[dict[Any, Any]],
    hierarchy: tuple[str, ...],
) -> None:
    """Record the parent of each level of a new path, failing on conflict."""
    for level in range(1, len(path)):
        child, parent = path[level], path[level - 1]
        known = parents[level].setdefault(child, parent)
        if known != parent:
            raise EInconsistentNesting(
                f"{hierarchy[level]}={child!r} appears under "
                f"{hierarchy[level - 1]}={known!r} and {hierarchy[level - 1]}={parent!r}",
                context={
                    "column": hierarchy[level],
                    "value": child,
                    "parent_column": hierarchy[level - 1],
                    "parents": [known, parent],
                },
            )


def _sort_keys(
    index: SeriesIndexer[BottomKey],
    key_codes: np.ndarray,
) -> tuple[SeriesIndexer[BottomKey], np.ndarray]:
    """Reorder bottom keys ascending and remap the row codes."""
    order = sorted(range(len(index)), key=index.key_at)
    remap = np.empty(len(order), dtype=np.intp)
    remap[order] = np.arange(len(order), dtype=np.intp)
    sorted_index = SeriesIndexer(index.key_at(i) for i in order)
    return sorted_index, remap[key_codes]


def _check_duplicates(
    index: SeriesIndexer[BottomKey],
    key_codes: np.ndarray,
    periods: np.ndarray,
    period_codes: np.ndarray,
    time_col: str,
) -> None:
    cells = key_codes * len(periods) + period_codes
    unique_cells, counts = np.unique(cells, return_counts=True)
    repeated = unique_cells[counts > 1]
    if repeated.size == 0:
        return

    first = int(repeated[0])
    key = index.key_at(first // len(periods))
    period = periods[first % len(periods)]
    raise EDuplicateObservation(
        f"{repeated.size} bottom series/period pairs observed more than once, "
        f"first: {tuple(key.path) + tuple(key.groups)} at {time_col}={period}",
        context={
            "n_duplicates": int(repeated.size),
            "path": list(key.path),
            "groups": list(key.groups),
            "period": str(period),
        },
    )
