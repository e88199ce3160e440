"""Hierarchical time series engine.

Builds the full aggregation structure once at construction:
convert input → extract bottom keys → enumerate nodes → order rows → build S.
Everything derived is read-only afterwards; a different spec or dataset
needs a new instance.

Aggregation is independent per period, so ``aggregate_all()`` splits the
periods into chunks that worker threads reduce into disjoint slices of one
pre-sized result array.
"""

from __future__ import annotations

import logging
import os
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from htskit.core.config import AggregationConfig
from htskit.core.errors import EIncompleteSeries
from htskit.data.adapter import from_dataframe, read_csv, to_dataframe
from htskit.hierarchy.indexer import SeriesIndexer
from htskit.hierarchy.keys import BottomKey, extract_keys
from htskit.hierarchy.levels import AggregateNode, Level, enumerate_nodes
from htskit.hierarchy.matrix import (
    SummationMatrix,
    build_summation_matrix,
    node_label,
    order_rows,
)

if TYPE_CHECKING:
    import pandas as pd

    from htskit.contracts.spec import HierarchySpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregatedTable:
    """Value of every series at every period.

    ``values[i, t]`` is the value of ``nodes[i]`` (row ``i`` of the
    summation matrix) at ``periods[t]``.
    """

    spec: HierarchySpec
    config: AggregationConfig
    time_col: str
    value_col: str
    nodes: tuple[AggregateNode, ...]
    row_labels: list[str]
    periods: np.ndarray
    values: np.ndarray

    @property
    def n_series(self) -> int:
        return self.values.shape[0]

    @property
    def n_periods(self) -> int:
        return self.values.shape[1]

    def get_series(self, label: str) -> np.ndarray:
        """Values of one series over all periods, looked up by row label."""
        try:
            row = self.row_labels.index(label)
        except ValueError:
            raise KeyError(f"Series '{label}' not in aggregated table") from None
        return self.values[row]

    def to_dataframe(self, id_col: str = "unique_id") -> pd.DataFrame:
        """Long DataFrame, one row per (series, period)."""
        return to_dataframe(self, id_col=id_col)


class HierarchicalTimeSeries:
    """Bottom-level data with its aggregation tree and summation matrix.

    Args:
        data: Bottom-level observations (DataFrame or DataFrame-like)
        spec: Hierarchy/group structure
        time_col: Period column
        value_col: Value column
        config: Aggregation policies (defaults to ``AggregationConfig()``)

    Raises:
        ESpecification: Any construction failure (missing or mistyped
            columns, inconsistent nesting, duplicate observations)

    Example:
        >>> spec = HierarchySpec(["state", "city"], ["sector"])
        >>> hts = HierarchicalTimeSeries(df, spec, "quarter", "gdp")
        >>> hts.n_series(), hts.n_bottom(), hts.n_periods()
        (21, 8, 2)
        >>> s = hts.summation_matrix()
        >>> out = hts.aggregate_all().to_dataframe()
    """

    def __init__(
        self,
        data: Any,
        spec: HierarchySpec,
        time_col: str,
        value_col: str,
        config: AggregationConfig | None = None,
    ) -> None:
        self._spec = spec
        self._config = config or AggregationConfig()
        self._time_col = time_col
        self._value_col = value_col

        table = from_dataframe(data, spec, time_col, value_col)
        extraction = extract_keys(table, self._config)
        enumeration = order_rows(
            enumerate_nodes(spec, extraction.bottom_keys), spec, self._config
        )

        self._bottom = extraction.index
        self._nodes: SeriesIndexer[AggregateNode] = SeriesIndexer(enumeration.nodes)
        self._members = enumeration.members
        self._levels = enumeration.levels

        col_labels = [
            node_label(_bottom_node(key, spec), spec, self._config)
            for key in extraction.bottom_keys
        ]
        self._s = build_summation_matrix(enumeration, col_labels, spec, self._config)

        # Bottom-level observations, read-only for the lifetime of the engine
        self._periods = _frozen(extraction.periods)
        self._key_codes = _frozen(extraction.key_codes)
        self._period_codes = _frozen(extraction.period_codes)
        self._values = _frozen(table.values)

        logger.info(
            "Built hierarchy: %d series (%d bottom) over %d periods",
            self.n_series(),
            self.n_bottom(),
            self.n_periods(),
        )

    @classmethod
    def from_csv(
        cls,
        path: Any,
        spec: HierarchySpec,
        time_col: str,
        value_col: str,
        config: AggregationConfig | None = None,
        **kwargs: Any,
    ) -> HierarchicalTimeSeries:
        """Load bottom-level data from a CSV file."""
        return read_csv(path, spec, time_col, value_col, config=config, **kwargs)

    # ------------------------------------------------------------------
    # Structure queries
    # ------------------------------------------------------------------

    def n_series(self) -> int:
        """Total number of series across all aggregation levels."""
        return len(self._nodes)

    def n_bottom(self) -> int:
        return len(self._bottom)

    def n_periods(self) -> int:
        return len(self._periods)

    @property
    def spec(self) -> HierarchySpec:
        return self._spec

    @property
    def config(self) -> AggregationConfig:
        return self._config

    @property
    def time_col(self) -> str:
        return self._time_col

    @property
    def value_col(self) -> str:
        return self._value_col

    @property
    def bottom_keys(self) -> tuple[BottomKey, ...]:
        return tuple(self._bottom.keys)

    @property
    def nodes(self) -> tuple[AggregateNode, ...]:
        return tuple(self._nodes.keys)

    @property
    def levels(self) -> tuple[Level, ...]:
        return self._levels

    @property
    def periods(self) -> np.ndarray:
        return self._periods

    def node_position(self, node: AggregateNode) -> int:
        """Row of ``node`` in the summation matrix."""
        return self._nodes.position(node)

    def summation_matrix(self) -> SummationMatrix:
        """Summation matrix with row and column labels."""
        return self._s

    def tags(self) -> dict[str, np.ndarray]:
        """Level name -> row labels of the series at that level."""
        by_level: dict[Level, list[str]] = {}
        for node, label in zip(self._nodes, self._s.row_labels):
            by_level.setdefault(node.level, []).append(label)
        return {
            self._level_name(level): np.array(by_level[level], dtype=object)
            for level in self._levels
        }

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def aggregate_all(self) -> AggregatedTable:
        """Compute every series for every period.

        Raises:
            EIncompleteSeries: If a bottom series misses a period and the
                missing policy is ``"error"``
        """
        n_periods, n_bottom = self.n_periods(), self.n_bottom()
        grid = np.zeros((n_periods, n_bottom), dtype=self._values.dtype)
        grid[self._period_codes, self._key_codes] = self._values

        n_missing = n_periods * n_bottom - len(self._values)
        if n_missing:
            self._handle_missing(n_missing)

        # Flattened memberships: node i sums grid columns cols[offsets[i]:offsets[i+1]]
        cols = np.concatenate(self._members)
        sizes = np.fromiter((len(m) for m in self._members), dtype=np.intp)
        offsets = np.concatenate(([0], np.cumsum(sizes)[:-1]))

        result = np.empty((self.n_series(), n_periods), dtype=grid.dtype)

        def aggregate_chunk(start: int, stop: int) -> None:
            block = grid[start:stop][:, cols]
            result[:, start:stop] = np.add.reduceat(block, offsets, axis=1).T

        chunks = self._period_chunks(n_periods)
        if len(chunks) <= 1:
            for start, stop in chunks:
                aggregate_chunk(start, stop)
        else:
            logger.debug("Aggregating %d periods in %d chunks", n_periods, len(chunks))
            with ThreadPoolExecutor(max_workers=self._config.max_workers) as executor:
                futures = {
                    executor.submit(aggregate_chunk, start, stop): (start, stop)
                    for start, stop in chunks
                }
                for future in as_completed(futures):
                    future.result()

        return AggregatedTable(
            spec=self._spec,
            config=self._config,
            time_col=self._time_col,
            value_col=self._value_col,
            nodes=self.nodes,
            row_labels=self._s.row_labels,
            periods=self._periods,
            values=result,
        )

    def _handle_missing(self, n_missing: int) -> None:
        if self._config.missing_policy == "zero":
            logger.warning(
                "Zero-filling %d missing bottom observations (of %d)",
                n_missing,
                self.n_periods() * self.n_bottom(),
            )
            return

        observed = np.zeros((self.n_periods(), self.n_bottom()), dtype=bool)
        observed[self._period_codes, self._key_codes] = True
        missing = np.argwhere(~observed)
        examples = [
            {
                "series": self._s.col_labels[int(col)],
                "period": str(self._periods[int(period)]),
            }
            for period, col in missing[:5]
        ]
        incomplete = {int(col) for _, col in missing}
        raise EIncompleteSeries(
            f"{n_missing} bottom observations missing across "
            f"{len(incomplete)} series",
            context={"n_missing": n_missing, "examples": examples},
        )

    def _period_chunks(self, n_periods: int) -> list[tuple[int, int]]:
        """Split [0, n_periods) into contiguous chunks, one per worker."""
        if n_periods == 0:
            return []
        max_workers = self._config.max_workers or min(32, (os.cpu_count() or 1) + 4)
        n_chunks = min(max_workers, n_periods // self._config.min_periods_per_worker)
        if n_chunks <= 1:
            return [(0, n_periods)]
        bounds = np.linspace(0, n_periods, n_chunks + 1).astype(int)
        return [(int(a), int(b)) for a, b in zip(bounds[:-1], bounds[1:]) if b > a]

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def _level_name(self, level: Level) -> str:
        return level.name(
            self._spec,
            total_label=self._config.total_label,
            path_separator=self._config.path_separator,
            group_separator=self._config.group_separator,
        )

    def summary(self) -> str:
        """Multi-line description of the structure."""
        counts = Counter(node.level for node in self._nodes)
        lines = [
            "HierarchicalTimeSeries",
            f"  Hierarchy: {list(self._spec.hierarchy)}",
            f"  Groups: {list(self._spec.groups)}",
            f"  Time column: {self._time_col}",
            f"  Value column: {self._value_col}",
            f"  Series: {self.n_series()} (bottom: {self.n_bottom()})",
            f"  Periods: {self.n_periods()}",
            "  Levels:",
        ]
        lines.extend(f"    {self._level_name(level)}: {counts[level]}" for level in self._levels)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"HierarchicalTimeSeries(n_series={self.n_series()}, "
            f"n_bottom={self.n_bottom()}, n_periods={self.n_periods()})"
        )


def _bottom_node(key: BottomKey, spec: HierarchySpec) -> AggregateNode:
    return AggregateNode(
        key.path,
        tuple(zip(spec.groups, key.groups)),
        Level(spec.depth, tuple(range(spec.n_groups))),
    )


def _frozen(array: np.ndarray) -> np.ndarray:
    array = np.array(array, copy=True)
    array.setflags(write=False)
    return array
