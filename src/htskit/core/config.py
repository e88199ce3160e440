"""Configuration for hierarchy construction and aggregation.

A single frozen config object carries every policy choice the engine makes:
how missing observations are handled, how bottom series are ordered, how
labels are rendered and how aggregation is parallelised.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal

MissingPolicy = Literal["zero", "error"]
BottomOrder = Literal["first_seen", "sorted"]


@dataclass(frozen=True)
class AggregationConfig:
    """Policies for building and aggregating a hierarchical time series.

    Args:
        missing_policy: What ``aggregate_all()`` does when a bottom series
            has no observation for a period. ``"zero"`` treats the gap as a
            zero contribution, ``"error"`` raises ``EIncompleteSeries``.
        bottom_order: Column order of bottom series in the summation matrix.
            ``"first_seen"`` keeps the order of first occurrence in the input
            rows, ``"sorted"`` sorts by the bottom key (hierarchy values,
            then group values).
        total_label: Label used for an aggregated-away dimension.
        path_separator: Joins hierarchy values inside a row label.
        group_separator: Joins the hierarchy part and group values.
        max_workers: Threads used for per-period aggregation
            (1 = sequential, None = executor default).
        min_periods_per_worker: Smallest chunk of periods handed to a worker.
    """

    missing_policy: MissingPolicy = "zero"
    bottom_order: BottomOrder = "first_seen"

    # Labels
    total_label: str = "Total"
    path_separator: str = "/"
    group_separator: str = "::"

    # Parallel aggregation
    max_workers: int | None = None
    min_periods_per_worker: int = 64

    def __post_init__(self) -> None:
        if self.missing_policy not in ("zero", "error"):
            raise ValueError(
                f"missing_policy must be 'zero' or 'error', got {self.missing_policy!r}"
            )
        if self.bottom_order not in ("first_seen", "sorted"):
            raise ValueError(
                f"bottom_order must be 'first_seen' or 'sorted', got {self.bottom_order!r}"
            )
        if not self.total_label:
            raise ValueError("total_label cannot be empty")
        if not self.path_separator or not self.group_separator:
            raise ValueError("label separators cannot be empty")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")
        if self.min_periods_per_worker < 1:
            raise ValueError("min_periods_per_worker must be at least 1")

    @classmethod
    def strict(cls) -> AggregationConfig:
        """Strict preset - incomplete periods are an error."""
        return cls(missing_policy="error")

    @classmethod
    def sorted_bottom(cls) -> AggregationConfig:
        """Bottom series ordered by key rather than by first appearance."""
        return cls(bottom_order="sorted")

    def with_workers(self, max_workers: int | None) -> AggregationConfig:
        """Return a copy using ``max_workers`` aggregation threads."""
        return replace(self, max_workers=max_workers)
