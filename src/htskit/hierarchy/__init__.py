"""Hierarchical and grouped time series structure and aggregation.

Example:
    >>> from htskit.hierarchy import HierarchicalTimeSeries
    >>> from htskit.contracts import HierarchySpec
    >>>
    >>> spec = HierarchySpec(["state", "city"], ["sector"])
    >>> hts = HierarchicalTimeSeries(gdp_data, spec, "quarter", "gdp")
    >>> matrix, row_labels, col_labels = hts.summation_matrix()
    >>> all_series = hts.aggregate_all().to_dataframe()
"""

from __future__ import annotations

from .engine import AggregatedTable, HierarchicalTimeSeries
from .indexer import SeriesIndexer
from .keys import BottomKey, KeyExtraction, extract_keys
from .levels import AggregateNode, Level, NodeEnumeration, enumerate_nodes
from .matrix import SummationMatrix, build_summation_matrix

__all__ = [
    # Engine
    "HierarchicalTimeSeries",
    "AggregatedTable",
    # Structure
    "BottomKey",
    "AggregateNode",
    "Level",
    "SummationMatrix",
    "SeriesIndexer",
    # Build steps
    "KeyExtraction",
    "NodeEnumeration",
    "extract_keys",
    "enumerate_nodes",
    "build_summation_matrix",
]
