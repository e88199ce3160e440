"""htskit - Hierarchical and grouped time series aggregation.

Computes every aggregate series implied by a hierarchy (strictly nested
columns) and groups (columns crossing every hierarchy level), together with
the summation matrix mapping bottom-level series onto all series.

Input contract:
    A table with the hierarchy and group columns, one time column and one
    numeric value column; one row per (bottom series, period).

Basic usage:
    >>> from htskit import HierarchicalTimeSeries, HierarchySpec
    >>> spec = HierarchySpec(["state", "city"], ["sector"])
    >>> hts = HierarchicalTimeSeries(df, spec, time_col="quarter", value_col="gdp")
    >>> print(hts.summary())
    >>> matrix, row_labels, col_labels = hts.summation_matrix()
    >>> result = hts.aggregate_all().to_dataframe()

Strict gap handling:
    >>> from htskit import AggregationConfig
    >>> hts = HierarchicalTimeSeries(df, spec, "quarter", "gdp",
    ...                              config=AggregationConfig.strict())
    >>> hts.aggregate_all()  # raises EIncompleteSeries on missing periods
"""

__version__ = "0.1.0"

from htskit.contracts.spec import HierarchySpec
from htskit.core.config import AggregationConfig
from htskit.core.errors import (
    EAggregation,
    EDuplicateObservation,
    EIncompleteSeries,
    EInconsistentNesting,
    EInvalidSpecification,
    EMissingColumn,
    ESpecification,
    EUnsupportedColumnType,
    HTSKitError,
)
from htskit.data.adapter import ColumnKind, read_csv
from htskit.hierarchy.engine import AggregatedTable, HierarchicalTimeSeries
from htskit.hierarchy.matrix import SummationMatrix

__all__ = [
    "__version__",
    # Core API
    "HierarchySpec",
    "HierarchicalTimeSeries",
    "AggregationConfig",
    "AggregatedTable",
    "SummationMatrix",
    "ColumnKind",
    "read_csv",
    # Errors
    "HTSKitError",
    "ESpecification",
    "EInvalidSpecification",
    "EMissingColumn",
    "EUnsupportedColumnType",
    "EInconsistentNesting",
    "EDuplicateObservation",
    "EAggregation",
    "EIncompleteSeries",
]
