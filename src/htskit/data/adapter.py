"""Conversion between pandas DataFrames and the engine's typed table.

This is the only place that inspects host column types. Every input column
is mapped onto a closed set of semantic kinds (``ColumnKind``) and checked
against the kinds its role accepts; anything else is rejected with
``EUnsupportedColumnType`` rather than coerced implicitly. Past this
boundary the engine only sees numeric ndarrays and lists of discrete key
values.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd

from htskit.core.errors import EInvalidSpecification, EMissingColumn, EUnsupportedColumnType

if TYPE_CHECKING:
    from htskit.contracts.spec import HierarchySpec
    from htskit.core.config import AggregationConfig
    from htskit.hierarchy.engine import AggregatedTable, HierarchicalTimeSeries

logger = logging.getLogger(__name__)


class ColumnKind(str, Enum):
    """Semantic column types understood at the data-access boundary."""

    FLOAT = "float"
    INTEGER = "integer"
    STRING = "string"
    DATE = "date"


# Kinds accepted per column role
VALUE_KINDS = frozenset({ColumnKind.FLOAT, ColumnKind.INTEGER})
TIME_KINDS = frozenset(ColumnKind)
KEY_KINDS = frozenset({ColumnKind.INTEGER, ColumnKind.STRING, ColumnKind.DATE})


@dataclass(frozen=True)
class BottomTable:
    """Typed bottom-level observations.

    Attributes:
        spec: Structure the key columns belong to
        time_col: Name of the period column
        value_col: Name of the value column
        keys: Structure column -> list of Python scalars (one per row)
        time: Period per row
        values: Numeric value per row, input dtype preserved
        kinds: Semantic kind of every used column
    """

    spec: HierarchySpec
    time_col: str
    value_col: str
    keys: dict[str, list[Any]]
    time: np.ndarray
    values: np.ndarray
    kinds: dict[str, ColumnKind]

    @property
    def n_rows(self) -> int:
        return len(self.values)


def column_kind(series: pd.Series) -> ColumnKind:
    """Map a pandas column onto its semantic kind.

    Raises:
        EUnsupportedColumnType: If the dtype has no semantic kind
    """
    dtype = series.dtype

    if isinstance(dtype, pd.CategoricalDtype):
        return ColumnKind.STRING
    if pd.api.types.is_bool_dtype(dtype):
        raise _unsupported(series, "boolean columns are not supported")
    if pd.api.types.is_integer_dtype(dtype):
        return ColumnKind.INTEGER
    if pd.api.types.is_float_dtype(dtype):
        return ColumnKind.FLOAT
    if pd.api.types.is_datetime64_any_dtype(dtype) or isinstance(dtype, pd.PeriodDtype):
        return ColumnKind.DATE
    if isinstance(dtype, pd.StringDtype):
        return ColumnKind.STRING
    if dtype == object:
        inferred = pd.api.types.infer_dtype(series, skipna=True)
        if inferred in ("string", "empty"):
            return ColumnKind.STRING
        if inferred in ("date", "datetime", "period"):
            return ColumnKind.DATE
        raise _unsupported(series, f"object column holds {inferred!r} values")

    raise _unsupported(series, f"dtype {dtype} is not supported")


def from_dataframe(
    data: Any,
    spec: HierarchySpec,
    time_col: str,
    value_col: str,
) -> BottomTable:
    """Convert input data into a typed ``BottomTable``.

    Args:
        data: DataFrame, or anything ``pd.DataFrame()`` accepts
        spec: Hierarchy/group structure
        time_col: Period column name
        value_col: Value column name

    Returns:
        BottomTable ready for key extraction

    Raises:
        EInvalidSpecification: If one column is given two roles
        EMissingColumn: If a required column is absent
        EUnsupportedColumnType: If a column has the wrong semantic type
    """
    df = data if isinstance(data, pd.DataFrame) else pd.DataFrame(data)

    required = [*spec.columns, time_col, value_col]
    if len(set(required)) != len(required):
        raise EInvalidSpecification(
            "Structure, time and value columns must be distinct",
            context={"columns": list(spec.columns), "time": time_col, "value": value_col},
        )

    missing = [c for c in required if c not in df.columns]
    if missing:
        raise EMissingColumn(
            f"Missing required columns: {missing}",
            context={"required": required, "found": [str(c) for c in df.columns]},
        )

    kinds: dict[str, ColumnKind] = {}
    keys: dict[str, list[Any]] = {}
    for column in spec.columns:
        kinds[column] = _require_kind(df[column], KEY_KINDS, "hierarchy/group")
        _require_no_nulls(df[column], "hierarchy/group")
        keys[column] = df[column].tolist()

    kinds[time_col] = _require_kind(df[time_col], TIME_KINDS, "time")
    _require_no_nulls(df[time_col], "time")
    time = _time_array(df[time_col], kinds[time_col])

    kinds[value_col] = _require_kind(df[value_col], VALUE_KINDS, "value")
    values = _value_array(df[value_col], kinds[value_col])

    logger.debug(
        "Converted %d rows (%s)",
        len(df),
        ", ".join(f"{c}={k.value}" for c, k in kinds.items()),
    )
    return BottomTable(
        spec=spec,
        time_col=time_col,
        value_col=value_col,
        keys=keys,
        time=time,
        values=values,
        kinds=kinds,
    )


def to_dataframe(table: AggregatedTable, id_col: str = "unique_id") -> pd.DataFrame:
    """Convert aggregated series into a long DataFrame.

    Rows are node-major in summation-matrix row order with periods
    ascending inside each node. Aggregated-away dimensions carry the
    configured total label.

    Returns:
        DataFrame with columns [id_col, *hierarchy, *groups, time_col, value_col]
    """
    n_series, n_periods = table.values.shape
    spec = table.spec
    total = table.config.total_label

    data: dict[str, Any] = {
        id_col: np.repeat(np.asarray(table.row_labels, dtype=object), n_periods),
    }
    for column in spec.columns:
        labels = np.empty(n_series, dtype=object)
        labels[:] = [node.column_value(column, spec, total) for node in table.nodes]
        data[column] = np.repeat(labels, n_periods)
    data[table.time_col] = np.tile(table.periods, n_series)
    data[table.value_col] = table.values.reshape(-1)
    return pd.DataFrame(data)


def read_csv(
    path: Any,
    spec: HierarchySpec,
    time_col: str,
    value_col: str,
    config: AggregationConfig | None = None,
    **kwargs: Any,
) -> HierarchicalTimeSeries:
    """Load a CSV file and build a hierarchical time series from it.

    Structure columns are read as strings so identifiers such as
    zero-padded codes keep their spelling. A ``dtype`` mapping is merged
    over that default; a single ``dtype`` applies to every other column.
    Extra keyword arguments are passed to ``pandas.read_csv``.
    """
    from htskit.hierarchy.engine import HierarchicalTimeSeries

    user_dtype = kwargs.pop("dtype", None)
    structure = {column: str for column in spec.columns}
    if user_dtype is None:
        dtype: Any = structure
    elif isinstance(user_dtype, Mapping):
        dtype = {**structure, **user_dtype}
    else:
        dtype = defaultdict(lambda: user_dtype, structure)
    df = pd.read_csv(path, dtype=dtype, **kwargs)
    logger.info("Loaded %d rows from %s", len(df), path)
    return HierarchicalTimeSeries(df, spec, time_col, value_col, config=config)


def _require_kind(
    series: pd.Series,
    allowed: frozenset[ColumnKind],
    role: str,
) -> ColumnKind:
    kind = column_kind(series)
    if kind not in allowed:
        raise _unsupported(
            series,
            f"{role} column cannot be {kind.value}; "
            f"expected one of {sorted(k.value for k in allowed)}",
        )
    return kind


def _require_no_nulls(series: pd.Series, role: str) -> None:
    n_null = int(series.isna().sum())
    if n_null:
        raise _unsupported(series, f"{role} column has {n_null} missing values")


def _time_array(series: pd.Series, kind: ColumnKind) -> np.ndarray:
    if kind is ColumnKind.STRING:
        return series.astype(object).to_numpy()
    if kind is ColumnKind.DATE:
        return series.to_numpy()
    return _numeric_array(series)


def _value_array(series: pd.Series, kind: ColumnKind) -> np.ndarray:
    if kind is ColumnKind.INTEGER and series.isna().any():
        raise _unsupported(series, "integer value column has missing values")
    return _numeric_array(series)


def _numeric_array(series: pd.Series) -> np.ndarray:
    """Numeric ndarray in the column's own dtype (nullable floats -> NaN)."""
    dtype = series.dtype
    if isinstance(dtype, pd.api.extensions.ExtensionDtype):
        numpy_dtype = dtype.numpy_dtype
        if np.issubdtype(numpy_dtype, np.floating):
            return series.to_numpy(dtype=numpy_dtype, na_value=np.nan)
        return series.to_numpy(dtype=numpy_dtype)
    return series.to_numpy()


def _unsupported(series: pd.Series, reason: str) -> EUnsupportedColumnType:
    return EUnsupportedColumnType(
        f"Column {series.name!r}: {reason}",
        context={"column": str(series.name), "dtype": str(series.dtype)},
    )
