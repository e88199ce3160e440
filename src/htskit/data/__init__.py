"""Data-access boundary between host DataFrames and the engine."""

from htskit.data.adapter import (
    BottomTable,
    ColumnKind,
    column_kind,
    from_dataframe,
    read_csv,
    to_dataframe,
)

__all__ = [
    "BottomTable",
    "ColumnKind",
    "column_kind",
    "from_dataframe",
    "read_csv",
    "to_dataframe",
]
