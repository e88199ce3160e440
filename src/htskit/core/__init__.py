"""Core module - configuration and error types."""

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

__all__ = [
    # Config
    "AggregationConfig",
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
