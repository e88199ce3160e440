"""Core error types with rich context.

Every failure the engine can report is one of a small set of error kinds,
each carrying an error code, a context dict for debugging and a default
fix hint. Construction failures derive from ``ESpecification`` and
aggregation failures from ``EAggregation``.

The classes intentionally do not inherit from ``ValueError`` so they pass
through pydantic validators unchanged.
"""

from __future__ import annotations

from typing import Any


class HTSKitError(Exception):
    """Base exception with rich context."""

    error_code: str = "E_UNKNOWN"
    fix_hint: str = ""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        fix_hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}
        if fix_hint:
            self.fix_hint = fix_hint

    def __str__(self) -> str:
        parts = [f"[{self.error_code}] {self.message}"]
        if self.context:
            parts.append(f"(context: {self.context})")
        if self.fix_hint:
            parts.append(f"[hint: {self.fix_hint}]")
        return " ".join(parts)


# ---------------------------------------------------------------------------
# Construction errors
# ---------------------------------------------------------------------------


class ESpecification(HTSKitError):
    """Structure or input data cannot form a hierarchy."""

    error_code = "E_SPECIFICATION"
    fix_hint = "Check the hierarchy/group columns against the input data"


class EInvalidSpecification(ESpecification):
    """Hierarchy and group column lists are empty, overlapping or malformed."""

    error_code = "E_INVALID_SPECIFICATION"
    fix_hint = "Provide at least one column and never list a column twice"


class EMissingColumn(ESpecification):
    """A structure, time or value column is absent from the input."""

    error_code = "E_MISSING_COLUMN"
    fix_hint = "Rename the input columns or fix the column names in the spec"


class EUnsupportedColumnType(ESpecification):
    """A column cannot be coerced to the semantic type its role requires."""

    error_code = "E_UNSUPPORTED_COLUMN_TYPE"
    fix_hint = (
        "Values must be float/integer; keys must be integer, string or date "
        "without nulls; time must be orderable without nulls"
    )


class EInconsistentNesting(ESpecification):
    """A lower hierarchy value appears under more than one parent value."""

    error_code = "E_INCONSISTENT_NESTING"
    fix_hint = (
        "Make lower-level values unique (e.g. prefix City with State) or "
        "declare the column as a group instead"
    )


class EDuplicateObservation(ESpecification):
    """The same bottom series is observed twice in one period."""

    error_code = "E_DUPLICATE_OBSERVATION"
    fix_hint = "Aggregate duplicate rows before building the hierarchy"


# ---------------------------------------------------------------------------
# Aggregation errors
# ---------------------------------------------------------------------------


class EAggregation(HTSKitError):
    """Aggregation over the summation matrix failed."""

    error_code = "E_AGGREGATION"
    fix_hint = "Inspect the bottom-level observations for the failing period"


class EIncompleteSeries(EAggregation):
    """A bottom series has no observation for some period."""

    error_code = "E_INCOMPLETE_SERIES"
    fix_hint = "Fill the gaps upstream or use AggregationConfig(missing_policy='zero')"


# Error registry for lookup
ERROR_REGISTRY: dict[str, type[HTSKitError]] = {
    cls.error_code: cls
    for cls in (
        ESpecification,
        EInvalidSpecification,
        EMissingColumn,
        EUnsupportedColumnType,
        EInconsistentNesting,
        EDuplicateObservation,
        EAggregation,
        EIncompleteSeries,
    )
}


def get_error_class(error_code: str) -> type[HTSKitError]:
    """Get error class by code."""
    return ERROR_REGISTRY.get(error_code, HTSKitError)
