"""Pydantic spec describing a hierarchical and/or grouped structure.

A ``HierarchySpec`` names the columns that form a strict hierarchy (ordered
top to bottom, each level nested in the one above) and the columns that are
cross-sectional groups (crossed with every hierarchy level). Groups form an
unordered set and are kept sorted by name, so specs listing the same groups
in a different order describe the same series.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from htskit.core.errors import EInvalidSpecification


class BaseSpec(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class HierarchySpec(BaseSpec):
    """Which columns nest strictly and which columns cross the hierarchy.

    Example:
        >>> spec = HierarchySpec(["state", "city"], ["sector"])
        >>> spec.depth, spec.n_groups
        (2, 1)
        >>> HierarchySpec.hierarchical(["state", "city"]).groups
        ()
    """

    hierarchy: tuple[str, ...] = ()
    groups: tuple[str, ...] = ()

    def __init__(
        self,
        hierarchy: Sequence[str] = (),
        groups: Sequence[str] = (),
        **data: Any,
    ) -> None:
        if isinstance(hierarchy, str):
            hierarchy = (hierarchy,)
        if isinstance(groups, str):
            groups = (groups,)
        super().__init__(hierarchy=tuple(hierarchy), groups=tuple(groups), **data)

    @model_validator(mode="before")
    @classmethod
    def _sort_groups(cls, data: Any) -> Any:
        if isinstance(data, dict):
            groups = data.get("groups")
            if isinstance(groups, (list, tuple)) and all(isinstance(c, str) for c in groups):
                data = {**data, "groups": tuple(sorted(groups))}
        return data

    @model_validator(mode="after")
    def _check_columns(self) -> HierarchySpec:
        if not self.hierarchy and not self.groups:
            raise EInvalidSpecification(
                "Hierarchy and groups cannot both be empty",
                context={"hierarchy": [], "groups": []},
            )

        blank = [c for c in (*self.hierarchy, *self.groups) if not c.strip()]
        if blank:
            raise EInvalidSpecification(
                "Column names cannot be blank",
                context={"hierarchy": list(self.hierarchy), "groups": list(self.groups)},
            )

        for role, columns in (("hierarchy", self.hierarchy), ("groups", self.groups)):
            repeated = sorted(c for c, n in Counter(columns).items() if n > 1)
            if repeated:
                raise EInvalidSpecification(
                    f"Columns listed more than once in {role}: {repeated}",
                    context={role: list(columns)},
                )

        overlap = sorted(set(self.hierarchy) & set(self.groups))
        if overlap:
            raise EInvalidSpecification(
                f"Columns cannot be both hierarchy and group: {overlap}",
                context={"hierarchy": list(self.hierarchy), "groups": list(self.groups)},
            )
        return self

    @classmethod
    def hierarchical(cls, columns: Sequence[str]) -> HierarchySpec:
        """Spec with only hierarchical columns (no grouping)."""
        return cls(hierarchy=columns, groups=())

    @classmethod
    def grouped(cls, columns: Sequence[str]) -> HierarchySpec:
        """Spec with only grouped columns (no hierarchy)."""
        return cls(hierarchy=(), groups=columns)

    @property
    def columns(self) -> tuple[str, ...]:
        """All structure columns, hierarchy first."""
        return (*self.hierarchy, *self.groups)

    @property
    def depth(self) -> int:
        return len(self.hierarchy)

    @property
    def n_groups(self) -> int:
        return len(self.groups)

    def __str__(self) -> str:
        return (
            "<HierarchySpec>\n"
            f"  Hierarchy: {list(self.hierarchy)}\n"
            f"  Groups: {list(self.groups)}"
        )
