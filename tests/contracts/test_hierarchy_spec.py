"""Tests for HierarchySpec validation."""

from __future__ import annotations

import pydantic
import pytest

from htskit.contracts import HierarchySpec
from htskit.core.errors import EInvalidSpecification


class TestHierarchySpecCreation:
    """Test spec construction."""

    def test_positional(self) -> None:
        """Hierarchy and groups can be passed positionally."""
        spec = HierarchySpec(["state", "city"], ["sector"])
        assert spec.hierarchy == ("state", "city")
        assert spec.groups == ("sector",)
        assert spec.depth == 2
        assert spec.n_groups == 1
        assert spec.columns == ("state", "city", "sector")

    def test_keywords(self) -> None:
        """Hierarchy and groups can be passed by keyword."""
        spec = HierarchySpec(hierarchy=["state"], groups=["sector", "purpose"])
        assert spec.groups == ("purpose", "sector")

    def test_hierarchical(self) -> None:
        """hierarchical() leaves groups empty."""
        spec = HierarchySpec.hierarchical(["state", "city"])
        assert spec.hierarchy == ("state", "city")
        assert spec.groups == ()

    def test_grouped(self) -> None:
        """grouped() leaves the hierarchy empty."""
        spec = HierarchySpec.grouped(["product", "channel"])
        assert spec.hierarchy == ()
        assert spec.depth == 0
        assert spec.groups == ("channel", "product")

    def test_single_string_is_one_column(self) -> None:
        """A bare string names one column rather than its characters."""
        spec = HierarchySpec("state")
        assert spec.hierarchy == ("state",)

    def test_frozen(self) -> None:
        """Spec is immutable."""
        spec = HierarchySpec(["state"])
        with pytest.raises(pydantic.ValidationError):
            spec.hierarchy = ("city",)

    def test_equality(self) -> None:
        """Specs with the same columns compare equal."""
        assert HierarchySpec(["a"], ["b"]) == HierarchySpec(hierarchy=("a",), groups=("b",))

    def test_group_order_is_irrelevant(self) -> None:
        """Groups are a set: listing order does not change the spec."""
        first = HierarchySpec(["state"], ["sector", "size"])
        second = HierarchySpec(["state"], ["size", "sector"])
        assert first == second
        assert second.groups == ("sector", "size")
        assert second.columns == ("state", "sector", "size")

    def test_validated_groups_are_sorted(self) -> None:
        """Groups are sorted when validating a plain dict too."""
        spec = HierarchySpec.model_validate({"hierarchy": ["state"], "groups": ["size", "sector"]})
        assert spec.groups == ("sector", "size")

    def test_str(self) -> None:
        """String form lists both column sets."""
        text = str(HierarchySpec(["state"], ["sector"]))
        assert "Hierarchy: ['state']" in text
        assert "Groups: ['sector']" in text


class TestHierarchySpecValidation:
    """Test invalid specs."""

    def test_both_empty(self) -> None:
        """Empty hierarchy and empty groups is invalid."""
        with pytest.raises(EInvalidSpecification, match="cannot both be empty"):
            HierarchySpec([], [])

    def test_default_is_empty(self) -> None:
        """No arguments describes nothing to aggregate."""
        with pytest.raises(EInvalidSpecification):
            HierarchySpec()

    def test_overlap(self) -> None:
        """A column cannot be both hierarchy and group."""
        with pytest.raises(EInvalidSpecification, match="both hierarchy and group") as exc:
            HierarchySpec(["state", "city"], ["city"])
        assert exc.value.context["hierarchy"] == ["state", "city"]

    def test_repeated_in_hierarchy(self) -> None:
        """A hierarchy column cannot repeat."""
        with pytest.raises(EInvalidSpecification, match="more than once in hierarchy"):
            HierarchySpec(["state", "state"])

    def test_repeated_in_groups(self) -> None:
        """A group column cannot repeat."""
        with pytest.raises(EInvalidSpecification, match="more than once in groups"):
            HierarchySpec.grouped(["sector", "sector"])

    def test_blank_column(self) -> None:
        """Column names cannot be blank."""
        with pytest.raises(EInvalidSpecification, match="blank"):
            HierarchySpec(["state", " "])

    def test_extra_fields_forbidden(self) -> None:
        """Unknown fields are rejected."""
        with pytest.raises(pydantic.ValidationError):
            HierarchySpec(["state"], levels=["x"])
