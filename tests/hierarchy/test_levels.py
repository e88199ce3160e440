"""Tests for aggregation node enumeration."""

from __future__ import annotations

from collections import Counter

import numpy as np

from htskit.contracts import HierarchySpec
from htskit.hierarchy import AggregateNode, BottomKey, Level, enumerate_nodes
from htskit.hierarchy.levels import group_subsets

KEYS = [
    BottomKey(("RJ", "Rio"), ("Industry",)),
    BottomKey(("RJ", "Rio"), ("Agriculture",)),
    BottomKey(("RJ", "Duque"), ("Industry",)),
    BottomKey(("SP", "Campinas"), ("Industry",)),
]
SPEC = HierarchySpec(["state", "city"], ["sector"])


def _members(enumeration, node):
    return enumeration.members[enumeration.nodes.index(node)].tolist()


class TestGroupSubsets:
    """Test group subset ordering."""

    def test_subsets_by_size(self) -> None:
        """Subsets come by size, then lexicographically."""
        assert group_subsets(0) == [()]
        assert group_subsets(2) == [(), (0,), (1,), (0, 1)]
        assert len(group_subsets(3)) == 8


class TestEnumerateNodes:
    """Test node enumeration over observed keys."""

    def test_only_observed_nodes(self) -> None:
        """No node exists without a supporting bottom series."""
        enumeration = enumerate_nodes(SPEC, KEYS)
        assert all(len(m) > 0 for m in enumeration.members)
        # SP has no Agriculture, Duque has no Agriculture
        assert AggregateNode(("SP",), (("sector", "Agriculture"),)) not in enumeration.nodes
        assert (
            AggregateNode(("RJ", "Duque"), (("sector", "Agriculture"),))
            not in enumeration.nodes
        )

    def test_node_count(self) -> None:
        """Count matches the observed combinations at every level."""
        enumeration = enumerate_nodes(SPEC, KEYS)
        per_level = Counter((n.level.depth, n.level.group_positions) for n in enumeration.nodes)
        assert per_level == {
            (0, ()): 1,  # Total
            (0, (0,)): 2,  # Industry, Agriculture
            (1, ()): 2,  # RJ, SP
            (1, (0,)): 3,  # RJ x {Ind, Agr}, SP x Ind
            (2, ()): 3,  # Rio, Duque, Campinas
            (2, (0,)): 4,  # bottom
        }
        assert len(enumeration) == 15

    def test_unique_nodes(self) -> None:
        """Node identities are unique."""
        enumeration = enumerate_nodes(SPEC, KEYS)
        assert len(set(enumeration.nodes)) == len(enumeration.nodes)

    def test_memberships(self) -> None:
        """Members are the bottom positions whose keys match the node."""
        enumeration = enumerate_nodes(SPEC, KEYS)
        assert _members(enumeration, AggregateNode(())) == [0, 1, 2, 3]
        assert _members(enumeration, AggregateNode(("RJ",))) == [0, 1, 2]
        assert _members(enumeration, AggregateNode((), (("sector", "Industry"),))) == [0, 2, 3]
        assert _members(enumeration, AggregateNode(("RJ", "Rio"))) == [0, 1]
        assert _members(
            enumeration, AggregateNode(("RJ",), (("sector", "Industry"),))
        ) == [0, 2]

    def test_bottom_nodes_have_one_member(self) -> None:
        """Each bottom key becomes exactly one single-member node."""
        enumeration = enumerate_nodes(SPEC, KEYS)
        bottom = [
            (node, members)
            for node, members in zip(enumeration.nodes, enumeration.members)
            if node.level.is_bottom(SPEC)
        ]
        assert len(bottom) == len(KEYS)
        for node, members in bottom:
            assert members.tolist() == [KEYS.index(BottomKey(node.path, (node.groups[0][1],)))]

    def test_levels(self) -> None:
        """Levels are listed by depth then group subset."""
        enumeration = enumerate_nodes(SPEC, KEYS)
        assert enumeration.levels == (
            Level(0),
            Level(0, (0,)),
            Level(1),
            Level(1, (0,)),
            Level(2),
            Level(2, (0,)),
        )

    def test_deterministic(self) -> None:
        """Re-enumerating gives the same nodes in the same order."""
        first = enumerate_nodes(SPEC, KEYS)
        second = enumerate_nodes(SPEC, KEYS)
        assert first.nodes == second.nodes
        for a, b in zip(first.members, second.members):
            np.testing.assert_array_equal(a, b)

    def test_two_groups(self) -> None:
        """Every group subset is crossed with every hierarchy prefix."""
        spec = HierarchySpec(["state"], ["sector", "size"])
        keys = [
            BottomKey(("RJ",), ("Industry", "small")),
            BottomKey(("RJ",), ("Industry", "large")),
            BottomKey(("SP",), ("Agriculture", "small")),
        ]
        enumeration = enumerate_nodes(spec, keys)
        assert AggregateNode((), (("size", "small"),)) in enumeration.nodes
        assert _members(enumeration, AggregateNode((), (("size", "small"),))) == [0, 2]
        assert AggregateNode(
            ("RJ",), (("sector", "Industry"), ("size", "large"))
        ) in enumeration.nodes
        # levels: 2 depths x 4 subsets
        assert len(enumeration.levels) == 8

    def test_hierarchy_only(self) -> None:
        """Without groups only hierarchy prefixes are nodes."""
        spec = HierarchySpec.hierarchical(["state", "city"])
        keys = [BottomKey(("RJ", "Rio"), ()), BottomKey(("RJ", "Duque"), ())]
        enumeration = enumerate_nodes(spec, keys)
        assert enumeration.nodes == (
            AggregateNode(()),
            AggregateNode(("RJ",)),
            AggregateNode(("RJ", "Rio")),
            AggregateNode(("RJ", "Duque")),
        )


class TestAggregateNode:
    """Test node identity and accessors."""

    def test_identity_ignores_level(self) -> None:
        """Level is derived and does not affect equality."""
        assert AggregateNode(("RJ",), (), Level(1)) == AggregateNode(("RJ",))
        assert hash(AggregateNode(("RJ",), (), Level(1))) == hash(AggregateNode(("RJ",)))

    def test_column_value(self) -> None:
        """Aggregated columns report the total marker."""
        node = AggregateNode(("RJ",), (("sector", "Industry"),), Level(1, (0,)))
        assert node.column_value("state", SPEC) == "RJ"
        assert node.column_value("city", SPEC) == "Total"
        assert node.column_value("sector", SPEC) == "Industry"
        assert node.column_value("city", SPEC, total="*") == "*"

    def test_grand_total(self) -> None:
        """Only the empty node is the grand total."""
        assert AggregateNode(()).is_grand_total
        assert not AggregateNode((), (("sector", "Industry"),)).is_grand_total


class TestLevelName:
    """Test level naming."""

    def test_names(self) -> None:
        """Names list the fixed columns."""
        assert Level(0).name(SPEC) == "Total"
        assert Level(0, (0,)).name(SPEC) == "Total::sector"
        assert Level(1).name(SPEC) == "state"
        assert Level(2, (0,)).name(SPEC) == "state/city::sector"

    def test_grouped_names(self) -> None:
        """Grouped-only specs have no hierarchy part."""
        spec = HierarchySpec.grouped(["sector", "size"])
        assert Level(0, (0, 1)).name(spec) == "sector::size"
        assert Level(0, (1,)).name(spec) == "size"
