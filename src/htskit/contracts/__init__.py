"""Validated structure contracts."""

from htskit.contracts.spec import HierarchySpec

__all__ = ["HierarchySpec"]
