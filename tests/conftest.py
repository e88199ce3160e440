"""Shared fixtures: a two-state GDP panel crossed with a sector group."""

from __future__ import annotations

import pandas as pd
import pytest

from htskit.contracts import HierarchySpec

CITIES = [
    ("RJ", "Rio"),
    ("RJ", "Duque"),
    ("SP", "Sao Paulo"),
    ("SP", "Campinas"),
]
SECTORS = ["Industry", "Agriculture"]
QUARTERS = ["2024 Q1", "2024 Q2"]


def make_gdp_frame(quarters: list[str] = QUARTERS) -> pd.DataFrame:
    rows = []
    value = 100
    for quarter in quarters:
        for state, city in CITIES:
            for sector in SECTORS:
                rows.append(
                    {
                        "state": state,
                        "city": city,
                        "sector": sector,
                        "quarter": quarter,
                        "gdp": float(value),
                    }
                )
                value += 10
    return pd.DataFrame(rows)


@pytest.fixture
def gdp_frame_factory():
    """Build the GDP panel over custom quarters."""
    return make_gdp_frame


@pytest.fixture
def gdp_data() -> pd.DataFrame:
    """8 bottom series (2 states x 2 cities x 2 sectors) over 2 quarters."""
    return make_gdp_frame()


@pytest.fixture
def gdp_spec() -> HierarchySpec:
    return HierarchySpec(["state", "city"], ["sector"])
