"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path

import pandas as pd
import pytest


def pytest_sessionstart() -> None:
    """Add the project root to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))


@pytest.fixture
def raw_origin() -> pd.DataFrame:
    """Raw origin rows over two years, two regions and three academic types."""
    rows = []
    for year in ("2019/20", "2020/21"):
        for region, countries in {"Asia": ["China", "India"], "Europe": ["Germany"]}.items():
            for academic_type in ("Graduate", "Undergraduate"):
                total = (
                    100
                    + 50 * (region == "Europe")
                    + 20 * (academic_type == "Undergraduate")
                    + 10 * (year == "2020/21")
                )
                for country in countries:
                    rows.append({
                        "year": year,
                        "origin_region": region,
                        "origin": country,
                        "academic_type": academic_type,
                        "students": total // len(countries),
                    })
        rows.append({
            "year": year,
            "origin_region": "Asia",
            "origin": "China",
            "academic_type": "Non-Degree",
            "students": 999,
        })
    return pd.DataFrame(rows)
