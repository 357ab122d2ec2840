"""
Pytest Configuration and Fixtures

Shared birth records and charts for the chart engine tests.
"""

import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ziwei.chart import BirthRecord, compute_chart  # noqa: E402


@pytest.fixture
def golden_record() -> BirthRecord:
    """Lunar 1990, month 1, day 1, zi hour: Geng Wu year, Earth 5 bureau."""
    return BirthRecord(year=1990, month=1, day=1, hour_key="zi", gender="male")


@pytest.fixture
def golden_chart(golden_record):
    return compute_chart(golden_record)


@pytest.fixture
def water_record() -> BirthRecord:
    """Lunar 1985 (Yi Chou), month 1, day 10, yin hour: Life at Zi, Water 2 bureau."""
    return BirthRecord(year=1985, month=1, day=10, hour_key="yin", gender="female")


@pytest.fixture
def stars_by_position():
    """Map a chart to {ring_position: [star names in placement order]}."""
    def _collect(chart) -> dict:
        return {s.ring_position: [m.name for m in s.markers] for s in chart.sectors}
    return _collect
