"""
tests/test_formatting.py

Rounding and narrative template tests.
"""

from __future__ import annotations

import pytest

from analytics.formatting import (
    format_money,
    round_half_up,
    slow_migration_issue,
    top_downgrade_sentence,
)
from analytics.types import MigrationPath


class TestRounding:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(2.5, 3), (2.4999, 2), (-2.5, -2), (-2.6, -3), (0.0, 0)],
    )
    def test_round_half_up(self, value: float, expected: int) -> None:
        assert round_half_up(value) == expected

    @pytest.mark.parametrize(
        ("minor", "expected"),
        [
            (7000, "70"),
            (7050, "71"),
            (-7000, "-70"),
            (4550, "46"),
            (-4550, "-46"),
            (49, "0"),
            (0, "0"),
        ],
    )
    def test_format_money(self, minor: int, expected: str) -> None:
        assert format_money(minor) == expected


class TestTemplates:
    def test_downgrade_carries_sign(self) -> None:
        path = MigrationPath("Scale", "Growth", 4, -40000, -10000)
        assert top_downgrade_sentence(path) == (
            "Most common downgrade: Scale → Growth (4 customers, -100/mo avg)"
        )

    def test_slow_migration_without_source_plan(self) -> None:
        path = MigrationPath(None, "Growth", 6, 0, 0)
        assert slow_migration_issue(path, 45.0) == (
            "Takes 2 months on average to migrate from signup to Growth"
        )
