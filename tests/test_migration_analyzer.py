"""
tests/test_migration_analyzer.py

Pytest unit tests for plan-migration path aggregation.

All tests are pure Python: no database, in-memory events only.

Coverage
--------
- Path grouping, counts, MRR totals and half-up averages
- Conversion rate against the source plan's departures
- Lead-time lookup (same plan id or nickname, history before the window)
- Churn attribution window
- Funnel statistics and ordering
- includeNew filtering
- Calendar month arithmetic for the analysis window
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from analytics.migration import (
    CustomerHistoryIndex,
    aggregate_migrations,
    analyze_migrations,
    months_before,
)
from analytics.thresholds import AnalysisThresholds
from analytics.types import EventType

NEW = EventType.NEW
UPGRADE = EventType.UPGRADE
DOWNGRADE = EventType.DOWNGRADE
CANCELED = EventType.CANCELED


@pytest.fixture()
def signup_then_upgrade(make_event):
    """Five Starter signups; two of them upgrade to Growth 40 days later."""
    events = [
        make_event(f"c{i}", NEW, 0, to_plan="Starter", new_mrr=2900) for i in range(5)
    ]
    events += [
        make_event(
            f"c{i}",
            UPGRADE,
            40,
            from_plan="Starter",
            to_plan="Growth",
            previous_mrr=2900,
            new_mrr=9900,
        )
        for i in range(2)
    ]
    return events


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


class TestPaths:
    def test_groups_signups_and_upgrades(self, signup_then_upgrade) -> None:
        result = aggregate_migrations(signup_then_upgrade)

        assert [(p.from_plan, p.to_plan, p.count) for p in result.paths] == [
            (None, "Starter", 5),
            ("Starter", "Growth", 2),
        ]

    def test_counts_sum_to_qualifying_events(self, signup_then_upgrade, make_event) -> None:
        events = signup_then_upgrade + [
            make_event("c0", CANCELED, 60, from_plan="Growth", previous_mrr=9900)
        ]
        result = aggregate_migrations(events)
        assert sum(p.count for p in result.paths) == 7

    def test_upgrade_path_metrics(self, signup_then_upgrade) -> None:
        upgrade = aggregate_migrations(signup_then_upgrade).paths[1]

        assert upgrade.total_mrr_delta == 14000
        assert upgrade.avg_mrr_delta == 7000
        assert upgrade.conversion_rate == pytest.approx(100.0)
        assert upgrade.avg_days_to_migrate == pytest.approx(40.0)

    def test_signup_path_has_no_conversion_rate(self, signup_then_upgrade) -> None:
        signup = aggregate_migrations(signup_then_upgrade).paths[0]

        assert signup.from_plan is None
        assert signup.conversion_rate is None
        assert signup.avg_days_to_migrate is None
        assert signup.avg_mrr_delta == 2900

    def test_conversion_rate_splits_departures(self, make_event) -> None:
        events = [
            make_event("a", UPGRADE, 1, from_plan="Growth", to_plan="Scale"),
            make_event("b", UPGRADE, 2, from_plan="Growth", to_plan="Scale"),
            make_event("c", UPGRADE, 3, from_plan="Growth", to_plan="Scale"),
            make_event("d", DOWNGRADE, 4, from_plan="Growth", to_plan="Starter"),
        ]
        paths = {(p.from_plan, p.to_plan): p for p in aggregate_migrations(events).paths}

        assert paths[("Growth", "Scale")].conversion_rate == pytest.approx(75.0)
        assert paths[("Growth", "Starter")].conversion_rate == pytest.approx(25.0)
        for path in paths.values():
            assert 0 < path.conversion_rate <= 100

    def test_avg_mrr_delta_rounds_half_up(self, make_event) -> None:
        events = [
            make_event("a", UPGRADE, 1, from_plan="Starter", to_plan="Growth", new_mrr=1),
            make_event("b", UPGRADE, 2, from_plan="Starter", to_plan="Growth", new_mrr=2),
        ]
        assert aggregate_migrations(events).paths[0].avg_mrr_delta == 2

    def test_sorted_by_count_with_stable_ties(self, make_event) -> None:
        events = [
            make_event("a", UPGRADE, 1, from_plan="Starter", to_plan="Growth"),
            make_event("b", DOWNGRADE, 2, from_plan="Scale", to_plan="Growth"),
            make_event("c", DOWNGRADE, 3, from_plan="Scale", to_plan="Growth"),
            make_event("d", UPGRADE, 4, from_plan="Growth", to_plan="Scale"),
        ]
        keys = [(p.from_plan, p.to_plan) for p in aggregate_migrations(events).paths]
        assert keys == [("Scale", "Growth"), ("Starter", "Growth"), ("Growth", "Scale")]

    def test_missing_target_plan_is_unknown(self, make_event) -> None:
        events = [make_event("a", NEW, 0)]
        assert aggregate_migrations(events).paths[0].to_plan == "Unknown"

    def test_exclude_new_signups(self, signup_then_upgrade) -> None:
        result = aggregate_migrations(signup_then_upgrade, include_new_signups=False)

        assert [(p.from_plan, p.to_plan) for p in result.paths] == [("Starter", "Growth")]
        assert result.paths[0].conversion_rate == pytest.approx(100.0)

    def test_empty_input(self) -> None:
        result = aggregate_migrations([])
        assert result.paths == []
        assert result.funnel == []


# ---------------------------------------------------------------------------
# Lead time
# ---------------------------------------------------------------------------


class TestLeadTime:
    def test_uses_history_before_window(self, make_event) -> None:
        signup = make_event("a", NEW, -400, to_plan="Starter")
        upgrade = make_event("a", UPGRADE, 10, from_plan="Starter", to_plan="Growth")

        result = aggregate_migrations([upgrade], [signup, upgrade])
        assert result.paths[0].avg_days_to_migrate == pytest.approx(410.0)

    def test_none_without_matching_prior_event(self, make_event) -> None:
        upgrade = make_event("a", UPGRADE, 10, from_plan="Starter", to_plan="Growth")
        result = aggregate_migrations([upgrade])
        assert result.paths[0].avg_days_to_migrate is None

    def test_most_recent_entry_wins(self, make_event) -> None:
        history = [
            make_event("a", NEW, 0, to_plan="Starter"),
            make_event("a", UPGRADE, 30, from_plan="Starter", to_plan="Growth"),
            make_event("a", DOWNGRADE, 50, from_plan="Growth", to_plan="Starter"),
        ]
        upgrade = make_event("a", UPGRADE, 80, from_plan="Starter", to_plan="Growth")
        index = CustomerHistoryIndex(history + [upgrade])

        assert index.lead_time_days(upgrade) == 30

    def test_matches_on_nickname_when_ids_differ(self, make_event) -> None:
        prior = make_event("a", NEW, 0, to_plan="Starter")
        prior = replace(prior, new_plan_id="price_legacy")
        upgrade = make_event("a", UPGRADE, 15, from_plan="Starter", to_plan="Growth")

        assert CustomerHistoryIndex([prior, upgrade]).lead_time_days(upgrade) == 15

    def test_floors_partial_days(self, make_event) -> None:
        prior = make_event("a", NEW, 0, to_plan="Starter")
        upgrade = make_event("a", UPGRADE, 9.9, from_plan="Starter", to_plan="Growth")
        assert CustomerHistoryIndex([prior, upgrade]).lead_time_days(upgrade) == 9

    def test_other_customers_are_ignored(self, make_event) -> None:
        prior = make_event("b", NEW, 0, to_plan="Starter")
        upgrade = make_event("a", UPGRADE, 20, from_plan="Starter", to_plan="Growth")
        assert CustomerHistoryIndex([prior, upgrade]).lead_time_days(upgrade) is None

    def test_signups_do_not_contribute(self, make_event) -> None:
        events = [
            make_event("a", NEW, 0, to_plan="Starter"),
            make_event("a", NEW, 5, to_plan="Starter"),
        ]
        assert aggregate_migrations(events).paths[0].avg_days_to_migrate is None


# ---------------------------------------------------------------------------
# Funnel
# ---------------------------------------------------------------------------


class TestFunnel:
    def test_churn_inside_window_counts(self, make_event) -> None:
        events = [
            make_event("a", DOWNGRADE, 10, from_plan="Growth", to_plan="Starter"),
            make_event("a", CANCELED, 100, from_plan="Starter"),
        ]
        stat = aggregate_migrations(events).funnel[0]

        assert stat.plan == "Growth"
        assert stat.churn_count == 1
        assert stat.churn_rate == pytest.approx(100.0)

    def test_churn_after_window_is_ignored(self, make_event) -> None:
        events = [
            make_event("a", DOWNGRADE, 10, from_plan="Growth", to_plan="Starter"),
            make_event("a", CANCELED, 101, from_plan="Starter"),
        ]
        assert aggregate_migrations(events).funnel[0].churn_count == 0

    def test_churn_counted_once_per_transition(self, make_event) -> None:
        events = [
            make_event("a", DOWNGRADE, 10, from_plan="Growth", to_plan="Starter"),
            make_event("a", CANCELED, 20, from_plan="Starter"),
            make_event("a", CANCELED, 30, from_plan="Starter"),
        ]
        assert aggregate_migrations(events).funnel[0].churn_count == 1

    def test_churn_window_is_configurable(self, make_event) -> None:
        events = [
            make_event("a", DOWNGRADE, 10, from_plan="Growth", to_plan="Starter"),
            make_event("a", CANCELED, 50, from_plan="Starter"),
        ]
        thresholds = AnalysisThresholds(churn_attribution_days=30)
        assert aggregate_migrations(events, thresholds=thresholds).funnel[0].churn_count == 0

    def test_every_hop_counts(self, make_event) -> None:
        events = [
            make_event("a", UPGRADE, 1, from_plan="Starter", to_plan="Growth"),
            make_event("a", UPGRADE, 2, from_plan="Growth", to_plan="Scale"),
        ]
        funnel = {s.plan: s for s in aggregate_migrations(events).funnel}

        assert funnel["Starter"].upgrade_count == 1
        assert funnel["Growth"].upgrade_count == 1

    def test_rates_and_ordering(self, make_event) -> None:
        events = [
            make_event("a", UPGRADE, 1, from_plan="Starter", to_plan="Growth"),
            make_event("b", UPGRADE, 2, from_plan="Starter", to_plan="Growth"),
            make_event("c", DOWNGRADE, 3, from_plan="Starter", to_plan="Free"),
            make_event("d", DOWNGRADE, 4, from_plan="Scale", to_plan="Growth"),
        ]
        funnel = aggregate_migrations(events).funnel

        assert [s.plan for s in funnel] == ["Starter", "Scale"]
        starter = funnel[0]
        assert starter.total_customers == 3
        assert starter.upgrade_rate == pytest.approx(200 / 3)
        assert starter.downgrade_rate == pytest.approx(100 / 3)
        assert starter.churn_rate == 0.0

    def test_signups_never_enter_funnel(self, signup_then_upgrade) -> None:
        funnel = aggregate_migrations(signup_then_upgrade).funnel
        assert [s.plan for s in funnel] == ["Starter"]


# ---------------------------------------------------------------------------
# Full analysis
# ---------------------------------------------------------------------------


class TestAnalyzeMigrations:
    def test_includes_insights(self, signup_then_upgrade) -> None:
        analysis = analyze_migrations(signup_then_upgrade)

        assert analysis.insights == [
            "Most common upgrade: Starter → Growth (2 customers, +70/mo avg)"
        ]
        assert analysis.friction_points == []

    def test_signups_then_two_upgrades(self, signup_then_upgrade) -> None:
        analysis = analyze_migrations(signup_then_upgrade)

        paths = {(p.from_plan, p.to_plan): p for p in analysis.paths}
        upgrade = paths[("Starter", "Growth")]
        assert (upgrade.count, upgrade.avg_mrr_delta) == (2, 7000)

        [starter] = analysis.funnel
        assert starter.plan == "Starter"
        assert starter.total_customers == 2
        assert starter.upgrade_count == 2
        assert starter.upgrade_rate == pytest.approx(100.0)
        assert starter.downgrade_rate == 0.0

    def test_funnel_unaffected_by_include_new(self, signup_then_upgrade) -> None:
        with_new = analyze_migrations(signup_then_upgrade, include_new_signups=True)
        without_new = analyze_migrations(signup_then_upgrade, include_new_signups=False)
        assert with_new.funnel == without_new.funnel


# ---------------------------------------------------------------------------
# Window arithmetic
# ---------------------------------------------------------------------------


class TestMonthsBefore:
    @pytest.mark.parametrize(
        ("moment", "months", "expected"),
        [
            (datetime(2026, 10, 18, tzinfo=timezone.utc), 12, datetime(2025, 10, 18, tzinfo=timezone.utc)),
            (datetime(2026, 3, 31, tzinfo=timezone.utc), 1, datetime(2026, 2, 28, tzinfo=timezone.utc)),
            (datetime(2024, 3, 31, tzinfo=timezone.utc), 1, datetime(2024, 2, 29, tzinfo=timezone.utc)),
            (datetime(2026, 1, 15, tzinfo=timezone.utc), 2, datetime(2025, 11, 15, tzinfo=timezone.utc)),
            (datetime(2026, 10, 18, tzinfo=timezone.utc), 120, datetime(2016, 10, 18, tzinfo=timezone.utc)),
        ],
    )
    def test_calendar_months(self, moment, months, expected) -> None:
        assert months_before(moment, months) == expected
