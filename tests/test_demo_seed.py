"""
tests/test_demo_seed.py

Demo dataset generator: argument validation, per-customer event timelines
and the daily snapshot window.
No database is touched.
"""

from __future__ import annotations

import random
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from analytics.errors import InvalidArgumentError
from analytics.types import EventType
import app.services.demo_seed_service as demo_seed_service
from app.services.demo_seed_service import (
    DEMO_PLANS,
    DEMO_SNAPSHOT_DAYS,
    _customer_timeline,
    _seed_snapshots,
    seed_demo_data,
)

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
SIGNUP = datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)
_AMOUNTS = {nickname: amount for _, nickname, amount in DEMO_PLANS}


def _timelines(seed: int, count: int = 200) -> list[list[dict]]:
    rng = random.Random(seed)
    return [
        _customer_timeline(rng, SIGNUP, rng.randrange(len(DEMO_PLANS)), now=NOW)
        for _ in range(count)
    ]


class TestSeedArguments:
    @pytest.mark.parametrize("months", [0, -1])
    def test_rejects_non_positive_months(self, months) -> None:
        with pytest.raises(InvalidArgumentError):
            seed_demo_data(None, uuid.uuid4(), months=months)


class TestCustomerTimeline:
    def test_starts_with_signup(self) -> None:
        for timeline in _timelines(seed=7):
            first = timeline[0]
            assert first["type"] is EventType.NEW
            assert first["occurred_at"] == SIGNUP
            assert first["previous_plan_id"] is None
            assert first["previous_mrr"] == 0
            assert first["new_mrr"] == _AMOUNTS[first["new_plan_nickname"]]

    def test_hops_chain_and_stay_before_now(self) -> None:
        for timeline in _timelines(seed=11):
            for before, after in zip(timeline, timeline[1:]):
                assert after["occurred_at"] > before["occurred_at"]
                assert after["occurred_at"] < NOW
                assert after["previous_plan_id"] == before["new_plan_id"]
                assert after["previous_mrr"] == before["new_mrr"]

    def test_upgrades_and_downgrades_move_one_tier(self) -> None:
        order = [nickname for _, nickname, _ in DEMO_PLANS]
        for timeline in _timelines(seed=3):
            for event in timeline[1:]:
                if event["type"] is EventType.CANCELED:
                    continue
                step = order.index(event["new_plan_nickname"]) - order.index(
                    event["previous_plan_nickname"]
                )
                assert step == (1 if event["type"] is EventType.UPGRADE else -1)

    def test_cancel_is_terminal(self) -> None:
        for timeline in _timelines(seed=5):
            types = [event["type"] for event in timeline]
            if EventType.CANCELED in types:
                assert types.index(EventType.CANCELED) == len(types) - 1
                assert timeline[-1]["new_mrr"] == 0
                assert timeline[-1]["new_plan_id"] is None

    def test_same_seed_same_timelines(self) -> None:
        assert _timelines(seed=42, count=20) == _timelines(seed=42, count=20)


class _RecordingSnapshots:
    upserted: list = []

    def __init__(self, session) -> None:
        pass

    def upsert_snapshot(self, organization_id, snapshot) -> None:
        self.upserted.append(snapshot)


class TestSeedSnapshots:
    def test_writes_one_snapshot_per_day_ending_today(self, monkeypatch) -> None:
        monkeypatch.setattr(_RecordingSnapshots, "upserted", [])
        monkeypatch.setattr(demo_seed_service, "SnapshotRepository", _RecordingSnapshots)

        written = _seed_snapshots(None, uuid.uuid4(), random.Random(1), now=NOW)

        dates = [s.date for s in _RecordingSnapshots.upserted]
        assert written == DEMO_SNAPSHOT_DAYS == 60
        assert len(set(dates)) == 60
        assert dates[0] == NOW.date() - timedelta(days=59)
        assert dates[-1] == NOW.date()

    def test_mrr_grows_across_the_window(self, monkeypatch) -> None:
        monkeypatch.setattr(_RecordingSnapshots, "upserted", [])
        monkeypatch.setattr(demo_seed_service, "SnapshotRepository", _RecordingSnapshots)

        _seed_snapshots(None, uuid.uuid4(), random.Random(1), now=NOW)

        mrrs = [s.mrr for s in _RecordingSnapshots.upserted]
        assert mrrs == sorted(mrrs)
        assert all(s.arr == s.mrr * 12 for s in _RecordingSnapshots.upserted)
