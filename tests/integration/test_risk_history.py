"""Integration tests for the risk history archive"""

import pytest
from datetime import timedelta
from decimal import Decimal
from house_risk.domain.exceptions import HouseNotFoundError, HSINotComputedError
from house_risk.infrastructure.database.models import HouseRiskHistory
from tests.conftest import NOW, TestingSessionLocal

pytestmark = pytest.mark.integration


def _snapshot(db, house, snapshot_type, days_ago, score=50):
    moment = NOW - timedelta(days=days_ago)
    row = HouseRiskHistory(
        house_id=house.id,
        assessment_date=moment,
        hsi_score=score,
        multiplier=Decimal("1.00"),
        snapshot_type=snapshot_type,
        created_at=moment,
    )
    db.add(row)
    db.commit()
    return row


def test_cleanup_removes_only_old_weekly_snapshots(db, factory, history_service):
    house = factory.house()
    _snapshot(db, house, "weekly", 300)
    _snapshot(db, house, "weekly", 190)
    recent_weekly = _snapshot(db, house, "weekly", 30)
    old_monthly = _snapshot(db, house, "monthly", 300)
    old_quarterly = _snapshot(db, house, "quarterly", 400)

    assert history_service.cleanup_old_risk_history() == 2
    assert history_service.cleanup_old_risk_history() == 0

    with TestingSessionLocal() as session:
        remaining = {r.id for r in session.query(HouseRiskHistory).all()}
    assert remaining == {recent_weekly.id, old_monthly.id, old_quarterly.id}


def test_history_is_listed_newest_first(db, factory, history_service):
    house = factory.house()
    _snapshot(db, house, "weekly", 14, score=48)
    _snapshot(db, house, "weekly", 7, score=49)
    _snapshot(db, house, "monthly", 12, score=47)

    history = history_service.get_risk_history(house.id)
    weekly = history_service.get_risk_history(house.id, snapshot_type="weekly", limit=1)

    assert [h.hsi_score for h in history] == [49, 47, 48]
    assert [h.hsi_score for h in weekly] == [49]


def test_manual_snapshot_copies_current_state(factory, history_service, hsi_engine):
    house = factory.house()
    factory.user(house)
    hsi_engine.compute_hsi(house.id)

    snapshot = history_service.take_manual_snapshot(house.id, note="support review")

    assert snapshot.snapshot_type == "manual"
    assert snapshot.hsi_score == 50
    assert snapshot.meta["note"] == "support review"
    assert len(history_service.get_risk_history(house.id)) == 2


def test_manual_snapshot_requires_scored_house(factory, history_service):
    house = factory.house()

    with pytest.raises(HSINotComputedError):
        history_service.take_manual_snapshot(house.id)


def test_manual_snapshot_for_unknown_house(db, history_service):
    with pytest.raises(HouseNotFoundError):
        history_service.take_manual_snapshot(9999)
