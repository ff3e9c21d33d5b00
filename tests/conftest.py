"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from house_risk.api.main import create_app
from house_risk.domain.models import ChargeRecord
from house_risk.infrastructure.database.locks import HouseLockRegistry
from house_risk.infrastructure.database.models import Base, Bill, Charge, House, HouseStatusIndex, User
from house_risk.services.advance_service import AdvanceService
from house_risk.services.hsi_engine import HSIEngine
from house_risk.services.risk_history import RiskHistoryService


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Wednesday in a non-quarter-end month, not the first Friday
NOW = datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return NOW


class StubNotifier:
    """Records group warnings instead of delivering them"""

    def __init__(self):
        self.calls = []

    def notify_house(self, house_id, user_ids, title, message, data):
        self.calls.append({"house_id": house_id, "user_ids": user_ids, "title": title, "message": message, "data": data})


class Factory:
    """Builds committed rows so services opening their own sessions can see them"""

    def __init__(self, db: Session):
        self.db = db

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def house(self, name: str = "Maple St") -> House:
        return self._save(House(name=name))

    def user(self, house: House, username: str = "roommate") -> User:
        return self._save(User(house_id=house.id, username=username, email=f"{username}@example.com"))

    def bill(self, house: House, amount: str = "100.00", name: str = "Electric") -> Bill:
        return self._save(Bill(house_id=house.id, name=name, amount=Decimal(amount)))

    def charge(
        self,
        bill: Bill,
        user: User,
        amount: str,
        status: str = "unpaid",
        due_days_ago: int = 0,
        created_days_ago: int = 1,
        advanced: bool = False,
    ) -> Charge:
        return self._save(
            Charge(
                bill_id=bill.id,
                user_id=user.id,
                name=bill.name,
                amount=Decimal(amount),
                status=status,
                due_date=NOW - timedelta(days=due_days_ago),
                created_at=NOW - timedelta(days=created_days_ago),
                advanced=advanced,
                advanced_at=NOW if advanced else None,
            )
        )

    def hsi_row(self, house: House, score: int) -> HouseStatusIndex:
        return self._save(
            HouseStatusIndex(
                house_id=house.id,
                score=score,
                bracket=score // 10,
                fee_multiplier=1 + (Decimal(50) - score) / 250,
                credit_multiplier=Decimal(score) / 50,
                updated_reason="seeded",
            )
        )


def make_charge(
    user_id: int,
    amount: str,
    status: str = "paid",
    due_days_ago: int = 0,
    created_days_ago: int = 1,
    charge_id: int = 0,
) -> ChargeRecord:
    return ChargeRecord(
        id=charge_id,
        user_id=user_id,
        amount=Decimal(amount),
        status=status,
        due_date=NOW - timedelta(days=due_days_ago),
        created_at=NOW - timedelta(days=created_days_ago),
    )


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def factory(db: Session) -> Factory:
    return Factory(db)


@pytest.fixture
def notifier() -> StubNotifier:
    return StubNotifier()


@pytest.fixture
def hsi_engine(db: Session, notifier: StubNotifier) -> HSIEngine:
    return HSIEngine(
        session_factory=TestingSessionLocal,
        notifier=notifier,
        locks=HouseLockRegistry(),
        clock=fixed_clock,
    )


@pytest.fixture
def advance_service(db: Session) -> AdvanceService:
    return AdvanceService(
        session_factory=TestingSessionLocal,
        base_allowance=100,
        drift_tolerance=0.01,
        locks=HouseLockRegistry(),
        clock=fixed_clock,
    )


@pytest.fixture
def history_service(db: Session) -> RiskHistoryService:
    return RiskHistoryService(session_factory=TestingSessionLocal, clock=fixed_clock)


@pytest.fixture
def client(db: Session, notifier: StubNotifier) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app(session_factory=TestingSessionLocal, notifier=notifier)
    app.state.hsi_engine.clock = fixed_clock
    app.state.advance_service.clock = fixed_clock
    app.state.history_service.clock = fixed_clock
    return TestClient(app)
