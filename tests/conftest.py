"""
共用 fixtures：in-memory SQLite、可控制的時鐘、已部署的 Raffle
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401  註冊所有 table
from database import Base, get_db
from core import clock
from core.config import get_network_config
from core.raffle_manager import RaffleManager
from services.payout_service import PayoutGateway
from services.vrf_coordinator import VRFCoordinator

START_TIME = 1_700_000_000
ENTRANCE_FEE = get_network_config("local").entrance_fee
INTERVAL = get_network_config("local").interval

PLAYER = "0x0000000000000000000000000000000000000001"


class FakeClock:
    """取代 core.clock.now，測試可以快轉時間"""

    def __init__(self, start: int):
        self.current = start

    def __call__(self) -> int:
        return self.current

    def advance(self, seconds: int) -> None:
        self.current += seconds


class FailingPayoutGateway(PayoutGateway):
    """轉帳永遠失敗"""

    def __init__(self):
        self.attempts = []

    def send(self, db, raffle_id, recipient, amount):
        self.attempts.append((recipient, amount))
        return False


def player_address(n: int) -> str:
    return "0x" + f"{n:040x}"


@pytest.fixture
def fake_clock(monkeypatch):
    fc = FakeClock(START_TIME)
    monkeypatch.setattr(clock, "now", fc)
    return fc


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def raffle_id(db, fake_clock):
    return RaffleManager.deploy(db, get_network_config("local")).id


@pytest.fixture
def coordinator():
    return VRFCoordinator()


@pytest.fixture
def entered_raffle(db, raffle_id):
    """已有一位參加者的 Raffle"""
    RaffleManager.enter(db, raffle_id, PLAYER, ENTRANCE_FEE)
    return raffle_id


@pytest.fixture
def calculating_raffle(db, entered_raffle, fake_clock):
    """
    已開始抽獎（CALCULATING）的 Raffle

    返回：
        (raffle_id, request_id)
    """
    fake_clock.advance(INTERVAL + 1)
    request_id = RaffleManager.perform_upkeep(db, entered_raffle)
    return entered_raffle, request_id


@pytest.fixture
def client(session_factory):
    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
