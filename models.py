"""
資料模型（SQLAlchemy）

Raffle 的「合約 storage」全部存在這裡：
- Raffle：一次部署（不可變設定 + 回合狀態）
- Entry：目前回合的參加者名單
- RandomnessRequest：VRF Coordinator 端的請求紀錄
- Payout：派彩紀錄
- EventLog：通知事件（RAFFLE_ENTERED / REQUESTED_RAFFLE_WINNER / WINNER_PICKED ...）
"""
import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Integer,
    BigInteger,
    String,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    JSON,
)
from sqlalchemy.types import TypeDecorator

from database import Base

UINT256_MAX = 2**256 - 1


class Wei(TypeDecorator):
    """
    uint256 金額（wei），以十進位字串存放，讀出時還原成 int

    SQLite 的 INTEGER 只有 64-bit，NUMERIC 超過範圍會轉成浮點數
    """
    impl = String(78)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = int(value)
        if value < 0 or value > UINT256_MAX:
            raise ValueError(f"Amount {value} is outside the uint256 range")
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return int(value)


def _utcnow():
    return datetime.now(timezone.utc)


class RaffleState(str, enum.Enum):
    OPEN = "OPEN"
    CALCULATING = "CALCULATING"


class RequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    FULFILLED = "FULFILLED"


class Raffle(Base):
    __tablename__ = "raffles"

    id = Column(Integer, primary_key=True, index=True)

    # 部署時決定，之後不再變動
    network = Column(String, nullable=False)
    entrance_fee = Column(Wei, nullable=False)
    interval = Column(Integer, nullable=False)
    vrf_coordinator = Column(String, nullable=False)
    gas_lane = Column(String, nullable=False)
    subscription_id = Column(BigInteger, nullable=False)
    callback_gas_limit = Column(Integer, nullable=False)
    request_confirmations = Column(Integer, nullable=False, default=3)
    num_words = Column(Integer, nullable=False, default=1)

    # 回合狀態
    state = Column(Enum(RaffleState), nullable=False, default=RaffleState.OPEN)
    balance = Column(Wei, nullable=False, default=0)
    last_timestamp = Column(Integer, nullable=False)
    recent_winner = Column(String, nullable=True)
    pending_request_id = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Entry(Base):
    __tablename__ = "entries"

    id = Column(Integer, primary_key=True, index=True)
    raffle_id = Column(Integer, ForeignKey("raffles.id"), nullable=False, index=True)
    player = Column(String, nullable=False)
    amount = Column(Wei, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class RandomnessRequest(Base):
    __tablename__ = "randomness_requests"

    # sqlite_autoincrement：request id 不會被重複使用
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    consumer_id = Column(Integer, ForeignKey("raffles.id"), nullable=False, index=True)
    key_hash = Column(String, nullable=False)
    subscription_id = Column(BigInteger, nullable=False)
    request_confirmations = Column(Integer, nullable=False)
    callback_gas_limit = Column(Integer, nullable=False)
    num_words = Column(Integer, nullable=False)
    status = Column(Enum(RequestStatus), nullable=False, default=RequestStatus.PENDING)
    success = Column(Boolean, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    fulfilled_at = Column(DateTime(timezone=True), nullable=True)


class Payout(Base):
    __tablename__ = "payouts"

    id = Column(Integer, primary_key=True, index=True)
    raffle_id = Column(Integer, ForeignKey("raffles.id"), nullable=False, index=True)
    recipient = Column(String, nullable=False, index=True)
    amount = Column(Wei, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class EventLog(Base):
    __tablename__ = "event_logs"

    id = Column(Integer, primary_key=True, index=True)
    raffle_id = Column(Integer, ForeignKey("raffles.id"), nullable=False, index=True)
    event_type = Column(String, nullable=False, index=True)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
