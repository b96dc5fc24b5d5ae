from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings
from functools import lru_cache, wraps
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./raffle.db"
    log_level: str = "INFO"

    # 部署目標（local / sepolia），決定 Raffle 參數的預設值
    raffle_network: str = "local"

    # 個別參數覆寫（None 表示沿用 network 預設值）
    raffle_entrance_fee: Optional[int] = None
    raffle_interval: Optional[int] = None
    raffle_vrf_coordinator: Optional[str] = None
    raffle_gas_lane: Optional[str] = None
    raffle_subscription_id: Optional[int] = None
    raffle_callback_gas_limit: Optional[int] = None

    # Automation trigger
    automation_enabled: bool = False
    automation_poll_seconds: float = 10.0

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()

# SQLite 需要特殊設定：connect_args={"check_same_thread": False}
# 這允許多執行緒存取同一個 SQLite 連線（FastAPI 的多執行緒環境需要）
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
    pool_pre_ping=True
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    FastAPI dependency：提供 Database Session

    使用 yield 確保 session 在請求結束後會被關閉
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def transactional(func):
    """
    Transaction decorator：確保資料庫操作的原子性

    Raffle 的每個外部入口（enter / perform_upkeep / fulfill_random_words）
    都包在一個 transaction 內執行，等同合約「整筆呼叫成功或整筆 revert」。

    使用方式：
        @transactional
        def some_business_logic(db: Session, ...):
            raffle = ...
            raffle.balance += payment
            # 不需要手動 commit，decorator 會處理

    如果函式內發生異常：
        - 自動 rollback（沒有任何部分狀態會留下）
        - 異常會被重新拋出（讓上層處理）

    注意：
        - 第一個參數必須是 db: Session
        - 不要在函式內手動 commit（decorator 會處理）
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        # 找出 db session（可能在 args 或 kwargs）
        db = None
        if args and isinstance(args[0], Session):
            db = args[0]
        elif 'db' in kwargs:
            db = kwargs['db']

        if db is None:
            raise ValueError(
                f"@transactional requires 'db: Session' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except Exception as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise

    return wrapper
