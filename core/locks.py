"""
並發控制工具

提供 Database-level 的鎖定機制，讓每個外部入口對同一個 Raffle 串行執行

主要使用 PostgreSQL 的 SELECT ... FOR UPDATE 來實現悲觀鎖（Pessimistic Locking）
（SQLite 會忽略 FOR UPDATE，本身的寫入鎖已經是串行的）
"""
from sqlalchemy.orm import Session, Query

from models import Raffle, RandomnessRequest


def with_raffle_lock(raffle_id: int, db: Session) -> Query:
    """
    鎖定一個 Raffle（行級鎖）

    使用場景：
    - enter：檢查 state 並寫入參加者名單
    - perform_upkeep：重新檢查 upkeep 條件並轉換狀態
    - fulfill_random_words：結算、派彩、重新開放

    範例：
        raffle = with_raffle_lock(raffle_id, db).first()
        if not raffle:
            raise RaffleNotFound(raffle_id)
        raffle.state = RaffleState.CALCULATING

    參數：
        raffle_id: Raffle ID
        db: SQLAlchemy Session

    返回：
        Query object（需要呼叫 .first() 或 .one() 來取得結果）

    注意：
        - nowait=False 表示如果鎖被佔用，會等待
        - 必須在 transaction 內使用（確保有 commit 或 rollback）
    """
    return db.query(Raffle).filter(
        Raffle.id == raffle_id
    ).with_for_update(nowait=False)


def with_request_lock(request_id: int, db: Session) -> Query:
    """
    鎖定一個 RandomnessRequest（行級鎖）

    使用場景：
    - Coordinator 消耗 request 時，防止同一個 request 被 fulfill 兩次
    """
    return db.query(RandomnessRequest).filter(
        RandomnessRequest.id == request_id
    ).with_for_update(nowait=False)
