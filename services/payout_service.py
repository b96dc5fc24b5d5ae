"""
派彩服務：把獎池轉給得主

PayoutGateway 是轉帳的邊界：回傳 False 表示轉帳失敗，
呼叫者（settlement）必須把整筆結算視為失敗
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from models import Payout

logger = logging.getLogger(__name__)


class PayoutGateway:
    """轉帳介面"""

    def send(self, db: Session, raffle_id: int, recipient: str, amount: int) -> bool:
        raise NotImplementedError


class LedgerPayoutGateway(PayoutGateway):
    """
    以 Payout 紀錄作為帳本的轉帳實作

    - 寫入一筆 Payout（與結算同一個 transaction）
    - 永遠回傳 True
    """

    def send(self, db: Session, raffle_id: int, recipient: str, amount: int) -> bool:
        db.add(Payout(raffle_id=raffle_id, recipient=recipient, amount=amount))
        logger.info(f"Paid {amount} to {recipient} (raffle={raffle_id})")
        return True


def get_payout_gateway() -> PayoutGateway:
    """FastAPI dependency：預設使用帳本實作，測試可以覆寫"""
    return LedgerPayoutGateway()


def get_total_received(db: Session, recipient: str, raffle_id: Optional[int] = None) -> int:
    """
    計算一個地址收到的派彩總額

    參數：
        db: SQLAlchemy Session
        recipient: 地址
        raffle_id: 只計算某個 Raffle 的派彩（None 為全部）

    返回：
        所有 Payout 加總（沒有紀錄則為 0）
    """
    query = db.query(Payout.amount).filter(Payout.recipient == recipient)
    if raffle_id is not None:
        query = query.filter(Payout.raffle_id == raffle_id)
    # amount 存成字串，在 Python 端加總以保留 uint256 精度
    return sum(amount for (amount,) in query.all())
