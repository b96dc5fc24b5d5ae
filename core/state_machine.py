"""
狀態機：集中管理 Raffle 的狀態轉換

OPEN --[perform_upkeep]--> CALCULATING --[fulfill_random_words]--> OPEN

沒有終止狀態，Raffle 永遠在這兩個狀態之間循環
"""
from sqlalchemy.orm import Session
import logging

from models import Raffle, RaffleState
from core.exceptions import InvalidStateTransition
from services.event_service import emit_event, RAFFLE_STATE_CHANGED

logger = logging.getLogger(__name__)


class RaffleStateMachine:
    """Raffle 狀態機"""

    TRANSITIONS = {
        RaffleState.OPEN: {RaffleState.CALCULATING},
        RaffleState.CALCULATING: {RaffleState.OPEN},
    }

    @classmethod
    def can_transition(cls, current: RaffleState, target: RaffleState) -> bool:
        return target in cls.TRANSITIONS.get(current, set())

    @classmethod
    def transition(cls, raffle: Raffle, target: RaffleState, db: Session) -> Raffle:
        """
        轉換 Raffle 狀態並記錄 RAFFLE_STATE_CHANGED 事件

        參數：
            raffle: 已鎖定的 Raffle（呼叫者負責 with_raffle_lock）
            target: 目標狀態
            db: SQLAlchemy Session

        返回：
            更新後的 Raffle

        異常：
            InvalidStateTransition: 目前狀態不能轉換到 target

        注意：
            - 不 commit（由外層 @transactional 處理）
        """
        current = raffle.state
        if not cls.can_transition(current, target):
            raise InvalidStateTransition(
                f"Raffle {raffle.id} cannot transition from {current.value} to {target.value}"
            )

        raffle.state = target
        emit_event(
            db,
            raffle.id,
            RAFFLE_STATE_CHANGED,
            {"from": current.value, "to": target.value},
        )
        logger.info(f"Raffle {raffle.id} state {current.value} -> {target.value}")
        return raffle
