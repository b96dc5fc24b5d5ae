"""
Automation Trigger：定期輪詢 upkeep 條件，成立時執行 perform_upkeep

對 Raffle 來說這是外部 actor，只使用公開的 check_upkeep / perform_upkeep
"""
import asyncio
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from core.raffle_manager import RaffleManager
from core.exceptions import UpkeepNotNeeded

logger = logging.getLogger(__name__)


def run_upkeep_cycle(db: Session, raffle_id: int) -> Optional[int]:
    """
    執行一次輪詢

    流程：
    1. check_upkeep()（唯讀）
    2. 條件成立則 perform_upkeep()

    返回：
        新的 request id；條件不成立則為 None

    注意：
        check 與 perform 之間狀態可能被其他呼叫改變，
        perform_upkeep 會重新檢查並拋出 UpkeepNotNeeded，這裡視為本次不需要
    """
    upkeep_needed, perform_data = RaffleManager.check_upkeep(db, raffle_id)
    if not upkeep_needed:
        logger.debug(f"Upkeep not needed for raffle {raffle_id}")
        return None

    try:
        return RaffleManager.perform_upkeep(db, raffle_id, perform_data)
    except UpkeepNotNeeded as e:
        logger.warning(f"Upkeep for raffle {raffle_id} lost the race: {e}")
        return None


async def automation_loop(
    session_factory: Callable[[], Session],
    raffle_id: int,
    poll_seconds: float,
) -> None:
    """
    背景輪詢迴圈（由 FastAPI lifespan 啟動，shutdown 時 cancel）

    每次輪詢使用新的 session，輪詢失敗只記錄錯誤、不中斷迴圈
    """
    def poll_once():
        db = session_factory()
        try:
            return run_upkeep_cycle(db, raffle_id)
        finally:
            db.close()

    logger.info(f"Automation started for raffle {raffle_id} (every {poll_seconds}s)")
    while True:
        try:
            # DB 呼叫是同步的，在 thread 內執行
            request_id = await asyncio.to_thread(poll_once)
            if request_id is not None:
                logger.info(f"Automation performed upkeep for raffle {raffle_id} (request={request_id})")
        except Exception as e:
            logger.error(f"Automation cycle failed for raffle {raffle_id}: {e}", exc_info=True)

        await asyncio.sleep(poll_seconds)
