"""
VRF Coordinator：非同步隨機數 request / callback 的 oracle 端

流程：
1. Raffle.perform_upkeep 呼叫 request_random_words() 建立 PENDING request
2. oracle（之後某個不相關的呼叫）呼叫 fulfill_random_words()
3. Coordinator 先消耗 request（FULFILLED），再呼叫 consumer 的 callback

授權檢查在這一層：
- 從未發出或已被消耗的 request -> NonexistentRequest
- consumer 不符 -> InvalidConsumer
兩者都不會改變任何狀態

Consumer callback 失敗（TransferFailed 或其他任何異常）不會往外拋：
記錄 success=False，request 仍然是已消耗，Raffle 停在 CALCULATING
"""
import hashlib
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from models import RandomnessRequest, RequestStatus
from core.exceptions import (
    RaffleException,
    NonexistentRequest,
    InvalidConsumer,
    InvalidRandomWords,
)
from core.locks import with_request_lock
from database import transactional
from services.event_service import emit_event, RANDOM_WORDS_FULFILLED

logger = logging.getLogger(__name__)


def expand_random_words(request_id: int, num_words: int) -> List[int]:
    """
    由 request id 衍生出 num_words 個 256-bit 隨機數

    word[i] = SHA-256("{request_id}:{i}") 轉成整數
    """
    return [
        int(hashlib.sha256(f"{request_id}:{i}".encode()).hexdigest(), 16)
        for i in range(num_words)
    ]


@transactional
def _consume_request(
    db: Session,
    request_id: int,
    consumer_id: int,
    override_count: Optional[int],
) -> int:
    """
    驗證並消耗 request（PENDING -> FULFILLED），獨立 commit

    返回：
        request 的 num_words
    """
    request = with_request_lock(request_id, db).first()
    if not request or request.status != RequestStatus.PENDING:
        raise NonexistentRequest(request_id)

    if request.consumer_id != consumer_id:
        raise InvalidConsumer(request_id, consumer_id)

    if override_count is not None and override_count != request.num_words:
        raise InvalidRandomWords(request_id, request.num_words, override_count)

    request.status = RequestStatus.FULFILLED
    request.fulfilled_at = datetime.now(timezone.utc)
    return request.num_words


@transactional
def _record_fulfillment(db: Session, request_id: int, consumer_id: int, success: bool) -> None:
    request = with_request_lock(request_id, db).one()
    request.success = success
    emit_event(
        db,
        consumer_id,
        RANDOM_WORDS_FULFILLED,
        {"request_id": request_id, "success": success},
    )


class VRFCoordinator:
    """本地 VRF Coordinator（狀態全部存在 randomness_requests）"""

    def request_random_words(
        self,
        db: Session,
        consumer_id: int,
        key_hash: str,
        subscription_id: int,
        request_confirmations: int,
        callback_gas_limit: int,
        num_words: int,
    ) -> int:
        """
        建立一筆 PENDING request

        注意：
            - 不 commit，與呼叫者（perform_upkeep）同一個 transaction
            - request id 從 1 開始遞增，不會重複使用

        返回：
            request id
        """
        request = RandomnessRequest(
            consumer_id=consumer_id,
            key_hash=key_hash,
            subscription_id=subscription_id,
            request_confirmations=request_confirmations,
            callback_gas_limit=callback_gas_limit,
            num_words=num_words,
            status=RequestStatus.PENDING,
        )
        db.add(request)
        db.flush()  # 取得 request.id

        logger.info(
            f"Randomness request {request.id} submitted by raffle {consumer_id} "
            f"(key_hash={key_hash}, confirmations={request_confirmations}, "
            f"gas_limit={callback_gas_limit}, num_words={num_words})"
        )
        return request.id

    def fulfill_random_words(
        self,
        db: Session,
        request_id: int,
        consumer_id: int,
        random_words: Optional[Sequence[int]] = None,
        payout_gateway=None,
    ) -> bool:
        """
        把隨機數送回 consumer（oracle callback）

        參數：
            db: SQLAlchemy Session
            request_id: 要 fulfill 的 request
            consumer_id: 收到 callback 的 Raffle ID
            random_words: 覆寫的隨機數（None 則由 request id 衍生）
            payout_gateway: 傳給 settlement 的轉帳實作

        返回：
            consumer callback 是否成功

        異常：
            NonexistentRequest: request 不存在或已被消耗
            InvalidConsumer: consumer 不符
            InvalidRandomWords: 覆寫的隨機數數量不符
        """
        from core.raffle_manager import RaffleManager  # 避免 circular import

        override_count = len(random_words) if random_words is not None else None
        num_words = _consume_request(db, request_id, consumer_id, override_count)

        if random_words is None:
            words = expand_random_words(request_id, num_words)
        else:
            words = list(random_words)

        try:
            RaffleManager.fulfill_random_words(
                db, consumer_id, request_id, words, payout_gateway=payout_gateway
            )
            success = True
        except RaffleException as e:
            logger.error(
                f"Consumer {consumer_id} failed to fulfill request {request_id}: {e}"
            )
            success = False
        except Exception as e:
            logger.error(
                f"Consumer {consumer_id} crashed while fulfilling request {request_id}: {e}",
                exc_info=True,
            )
            success = False

        _record_fulfillment(db, request_id, consumer_id, success)
        return success

    def get_request(self, db: Session, request_id: int) -> RandomnessRequest:
        request = db.query(RandomnessRequest).filter(
            RandomnessRequest.id == request_id
        ).first()
        if not request:
            raise NonexistentRequest(request_id)
        return request


def get_vrf_coordinator() -> VRFCoordinator:
    """FastAPI dependency"""
    return VRFCoordinator()
