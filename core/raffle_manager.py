"""
Raffle Manager：管理 Raffle 的完整生命週期

職責：
1. 部署 Raffle（載入不可變設定）
2. 報名（Enrollment Ledger）
3. Upkeep 判斷與執行（Round Controller）
4. 隨機數 callback 與結算（Settlement）
5. 查詢 Raffle 資訊

並發原則：
- 每個外部入口都是一個 transaction，並鎖定 Raffle row
- CALCULATING 狀態同時擋住報名與重複抽獎，是唯一的並發控制
"""
from sqlalchemy.orm import Session
from typing import List, Optional, Sequence, Tuple
import logging

from models import Raffle, Entry, RaffleState
from core import clock
from core.config import RaffleConfig
from core.state_machine import RaffleStateMachine
from core.locks import with_raffle_lock
from core.exceptions import (
    RaffleNotFound,
    NotEnoughPaid,
    RaffleNotOpen,
    PlayerNotFound,
    UpkeepNotNeeded,
    NoParticipants,
    TransferFailed,
)
from services.upkeep_service import check_upkeep as evaluate_raffle_upkeep
from services.settlement_service import pick_winner
from services.payout_service import LedgerPayoutGateway
from services.vrf_coordinator import VRFCoordinator
from services.event_service import (
    emit_event,
    RAFFLE_ENTERED,
    REQUESTED_RAFFLE_WINNER,
    WINNER_PICKED,
)
from database import transactional

logger = logging.getLogger(__name__)


class RaffleManager:
    """Raffle 生命週期管理器"""

    @staticmethod
    @transactional
    def deploy(db: Session, config: RaffleConfig) -> Raffle:
        """
        部署新的 Raffle

        初始狀態：
        - state = OPEN
        - balance = 0
        - last_timestamp = 部署時間

        參數：
            db: SQLAlchemy Session
            config: 已解析的 RaffleConfig（部署後不再變動）

        返回：
            新的 Raffle
        """
        raffle = Raffle(
            network=config.network,
            entrance_fee=config.entrance_fee,
            interval=config.interval,
            vrf_coordinator=config.vrf_coordinator,
            gas_lane=config.gas_lane,
            subscription_id=config.subscription_id,
            callback_gas_limit=config.callback_gas_limit,
            request_confirmations=config.request_confirmations,
            num_words=config.num_words,
            state=RaffleState.OPEN,
            balance=0,
            last_timestamp=clock.now(),
        )
        db.add(raffle)
        db.flush()  # 取得 raffle.id

        logger.info(
            f"Deployed raffle {raffle.id} on {config.network} "
            f"(entrance_fee={config.entrance_fee}, interval={config.interval})"
        )
        return raffle

    @staticmethod
    @transactional
    def enter(db: Session, raffle_id: int, player: str, payment: int) -> Entry:
        """
        報名目前回合

        前置條件：
        1. Raffle 必須存在
        2. Raffle 狀態必須是 OPEN（CALCULATING 時不論付多少都拒絕）
        3. payment >= entrance_fee

        效果：
        - 參加者名單新增一筆（同一地址可以報名多次）
        - 獎池增加 payment（超付的部分不退還）
        - 記錄 RAFFLE_ENTERED 事件

        異常：
            RaffleNotFound: Raffle 不存在
            RaffleNotOpen: Raffle 正在抽獎
            NotEnoughPaid: 付款不足
        """
        raffle = with_raffle_lock(raffle_id, db).first()
        if not raffle:
            raise RaffleNotFound(raffle_id)

        if raffle.state != RaffleState.OPEN:
            raise RaffleNotOpen(raffle.state)

        if payment < raffle.entrance_fee:
            raise NotEnoughPaid(payment, raffle.entrance_fee)

        entry = Entry(raffle_id=raffle.id, player=player, amount=payment)
        db.add(entry)
        raffle.balance += payment

        emit_event(db, raffle.id, RAFFLE_ENTERED, {"player": player})
        logger.info(f"Player {player} entered raffle {raffle.id} with {payment}")
        return entry

    @staticmethod
    def check_upkeep(db: Session, raffle_id: int) -> Tuple[bool, bytes]:
        """
        檢查是否需要執行 upkeep（唯讀）

        返回：
            (upkeep_needed, perform_data)
        """
        raffle = RaffleManager.get_raffle(db, raffle_id)
        num_players = RaffleManager.get_number_of_players(db, raffle_id)
        return evaluate_raffle_upkeep(raffle, num_players, clock.now())

    @staticmethod
    @transactional
    def perform_upkeep(
        db: Session,
        raffle_id: int,
        perform_data: bytes = b"",
        coordinator: Optional[VRFCoordinator] = None,
    ) -> int:
        """
        開始抽獎（狀態轉換 OPEN -> CALCULATING）並送出隨機數 request

        流程：
        1. 鎖定 Raffle，重新評估 upkeep 條件
        2. 透過 StateMachine 轉換狀態
        3. 向 VRF Coordinator 送出 request
        4. 記錄 pending request 與 REQUESTED_RAFFLE_WINNER 事件

        參數：
            perform_data: automation 傳入的資料（不使用）
            coordinator: VRF Coordinator（預設為本地實作）

        返回：
            request id

        異常：
            RaffleNotFound: Raffle 不存在
            UpkeepNotNeeded: 條件不成立（附 balance, num_players, raffle_state）
        """
        coordinator = coordinator or VRFCoordinator()

        raffle = with_raffle_lock(raffle_id, db).first()
        if not raffle:
            raise RaffleNotFound(raffle_id)

        num_players = RaffleManager.get_number_of_players(db, raffle_id)
        upkeep_needed, _ = evaluate_raffle_upkeep(raffle, num_players, clock.now())
        if not upkeep_needed:
            raise UpkeepNotNeeded(raffle.balance, num_players, raffle.state)

        RaffleStateMachine.transition(raffle, RaffleState.CALCULATING, db)

        request_id = coordinator.request_random_words(
            db,
            consumer_id=raffle.id,
            key_hash=raffle.gas_lane,
            subscription_id=raffle.subscription_id,
            request_confirmations=raffle.request_confirmations,
            callback_gas_limit=raffle.callback_gas_limit,
            num_words=raffle.num_words,
        )
        raffle.pending_request_id = request_id

        emit_event(db, raffle.id, REQUESTED_RAFFLE_WINNER, {"request_id": request_id})
        logger.info(
            f"Raffle {raffle.id} requested a winner with {num_players} players "
            f"(request={request_id})"
        )
        return request_id

    @staticmethod
    @transactional
    def fulfill_random_words(
        db: Session,
        raffle_id: int,
        request_id: int,
        random_words: Sequence[int],
        payout_gateway=None,
    ) -> str:
        """
        隨機數 callback：選出得主、派彩、重新開放（CALCULATING -> OPEN）

        只能由 VRF Coordinator 呼叫（授權與 request 對應都由 Coordinator 負責，
        這裡不比對 request_id 與 pending_request_id）

        流程：
        1. winner = players[random_words[0] % 參加人數]
        2. 清空參加者名單、重設獎池、更新 last_timestamp、狀態回到 OPEN
        3. 整個獎池轉給得主

        整筆結算是一個 transaction：轉帳失敗會 rollback 所有變更，
        Raffle 維持 CALCULATING

        返回：
            得主地址

        異常：
            RaffleNotFound: Raffle 不存在
            NoParticipants: 沒有參加者
            InvalidStateTransition: Raffle 不在 CALCULATING
            TransferFailed: 派彩失敗
        """
        payout_gateway = payout_gateway or LedgerPayoutGateway()

        raffle = with_raffle_lock(raffle_id, db).first()
        if not raffle:
            raise RaffleNotFound(raffle_id)

        players = RaffleManager.get_players(db, raffle_id)
        if not players:
            raise NoParticipants(f"Raffle {raffle_id} has no players to settle")

        winner = pick_winner(random_words, players)
        prize = raffle.balance

        # 1. 結算
        raffle.recent_winner = winner
        db.query(Entry).filter(Entry.raffle_id == raffle.id).delete(
            synchronize_session=False
        )
        RaffleStateMachine.transition(raffle, RaffleState.OPEN, db)
        raffle.last_timestamp = clock.now()
        raffle.pending_request_id = None
        raffle.balance = 0

        emit_event(db, raffle.id, WINNER_PICKED, {"winner": winner})

        # 2. 派彩（失敗時整筆 rollback）
        if not payout_gateway.send(db, raffle.id, winner, prize):
            raise TransferFailed(winner, prize)

        logger.info(
            f"Raffle {raffle.id} picked winner {winner} out of {len(players)} entries "
            f"(request={request_id}, prize={prize})"
        )
        return winner

    @staticmethod
    def get_raffle(db: Session, raffle_id: int) -> Raffle:
        """
        透過 ID 取得 Raffle

        異常：
            RaffleNotFound: Raffle 不存在
        """
        raffle = db.query(Raffle).filter(Raffle.id == raffle_id).first()
        if not raffle:
            raise RaffleNotFound(raffle_id)
        return raffle

    @staticmethod
    def get_players(db: Session, raffle_id: int) -> List[str]:
        """目前回合的參加者地址（依報名順序）"""
        rows = db.query(Entry.player).filter(
            Entry.raffle_id == raffle_id
        ).order_by(Entry.id).all()
        return [row.player for row in rows]

    @staticmethod
    def get_player(db: Session, raffle_id: int, index: int) -> str:
        """
        取得第 index 位參加者

        異常：
            PlayerNotFound: index 超出範圍
        """
        if index < 0:
            raise PlayerNotFound(index)

        entry = db.query(Entry).filter(
            Entry.raffle_id == raffle_id
        ).order_by(Entry.id).offset(index).first()
        if not entry:
            raise PlayerNotFound(index)
        return entry.player

    @staticmethod
    def get_number_of_players(db: Session, raffle_id: int) -> int:
        return db.query(Entry).filter(Entry.raffle_id == raffle_id).count()
