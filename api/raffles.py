"""
Raffle API Endpoints

職責：
1. 報名
2. Upkeep 查詢與執行（automation trigger 使用）
3. 查詢 Raffle 狀態、參加者、事件與派彩
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import (
    RaffleResponse,
    EnterRequest,
    EnterResponse,
    PlayerResponse,
    CheckUpkeepResponse,
    PerformUpkeepRequest,
    PerformUpkeepResponse,
    EventResponse,
    PayoutTotalResponse,
)
from core.raffle_manager import RaffleManager
from core.exceptions import (
    RaffleNotFound,
    NotEnoughPaid,
    RaffleNotOpen,
    PlayerNotFound,
    UpkeepNotNeeded,
)
from services.event_service import list_events
from services.payout_service import get_total_received
from services.vrf_coordinator import VRFCoordinator, get_vrf_coordinator

router = APIRouter(prefix="/api/raffles", tags=["raffles"])
logger = logging.getLogger(__name__)


def _to_hex(data: bytes) -> str:
    return "0x" + data.hex()


def _from_hex(value: str) -> bytes:
    value = value[2:] if value.startswith("0x") else value
    return bytes.fromhex(value)


@router.get("/{raffle_id}", response_model=RaffleResponse)
def get_raffle(raffle_id: int, db: Session = Depends(get_db)):
    """
    取得 Raffle 的所有查詢值

    返回：
        - 部署設定（entrance_fee, interval, ...）
        - state / balance / last_timestamp / recent_winner
        - number_of_players
    """
    try:
        raffle = RaffleManager.get_raffle(db, raffle_id)
        number_of_players = RaffleManager.get_number_of_players(db, raffle_id)
        return RaffleResponse.model_validate(raffle).model_copy(
            update={"number_of_players": number_of_players}
        )

    except RaffleNotFound:
        raise HTTPException(status_code=404, detail="Raffle not found")
    except Exception as e:
        logger.error(f"Failed to get raffle: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{raffle_id}/enter", response_model=EnterResponse)
def enter_raffle(raffle_id: int, enter_data: EnterRequest, db: Session = Depends(get_db)):
    """
    報名目前回合

    前置條件：
    - Raffle 狀態必須是 OPEN
    - payment >= entrance_fee（超付不退還）
    """
    try:
        RaffleManager.enter(db, raffle_id, enter_data.player, enter_data.payment)
        raffle = RaffleManager.get_raffle(db, raffle_id)

        return EnterResponse(
            raffle_id=raffle_id,
            player=enter_data.player,
            number_of_players=RaffleManager.get_number_of_players(db, raffle_id),
            balance=raffle.balance
        )

    except RaffleNotFound:
        raise HTTPException(status_code=404, detail="Raffle not found")
    except (NotEnoughPaid, RaffleNotOpen) as e:
        raise HTTPException(
            status_code=400,
            detail={"error": type(e).__name__, "message": str(e)}
        )
    except Exception as e:
        logger.error(f"Failed to enter raffle: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{raffle_id}/players/{index}", response_model=PlayerResponse)
def get_player(raffle_id: int, index: int, db: Session = Depends(get_db)):
    """取得第 index 位參加者（依報名順序，從 0 開始）"""
    try:
        RaffleManager.get_raffle(db, raffle_id)
        player = RaffleManager.get_player(db, raffle_id, index)
        return PlayerResponse(index=index, player=player)

    except (RaffleNotFound, PlayerNotFound) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to get player: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{raffle_id}/upkeep", response_model=CheckUpkeepResponse)
def check_upkeep(raffle_id: int, db: Session = Depends(get_db)):
    """
    檢查是否需要執行 upkeep（唯讀，可隨時輪詢）
    """
    try:
        upkeep_needed, perform_data = RaffleManager.check_upkeep(db, raffle_id)
        return CheckUpkeepResponse(
            upkeep_needed=upkeep_needed,
            perform_data=_to_hex(perform_data)
        )

    except RaffleNotFound:
        raise HTTPException(status_code=404, detail="Raffle not found")
    except Exception as e:
        logger.error(f"Failed to check upkeep: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{raffle_id}/upkeep", response_model=PerformUpkeepResponse)
def perform_upkeep(
    raffle_id: int,
    upkeep_data: Optional[PerformUpkeepRequest] = None,
    db: Session = Depends(get_db),
    coordinator: VRFCoordinator = Depends(get_vrf_coordinator)
):
    """
    執行 upkeep（狀態轉換 OPEN -> CALCULATING）並送出隨機數 request

    失敗時 detail 附帶 balance / num_players / raffle_state
    """
    try:
        perform_data = _from_hex(upkeep_data.perform_data) if upkeep_data else b""
        request_id = RaffleManager.perform_upkeep(
            db, raffle_id, perform_data, coordinator=coordinator
        )
        return PerformUpkeepResponse(request_id=request_id)

    except RaffleNotFound:
        raise HTTPException(status_code=404, detail="Raffle not found")
    except UpkeepNotNeeded as e:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "UpkeepNotNeeded",
                "message": str(e),
                "balance": e.balance,
                "num_players": e.num_players,
                "raffle_state": e.raffle_state.value,
            }
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid perform_data: {e}")
    except Exception as e:
        logger.error(f"Failed to perform upkeep: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{raffle_id}/events", response_model=List[EventResponse])
def get_events(
    raffle_id: int,
    event_type: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    """
    取得 Raffle 的事件紀錄（依發生順序）

    參數：
        event_type: 只取某種事件（例如 WINNER_PICKED）
    """
    try:
        RaffleManager.get_raffle(db, raffle_id)
        return [
            EventResponse.model_validate(event)
            for event in list_events(db, raffle_id, event_type)
        ]

    except RaffleNotFound:
        raise HTTPException(status_code=404, detail="Raffle not found")
    except Exception as e:
        logger.error(f"Failed to list events: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{raffle_id}/payouts/{recipient}", response_model=PayoutTotalResponse)
def get_payout_total(raffle_id: int, recipient: str, db: Session = Depends(get_db)):
    """取得一個地址收到的派彩總額"""
    try:
        RaffleManager.get_raffle(db, raffle_id)
        return PayoutTotalResponse(
            recipient=recipient,
            total_received=get_total_received(db, recipient, raffle_id=raffle_id)
        )

    except RaffleNotFound:
        raise HTTPException(status_code=404, detail="Raffle not found")
    except Exception as e:
        logger.error(f"Failed to get payouts: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
