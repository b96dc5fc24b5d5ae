"""
Oracle API Endpoints

VRF Coordinator 的對外介面：
1. 查詢隨機數 request
2. fulfill request（把隨機數送回 consumer）
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import FulfillRequest, FulfillResponse, RandomnessRequestResponse
from core.exceptions import NonexistentRequest, InvalidConsumer, InvalidRandomWords
from services.payout_service import PayoutGateway, get_payout_gateway
from services.vrf_coordinator import VRFCoordinator, get_vrf_coordinator

router = APIRouter(prefix="/api/oracle", tags=["oracle"])
logger = logging.getLogger(__name__)


@router.get("/requests/{request_id}", response_model=RandomnessRequestResponse)
def get_request(
    request_id: int,
    db: Session = Depends(get_db),
    coordinator: VRFCoordinator = Depends(get_vrf_coordinator)
):
    """取得隨機數 request（PENDING / FULFILLED）"""
    try:
        request = coordinator.get_request(db, request_id)
        return RandomnessRequestResponse.model_validate(request)

    except NonexistentRequest as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to get request: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/requests/{request_id}/fulfill", response_model=FulfillResponse)
def fulfill_request(
    request_id: int,
    fulfill_data: FulfillRequest,
    db: Session = Depends(get_db),
    coordinator: VRFCoordinator = Depends(get_vrf_coordinator),
    payout_gateway: PayoutGateway = Depends(get_payout_gateway)
):
    """
    Fulfill 一個隨機數 request（oracle callback）

    拒絕（不改變任何狀態）：
    - request 從未發出或已被 fulfill -> 404
    - consumer 不符 / 隨機數數量不符 -> 400

    Consumer 結算失敗（例如派彩失敗）時仍回傳 200，success=False：
    request 已被消耗，Raffle 維持 CALCULATING
    """
    try:
        success = coordinator.fulfill_random_words(
            db,
            request_id,
            fulfill_data.consumer_id,
            fulfill_data.random_words,
            payout_gateway=payout_gateway
        )
        return FulfillResponse(request_id=request_id, success=success)

    except NonexistentRequest as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (InvalidConsumer, InvalidRandomWords) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to fulfill request: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal error")
