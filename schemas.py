"""
API Schemas（Pydantic）

金額一律是整數（wei），隨機數可以超過 64 bits
"""
from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models import RaffleState, RequestStatus, UINT256_MAX

RandomWord = Annotated[int, Field(ge=0, le=UINT256_MAX)]


# ============ Raffle ============

class RaffleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    raffle_id: int = Field(..., validation_alias="id")
    network: str
    entrance_fee: int
    interval: int
    vrf_coordinator: str
    gas_lane: str
    subscription_id: int
    callback_gas_limit: int
    request_confirmations: int
    num_words: int
    state: RaffleState
    balance: int
    last_timestamp: int
    recent_winner: Optional[str] = None
    pending_request_id: Optional[int] = None
    number_of_players: int = 0


class EnterRequest(BaseModel):
    player: str = Field(..., min_length=1, description="Participant address")
    payment: int = Field(..., ge=0, le=UINT256_MAX, description="Amount sent (wei)")


class EnterResponse(BaseModel):
    raffle_id: int
    player: str
    number_of_players: int
    balance: int


class PlayerResponse(BaseModel):
    index: int
    player: str


class CheckUpkeepResponse(BaseModel):
    upkeep_needed: bool
    perform_data: str = "0x"


class PerformUpkeepRequest(BaseModel):
    perform_data: str = "0x"


class PerformUpkeepResponse(BaseModel):
    request_id: int


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    event_type: str
    data: Dict[str, Any]
    created_at: datetime


class PayoutTotalResponse(BaseModel):
    recipient: str
    total_received: int


# ============ Oracle ============

class FulfillRequest(BaseModel):
    consumer_id: int
    random_words: Optional[List[RandomWord]] = Field(
        None, description="Override random words; derived from the request id when omitted"
    )


class FulfillResponse(BaseModel):
    request_id: int
    success: bool


class RandomnessRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    request_id: int = Field(..., validation_alias="id")
    consumer_id: int
    key_hash: str
    subscription_id: int
    request_confirmations: int
    callback_gas_limit: int
    num_words: int
    status: RequestStatus
    success: Optional[bool] = None

