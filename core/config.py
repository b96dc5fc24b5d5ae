"""
部署設定：依部署目標（network）決定 Raffle 的不可變參數

只在部署（RaffleManager.deploy）時解析一次，之後核心邏輯不再依 network 分支
"""
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field

from core.exceptions import UnknownNetwork
from models import UINT256_MAX

REQUEST_CONFIRMATIONS = 3
NUM_WORDS = 1

LOCAL_VRF_COORDINATOR = "local-vrf-coordinator"


class RaffleConfig(BaseModel):
    """一次部署的 Raffle 參數（immutable）"""
    model_config = ConfigDict(frozen=True)

    network: str
    entrance_fee: int = Field(..., gt=0, le=UINT256_MAX)
    interval: int = Field(..., ge=0)
    vrf_coordinator: str
    gas_lane: str
    subscription_id: int = Field(..., ge=0)
    callback_gas_limit: int = Field(..., gt=0)
    request_confirmations: int = REQUEST_CONFIRMATIONS
    num_words: int = NUM_WORDS


NETWORK_CONFIGS: Dict[str, RaffleConfig] = {
    "local": RaffleConfig(
        network="local",
        entrance_fee=10**16,  # 0.01 ether (wei)
        interval=30,
        vrf_coordinator=LOCAL_VRF_COORDINATOR,
        gas_lane="0x474e34a077df58807dbe9c96d3c009b23b3c6d0cce433e59bbf5b34f823bc56c",
        subscription_id=1,
        callback_gas_limit=500000,
    ),
    "sepolia": RaffleConfig(
        network="sepolia",
        entrance_fee=10**16,
        interval=30,
        vrf_coordinator="0x8103B0A8A00be2DDC778e6e7eaa21791Cd364625",
        gas_lane="0x474e34a077df58807dbe9c96d3c009b23b3c6d0cce433e59bbf5b34f823bc56c",
        subscription_id=0,
        callback_gas_limit=500000,
    ),
}


def get_network_config(network: str) -> RaffleConfig:
    """
    取得部署目標的預設設定

    異常：
        UnknownNetwork: 沒有這個 network 的設定
    """
    try:
        return NETWORK_CONFIGS[network.lower()]
    except KeyError:
        raise UnknownNetwork(network)


def resolve_raffle_config(settings) -> RaffleConfig:
    """
    從 Settings 解析出最終的 RaffleConfig

    流程：
    1. 依 settings.raffle_network 取得預設值
    2. 套用 settings 上非 None 的個別覆寫（raffle_entrance_fee, raffle_interval ...）

    參數：
        settings: database.Settings

    返回：
        RaffleConfig（新的 frozen instance）
    """
    base = get_network_config(settings.raffle_network)

    overrides = {
        "entrance_fee": settings.raffle_entrance_fee,
        "interval": settings.raffle_interval,
        "vrf_coordinator": settings.raffle_vrf_coordinator,
        "gas_lane": settings.raffle_gas_lane,
        "subscription_id": settings.raffle_subscription_id,
        "callback_gas_limit": settings.raffle_callback_gas_limit,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if not overrides:
        return base

    # 覆寫值同樣經過 RaffleConfig 驗證
    return RaffleConfig.model_validate({**base.model_dump(), **overrides})
