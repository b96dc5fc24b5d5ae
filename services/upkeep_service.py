"""
Upkeep 判斷服務：決定是否可以開始抽獎

純計算邏輯，不負責狀態轉換（由 RaffleManager 負責）
"""
from typing import Tuple

from models import Raffle, RaffleState

PERFORM_DATA = b""


def evaluate_upkeep(
    state: RaffleState,
    last_timestamp: int,
    interval: int,
    balance: int,
    num_players: int,
    now: int,
) -> bool:
    """
    Upkeep 條件（四個條件全部成立才回傳 True）

    規則：
    1. 距離上次抽獎已經過 interval 秒以上
    2. Raffle 狀態是 OPEN
    3. 獎池 > 0
    4. 至少有一位參加者

    範例：
        evaluate_upkeep(OPEN, 1000, 30, 10**16, 1, 1030) -> True
        evaluate_upkeep(OPEN, 1000, 30, 10**16, 1, 1029) -> False
        evaluate_upkeep(CALCULATING, 1000, 30, 10**16, 1, 2000) -> False
    """
    time_has_passed = (now - last_timestamp) >= interval
    is_open = state == RaffleState.OPEN
    has_balance = balance > 0
    has_players = num_players > 0
    return time_has_passed and is_open and has_balance and has_players


def check_upkeep(raffle: Raffle, num_players: int, now: int) -> Tuple[bool, bytes]:
    """
    對一個 Raffle 評估 upkeep 條件

    唯讀：不修改 raffle，可以被 automation trigger 隨時輪詢

    參數：
        raffle: Raffle
        num_players: 目前參加人數
        now: 目前時間（Unix 秒）

    返回：
        (upkeep_needed, perform_data)，perform_data 固定為空 bytes
    """
    upkeep_needed = evaluate_upkeep(
        raffle.state,
        raffle.last_timestamp,
        raffle.interval,
        raffle.balance,
        num_players,
        now,
    )
    return upkeep_needed, PERFORM_DATA
