"""
結算服務：從隨機數選出得主

純計算邏輯，不負責狀態轉換與派彩（由 RaffleManager 負責）
"""
from typing import Sequence


def pick_winner_index(random_word: int, num_players: int) -> int:
    """
    得主索引 = random_word mod 參加人數

    每一筆報名都是一個機會，同一個地址報名多次就有多個機會

    參數：
        random_word: oracle 回傳的第一個隨機數（>= 256 bits）
        num_players: 參加人數（含重複報名）

    返回：
        0 <= index < num_players

    異常：
        ValueError: 沒有參加者
    """
    if num_players <= 0:
        raise ValueError("Cannot pick a winner without players")
    return random_word % num_players


def pick_winner(random_words: Sequence[int], players: Sequence[str]) -> str:
    """
    依照 random_words[0] 從參加者名單中選出得主

    範例：
        pick_winner([7], ["a", "b", "c", "d"]) -> "d"   # 7 % 4 == 3
    """
    if not random_words:
        raise ValueError("No random words delivered")
    return players[pick_winner_index(random_words[0], len(players))]
