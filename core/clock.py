"""
時間來源

所有 Raffle 時間戳記都是 Unix 秒（整數），對應 block.timestamp
測試時 monkeypatch core.clock.now 即可控制時間
"""
import time


def now() -> int:
    return int(time.time())
