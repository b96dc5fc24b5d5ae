"""
服務層

這個 package 包含純計算邏輯與外部邊界，不負責狀態轉換：
- UpkeepService：upkeep 條件判斷
- SettlementService：得主選擇
- PayoutService：派彩
- VRFCoordinator：隨機數 request / callback
- EventService：事件紀錄
"""
