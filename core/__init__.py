"""
核心業務邏輯層

這個 package 包含所有會改變 Raffle 狀態的邏輯，包括：
- 狀態機：集中管理 OPEN / CALCULATING 轉換
- Manager：報名、upkeep、隨機數 callback 與結算
- Config：依部署目標解析不可變設定
- Locks：並發控制工具
- Automation：定期觸發 upkeep
"""
