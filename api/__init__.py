"""
API 層

HTTP 路由，只負責把請求轉交給 core / services，並把異常轉成 HTTP 狀態碼
"""
