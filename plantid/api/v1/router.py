# plantid/api/v1/router.py
from fastapi import APIRouter

# 匯入所有已定義的 endpoint 模組
from .endpoints import health, ping, identify

# === API v1 主路由 ===
api_router = APIRouter()

# 系統健康檢查
api_router.include_router(health.router, prefix="/health", tags=["health"])

# ping 用於連線測試
api_router.include_router(ping.router, prefix="/ping", tags=["ping"])

# 植物 / 水果辨識（伺服器代理模式）
api_router.include_router(identify.router, tags=["identify"])
