# plantid/core/config.py
from __future__ import annotations

import json
import os
from functools import lru_cache
from typing import Any, Dict, List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# 模型偶爾會忽略「用指定語言回覆」的要求，直接回英文的預設錯誤句；
# 這裡保存「標準英文句 → 在地化句」的對照表，可用 FALLBACK_MESSAGES 覆寫。
DEFAULT_FALLBACK_MESSAGES: Dict[str, str] = {
    "The image may not contain a recognizable plant or fruit, or the quality is too low.":
        "ຮູບພາບອາດຈະບໍ່ມີພືດ ຫຼື ໝາກໄມ້ທີ່ສາມາດກວດສອບໄດ້, ຫຼື ຄຸນນະພາບຂອງຮູບຕ່ຳເກີນໄປ.",
}


class Settings(BaseSettings):
    # === App Info ===
    APP_NAME: str = "Plant & Fruit Identifier API"
    API_V1_PREFIX: str = "/api/v1"
    ENV: str = os.getenv("ENV", "dev")
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # === CORS ===
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors(cls, v: Any) -> List[str]:
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("["):
                return [x.strip() for x in json.loads(s)]
            return [x.strip() for x in s.split(",") if x.strip()]
        return v

    # === Gemini ===
    # 未設定時服務仍可啟動，/identify 會回 500 Configuration Error
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_TEMPERATURE: float = 0.5
    RESULT_LANGUAGE: str = "Lao"

    FALLBACK_MESSAGES: Dict[str, str] = DEFAULT_FALLBACK_MESSAGES

    @field_validator("GEMINI_API_KEY", mode="before")
    @classmethod
    def _blank_key_is_missing(cls, v: Any) -> Optional[str]:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    # === Client（proxy 模式）===
    PROXY_ENDPOINT_URL: str = "http://localhost:8000/api/v1/identify"
    # None = 不設逾時
    PROXY_TIMEOUT_SEC: Optional[float] = None

    # === Observability（Sentry / Monitoring） ===
    SENTRY_DSN: Optional[str] = None
    SENTRY_ENV: str = os.getenv("SENTRY_ENV", "dev")
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
