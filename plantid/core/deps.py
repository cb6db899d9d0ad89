# plantid/core/deps.py
from typing import Callable, Mapping, Optional

from fastapi import Depends

from plantid.core.config import Settings, get_settings
from plantid.services.gemini import GeminiConfig, GeminiModel, get_model_for


def get_gemini_config(s: Settings = Depends(get_settings)) -> Optional[GeminiConfig]:
    """
    從 Settings 組出 GeminiConfig；沒有金鑰時回 None。
    endpoint 依此決定是否回 500 Configuration Error。
    """
    return GeminiConfig.from_settings(s)


def get_model_factory() -> Callable[[GeminiConfig], GeminiModel]:
    """回傳 config → GeminiModel 的工廠；測試時以 dependency_overrides 換成假模型。"""
    return get_model_for


def get_fallback_messages(s: Settings = Depends(get_settings)) -> Mapping[str, str]:
    return s.FALLBACK_MESSAGES
