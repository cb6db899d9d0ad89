# plantid/services/gemini.py
"""
Gemini 模型呼叫層（google-genai SDK）。

- GeminiConfig：呼叫模型所需的設定（金鑰、模型名、溫度、回覆語言），建構時即驗證
- GeminiModel.generate(image)：送出「圖片 + 固定 prompt」，回傳模型的原始文字
- build_identify_prompt(language)：產生要求固定 JSON 結構的 prompt
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from google import genai
from google.genai import types
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

from plantid.core.config import Settings


class ConfigurationError(RuntimeError):
    """伺服器端 / 本機沒有設定 GEMINI_API_KEY。"""


class ModelResponseError(RuntimeError):
    """模型回應格式不對（例如沒有文字內容）。"""


class GeminiConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_key: str
    model: str = "gemini-2.5-flash"
    temperature: float = Field(0.5, ge=0.0, le=2.0)
    language: str = "Lao"

    @field_validator("api_key")
    @classmethod
    def _key_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("api_key is empty")
        return v

    @classmethod
    def from_settings(cls, s: Settings) -> Optional["GeminiConfig"]:
        """沒有金鑰時回 None，由呼叫端決定要回 500 還是拋 ConfigurationError。"""
        if not s.GEMINI_API_KEY:
            return None
        return cls(
            api_key=s.GEMINI_API_KEY,
            model=s.GEMINI_MODEL,
            temperature=s.GEMINI_TEMPERATURE,
            language=s.RESULT_LANGUAGE,
        )


def build_identify_prompt(language: str) -> str:
    return f"""Identify the plant or fruit in this image.
Respond in JSON format. The JSON keys MUST be in English as specified below.
IMPORTANT: The values for 'name', 'description', 'edible', and 'origin' MUST be in {language}. The 'scientific_name' should be the standard scientific term.
The JSON structure is:
{{
  "name": "Common name, in {language}",
  "scientific_name": "Scientific Name (if known, otherwise skip, do not translate this field)",
  "description": "Short description in {language} (2-4 sentences, including visual characteristics, common uses, or interesting facts)",
  "edible": "Edibility information in {language} (e.g. 'Edible', 'Not edible', 'Partially edible', 'Poisonous', 'Unknown')",
  "origin": "Geographic origin or common growing region in {language} (if known, otherwise skip)"
}}.
If unsure or if it's not a plant/fruit, return JSON with 'error' and 'message' fields, where the 'message' value MUST be in {language}:
{{"error": "Unable to identify", "message": "The image may not contain a recognizable plant or fruit, or the quality is too low."}}.
Focus on being informative and concise. All specified textual values must be in {language}, except for scientific_name."""


class GeminiModel:
    """對 google-genai async client 的薄包裝；每個 GeminiConfig 共用一個 client。"""

    def __init__(self, config: GeminiConfig, client: Optional[genai.Client] = None):
        self.config = config
        self._client = client or genai.Client(api_key=config.api_key)
        self._prompt = build_identify_prompt(config.language)

    async def generate(self, image_bytes: bytes, mime_type: str) -> str:
        logger.info("Calling Gemini model={} mime={} size={}B", self.config.model, mime_type, len(image_bytes))
        response = await self._client.aio.models.generate_content(
            model=self.config.model,
            contents=[
                types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                self._prompt,
            ],
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                temperature=self.config.temperature,
            ),
        )
        text = response.text
        if not isinstance(text, str):
            logger.error("Gemini response text is missing: {!r}", text)
            raise ModelResponseError("Invalid response format from AI: Text content is not a string.")
        return text


@lru_cache(maxsize=8)
def get_model_for(config: GeminiConfig) -> GeminiModel:
    return GeminiModel(config)
