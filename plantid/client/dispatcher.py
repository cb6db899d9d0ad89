# plantid/client/dispatcher.py
"""
Request Dispatcher：把編碼後的圖片送去辨識。

兩種模式，介面相同（async identify(image) -> ApiResult），而且「永遠不拋例外」：
  - DirectDispatcher：本機直接呼叫 Gemini（需要自己的金鑰）
  - ProxyDispatcher：POST 到伺服器的 /identify，由伺服器持有金鑰
所有失敗（網路、HTTP 狀態碼、回應格式）都轉成 IdentificationError。
"""
from __future__ import annotations

import json
from typing import Mapping, Optional, Union

import httpx
from loguru import logger
from pydantic import ValidationError

from plantid.client.encoder import EncodedImage
from plantid.core.config import Settings
from plantid.schemas.identification import (
    ErrorCode,
    Identification,
    IdentificationError,
    parse_api_result,
)
from plantid.services.gemini import ConfigurationError, GeminiConfig, GeminiModel
from plantid.services.normalizer import normalize_model_output

Result = Union[Identification, IdentificationError]

UNEXPECTED_IDENTIFY_ERROR = "An unexpected error occurred during identification."
UNEXPECTED_CLIENT_ERROR = "An unexpected error occurred."


class DirectDispatcher:
    def __init__(self, model: GeminiModel, fallback_messages: Optional[Mapping[str, str]] = None):
        self.model = model
        self.fallback_messages = fallback_messages

    @classmethod
    def from_settings(cls, s: Settings) -> "DirectDispatcher":
        config = GeminiConfig.from_settings(s)
        if config is None:
            raise ConfigurationError("GEMINI_API_KEY is not configured.")
        return cls(GeminiModel(config), fallback_messages=s.FALLBACK_MESSAGES)

    async def identify(self, image: EncodedImage) -> Result:
        try:
            text = await self.model.generate(image.raw_bytes(), image.mime_type)
        except Exception as e:
            logger.exception("Error identifying image")
            detail = str(e) or UNEXPECTED_IDENTIFY_ERROR
            return IdentificationError.of(ErrorCode.API, f"API connection error: {detail}")
        return normalize_model_output(text, self.fallback_messages)


class ProxyDispatcher:
    def __init__(
        self,
        endpoint_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.endpoint_url = endpoint_url
        self._client = client
        self.timeout = timeout

    @classmethod
    def from_settings(cls, s: Settings, client: Optional[httpx.AsyncClient] = None) -> "ProxyDispatcher":
        return cls(s.PROXY_ENDPOINT_URL, client=client, timeout=s.PROXY_TIMEOUT_SEC)

    async def _post(self, image: EncodedImage) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(self.endpoint_url, json=image.to_request())
        async with httpx.AsyncClient(timeout=self.timeout) as ac:
            return await ac.post(self.endpoint_url, json=image.to_request())

    async def identify(self, image: EncodedImage) -> Result:
        try:
            resp = await self._post(image)
        except Exception as e:
            logger.warning("Proxy request failed: {!r}", e)
            return IdentificationError.of(ErrorCode.CLIENT_SIDE, str(e) or UNEXPECTED_CLIENT_ERROR)

        if not resp.is_success:
            return _error_from_failed_response(resp)

        try:
            return parse_api_result(resp.json())
        except (json.JSONDecodeError, ValidationError, ValueError) as e:
            logger.warning("Proxy returned a malformed body: {}", e)
            return IdentificationError.of(
                ErrorCode.CLIENT_SIDE, f"Malformed response from server: {e}" if str(e) else UNEXPECTED_CLIENT_ERROR
            )


def _error_from_failed_response(resp: httpx.Response) -> IdentificationError:
    """非 2xx：優先使用伺服器回的 {error, message}；解析不了就用狀態碼組訊息。"""
    try:
        body = resp.json()
        if isinstance(body, dict) and body.get("error"):
            return IdentificationError.model_validate({"error": body["error"], "message": body.get("message")})
    except (json.JSONDecodeError, ValidationError, ValueError):
        pass
    logger.warning("Proxy responded with status {}", resp.status_code)
    return IdentificationError.of(ErrorCode.NETWORK, f"Request failed with status {resp.status_code}")
