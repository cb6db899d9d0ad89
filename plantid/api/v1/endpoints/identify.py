# plantid/api/v1/endpoints/identify.py
import base64
import json
from typing import Callable, Mapping, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError

from plantid.core.deps import get_fallback_messages, get_gemini_config, get_model_factory
from plantid.core.errors import IdentifyHTTPError
from plantid.schemas.identification import ErrorCode, IdentifyRequest, dump_result
from plantid.services.gemini import GeminiConfig, GeminiModel
from plantid.services.normalizer import normalize_model_output

router = APIRouter()

UNEXPECTED_MODEL_ERROR = "An unexpected error occurred during identification with the AI model."


def _validation_detail(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        msg = err.get("msg", "invalid")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "imageData or mimeType is missing or invalid in the request body (" + "; ".join(parts) + ")"


async def _read_body(request: Request) -> IdentifyRequest:
    raw = await request.body()
    if not raw:
        raise IdentifyHTTPError(status.HTTP_400_BAD_REQUEST, ErrorCode.BAD_REQUEST, "Request body is empty.")
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise IdentifyHTTPError(
            status.HTTP_400_BAD_REQUEST, ErrorCode.BAD_REQUEST, f"Request body is not valid JSON: {e}"
        )
    if not isinstance(data, dict):
        raise IdentifyHTTPError(
            status.HTTP_400_BAD_REQUEST, ErrorCode.BAD_REQUEST, "Request body must be a JSON object."
        )
    try:
        return IdentifyRequest.model_validate(data)
    except ValidationError as e:
        raise IdentifyHTTPError(status.HTTP_400_BAD_REQUEST, ErrorCode.BAD_REQUEST, _validation_detail(e))


@router.post("/identify", summary="Identify the plant or fruit in an image")
async def identify_image(
    request: Request,
    config: Optional[GeminiConfig] = Depends(get_gemini_config),
    model_factory: Callable[[GeminiConfig], GeminiModel] = Depends(get_model_factory),
    fallback_messages: Mapping[str, str] = Depends(get_fallback_messages),
):
    """
    伺服器端代理：持有 GEMINI_API_KEY，代替瀏覽器呼叫模型。
    判斷順序：
      1️⃣ 非 POST → 405（路由層處理）
      2️⃣ 沒有金鑰 → 500 Configuration Error（不看 body）
      3️⃣ body 缺漏 / 非 JSON / imageData、mimeType 不是字串 → 400 Bad Request
      4️⃣ 呼叫模型 → 正規化後 200；模型拋錯 → 500 AI Service Error
    """
    if config is None:
        logger.error("GEMINI_API_KEY is not set; cannot serve /identify")
        raise IdentifyHTTPError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorCode.CONFIGURATION,
            "API key is not configured on the server.",
        )

    payload = await _read_body(request)

    try:
        model = model_factory(config)
        text = await model.generate(base64.b64decode(payload.imageData), payload.mimeType)
    except Exception as e:
        logger.exception("Error identifying image with Gemini API")
        raise IdentifyHTTPError(
            status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.AI_SERVICE, str(e) or UNEXPECTED_MODEL_ERROR
        )

    result = normalize_model_output(text, fallback_messages)
    return JSONResponse(status_code=status.HTTP_200_OK, content=dump_result(result))
