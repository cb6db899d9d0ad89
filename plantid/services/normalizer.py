# plantid/services/normalizer.py
"""
模型輸出正規化層：
- 模型回的是「應該是 JSON」的自由文字，可能被 markdown ``` 包起來。
- 這裡負責：去掉 fence → 解析 JSON → 分類成 Identification / IdentificationError。

公開函式：
- strip_code_fence(text: str) -> str
- normalize_model_output(raw_text, fallback_messages=None) -> ApiResult
  不會拋例外；任何解析失敗都回 IdentificationError("AI Service Error", ...)
"""

from __future__ import annotations

import json
from typing import Mapping, Optional, Union

from loguru import logger
from pydantic import ValidationError

from plantid.schemas.identification import (
    ErrorCode,
    Identification,
    IdentificationError,
    parse_api_result,
)

FENCE = "```"


def _is_language_tag(s: str) -> bool:
    return s == "" or all(ch.isalnum() or ch == "_" for ch in s)


def strip_code_fence(text: str) -> str:
    """
    若整段文字（去頭尾空白後）以 ``` 開頭且以 ``` 結尾，回傳中間的 body；
    否則原樣回傳（已 strip）。
      - 開頭行可帶語言標記（```json）
      - 結尾 fence 前可有或沒有換行
      - 沒有結尾 fence → 不處理
    """
    s = (text or "").strip()
    if len(s) < 2 * len(FENCE) or not (s.startswith(FENCE) and s.endswith(FENCE)):
        return s

    inner = s[len(FENCE):-len(FENCE)]
    first, sep, rest = inner.partition("\n")
    if sep:
        # ```json\n{...}\n```：第一行只有語言標記時丟掉
        body = rest if _is_language_tag(first.strip()) else inner
    else:
        # 單行：```json {...}``` 或 ```json{...}```
        stripped = inner.strip()
        head, _, tail = stripped.partition(" ")
        if tail and head and _is_language_tag(head):
            body = tail
        else:
            i = 0
            while i < len(stripped) and (stripped[i].isalnum() or stripped[i] == "_"):
                i += 1
            body = stripped[i:] if 0 < i < len(stripped) and stripped[i] in "{[" else inner
    return body.strip()


def _parse_failure(detail: str) -> IdentificationError:
    return IdentificationError.of(ErrorCode.AI_SERVICE, detail)


def normalize_model_output(
    raw_text: Optional[str],
    fallback_messages: Optional[Mapping[str, str]] = None,
) -> Union[Identification, IdentificationError]:
    if not isinstance(raw_text, str):
        logger.warning("Model returned non-text content: {}", type(raw_text).__name__)
        return _parse_failure("AI response text is missing.")

    payload = strip_code_fence(raw_text)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.warning("Model output is not valid JSON: {}", e)
        return _parse_failure(f"Could not parse AI response as JSON: {e}")

    try:
        result = parse_api_result(data)
    except (ValidationError, ValueError) as e:
        logger.warning("Model output has unexpected shape: {}", e)
        return _parse_failure(f"AI response has an unexpected shape: {_short_reason(e)}")

    if isinstance(result, IdentificationError) and fallback_messages and result.message in fallback_messages:
        result = result.model_copy(update={"message": fallback_messages[result.message]})
    return result


def _short_reason(e: Exception) -> str:
    if isinstance(e, ValidationError):
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        return "missing or invalid fields: " + ", ".join(missing)
    return str(e)
