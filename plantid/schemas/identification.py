# plantid/schemas/identification.py
"""
辨識結果的資料模型。

- Identification：成功結果（name / description 必填）
- IdentificationError：錯誤結果（error 必填）
- ApiResult：以 `kind` 明確區分兩者的 tagged union

對外 JSON 使用模型回覆的 key（scientific_name / edible / error），
解析時也接受 camelCase 寫法（scientificName / edibility / errorCode）。
"""
from __future__ import annotations

import base64
import binascii
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Mapping, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class ErrorCode(str, Enum):
    AI_SERVICE = "AI Service Error"
    API = "API Error"
    NETWORK = "Network Error"
    CLIENT_SIDE = "Client-Side Error"
    METHOD_NOT_ALLOWED = "Method Not Allowed"
    CONFIGURATION = "Configuration Error"
    BAD_REQUEST = "Bad Request"
    UNABLE_TO_IDENTIFY = "Unable to identify"


class Identification(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    kind: Literal["identification"] = "identification"
    name: str
    description: str
    scientific_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("scientific_name", "scientificName"),
        serialization_alias="scientific_name",
    )
    edibility: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("edible", "edibility"),
        serialization_alias="edible",
    )
    origin: Optional[str] = None

    @field_validator("scientific_name", "edibility", "origin", mode="before")
    @classmethod
    def _optional_as_text(cls, v: Any) -> Any:
        # 模型有時回 {"edible": true} 或數字，轉成字串保留下來
        if v is not None and not isinstance(v, str):
            return str(v)
        return v


class IdentificationError(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    kind: Literal["error"] = "error"
    error_code: str = Field(
        validation_alias=AliasChoices("error", "errorCode", "error_code"),
        serialization_alias="error",
    )
    message: Optional[str] = None

    @field_validator("error_code", mode="before")
    @classmethod
    def _code_as_text(cls, v: Any) -> Any:
        # 模型有時回 {"error": true}，統一轉成字串
        if isinstance(v, Enum):
            return v.value
        if v is not None and not isinstance(v, str):
            return str(v)
        return v

    @classmethod
    def of(cls, code: Union[ErrorCode, str], message: Optional[str] = None) -> "IdentificationError":
        return cls(error_code=code, message=message)


ApiResult = Annotated[Union[Identification, IdentificationError], Field(discriminator="kind")]

_api_result_adapter: TypeAdapter = TypeAdapter(ApiResult)


def is_error(result: Union[Identification, IdentificationError]) -> bool:
    return isinstance(result, IdentificationError)


def parse_api_result(data: Any) -> Union[Identification, IdentificationError]:
    """
    從「結構鬆散」的 dict 建出 ApiResult：
      - 有 kind → 直接交給 discriminated union
      - 有 truthy 的 error / errorCode → IdentificationError
      - 否則視為 Identification（name / description 缺少時拋 ValidationError）
    非 dict 時拋 ValueError。
    """
    if not isinstance(data, Mapping):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

    if data.get("kind") in ("identification", "error"):
        return _api_result_adapter.validate_python(dict(data))

    if data.get("error") or data.get("errorCode"):
        return IdentificationError.model_validate(dict(data))
    return Identification.model_validate(dict(data))


def dump_result(result: Union[Identification, IdentificationError]) -> Dict[str, Any]:
    """輸出 wire 格式；None 欄位不輸出（不補空字串）。"""
    return result.model_dump(mode="json", by_alias=True, exclude_none=True)


class IdentifyRequest(BaseModel):
    """POST /identify 的 request body。"""
    model_config = ConfigDict(extra="ignore")

    imageData: str = Field(..., description="base64-encoded image (no data: prefix needed)")
    mimeType: str = Field(..., description="MIME type of the image, e.g. image/jpeg")

    @field_validator("imageData", "mimeType", mode="before")
    @classmethod
    def _must_be_string(cls, v: Any) -> Any:
        # 不接受 123 → "123" 這類隱式轉換
        if not isinstance(v, str):
            raise ValueError("must be a string")
        return v

    @field_validator("imageData")
    @classmethod
    def _must_be_base64(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("imageData is empty")
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("imageData is not valid base64")
        return v
