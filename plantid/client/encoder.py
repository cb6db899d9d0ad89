# plantid/client/encoder.py
from __future__ import annotations

import base64
import binascii
import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Dict, Optional, Union

from loguru import logger

DEFAULT_MIME_TYPE = "image/jpeg"

ImageSource = Union[str, "os.PathLike[str]", bytes, BinaryIO]


class EncodingError(Exception):
    """圖片讀不到，或編碼結果為空。"""


@dataclass(frozen=True)
class EncodedImage:
    data: str  # base64，不含 data: 前綴
    mime_type: str

    def to_request(self) -> Dict[str, str]:
        return {"imageData": self.data, "mimeType": self.mime_type}

    def raw_bytes(self) -> bytes:
        return base64.b64decode(self.data)

    @classmethod
    def from_base64(cls, data: str, mime_type: str) -> "EncodedImage":
        return cls(data=data, mime_type=mime_type or DEFAULT_MIME_TYPE)


def _read(source: ImageSource) -> tuple:
    """回傳 (bytes, 檔名或 None)。"""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source), None
    if isinstance(source, (str, os.PathLike)):
        path = Path(source)
        return path.read_bytes(), path.name
    # file-like（例如 open(..., "rb") 或 UploadFile.file）
    content = source.read()
    if isinstance(content, str):
        raise EncodingError("Image source must be opened in binary mode.")
    return content, getattr(source, "name", None)


def guess_mime_type(filename: Optional[str]) -> str:
    if filename:
        guessed, _ = mimetypes.guess_type(str(filename))
        if guessed:
            return guessed
    return DEFAULT_MIME_TYPE


def encode_image(source: ImageSource, mime_type: Optional[str] = None) -> EncodedImage:
    """
    讀入整個檔案並轉成 base64。
    - mime_type 未指定時依檔名猜測，猜不到用 image/jpeg
    - 不檢查大小 / 格式，壞圖一樣送出，由模型端判斷
    """
    try:
        content, filename = _read(source)
    except OSError as e:
        logger.warning("Failed to read image: {}", e)
        raise EncodingError(f"Failed to read image file: {e}") from e

    try:
        data = base64.b64encode(content).decode("ascii")
    except (binascii.Error, TypeError) as e:
        raise EncodingError(f"Failed to encode image: {e}") from e

    if not data:
        raise EncodingError("Failed to read base64 string from file.")

    return EncodedImage(data=data, mime_type=mime_type or guess_mime_type(filename))
