# plantid/core/errors.py
from http import HTTPStatus
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from plantid.schemas.identification import ErrorCode


class IdentifyHTTPError(Exception):
    """由 endpoint 拋出，統一轉成 {"error": ..., "message": ...} 的 JSON 回應。"""

    def __init__(self, status_code: int, error_code: str, message: Optional[str] = None):
        super().__init__(message or error_code)
        self.status_code = status_code
        self.error_code = error_code.value if isinstance(error_code, ErrorCode) else error_code
        self.message = message


def error_body(error_code: str, message: Optional[str] = None) -> dict:
    body = {"error": error_code}
    if message:
        body["message"] = message
    return body


def _phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(IdentifyHTTPError)
    async def identify_exc_handler(request: Request, exc: IdentifyHTTPError):
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.error_code, exc.message))

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):
        # 統一輸出格式（405 / 404 等路由層錯誤也走這裡）
        if exc.status_code == 405:
            message = "Only POST requests are accepted."
        else:
            message = str(exc.detail) if exc.detail else None
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(_phrase(exc.status_code), message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):
        # 客製化，但保持資訊節制
        return JSONResponse(
            status_code=400,
            content=error_body(ErrorCode.BAD_REQUEST.value, "Validation error"),
        )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        # 小強化：避免洩露伺服器細節
        resp = await call_next(request)
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        return resp
