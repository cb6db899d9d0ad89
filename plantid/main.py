# plantid/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from plantid.core.config import settings
from plantid.core.logging import setup_logging
from plantid.core.errors import register_error_handlers
from plantid.api.v1.router import api_router

# Monitoring
import sentry_sdk
from prometheus_fastapi_instrumentator import Instrumentator

logger = setup_logging()


def _check_config() -> None:
    """
    部署前檢查：正式環境沒設定 GEMINI_API_KEY 時只記警告，不讓服務起不來；
    /identify 會逐次回 500 Configuration Error。
    """
    env = (settings.ENV or "").lower()
    if not settings.GEMINI_API_KEY:
        if env in {"prod", "production", "staging", "preview"}:
            logger.warning("GEMINI_API_KEY is not set in ENV={}; /identify will respond 500", settings.ENV)
        else:
            logger.info("GEMINI_API_KEY is not set; /identify will respond 500 until configured")


def create_app() -> FastAPI:
    _check_config()

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
    )

    # CORS（瀏覽器端直接呼叫 /identify）
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---- Sentry 初始化（若 .env/SENTRY_DSN 未設定就略過）----
    if settings.SENTRY_DSN:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
            environment=settings.SENTRY_ENV or settings.ENV,
        )

    # ---- Prometheus /metrics ----
    Instrumentator().instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

    # 統一錯誤處理
    register_error_handlers(app)

    # === API 路由 ===
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # 健康檢查（root & ops）
    @app.get("/", summary="Root")
    async def root():
        return {"app": settings.APP_NAME, "env": settings.ENV}

    @app.get("/healthz", tags=["ops"])
    async def healthz():
        return {"ok": True}

    @app.get("/readyz", tags=["ops"])
    async def readyz():
        # 沒有金鑰時仍回 200，但標示尚未就緒辨識
        return {"ready": True, "identify_ready": bool(settings.GEMINI_API_KEY)}

    logger.info("Application initialized (env={})", settings.ENV)
    return app


# Uvicorn 進入點
app = create_app()
