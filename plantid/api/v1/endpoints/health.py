from fastapi import APIRouter, Depends

from plantid.core.config import Settings, get_settings

router = APIRouter()


@router.get("/", summary="Health check")
async def health_root(s: Settings = Depends(get_settings)):
    # 不回傳金鑰本身，只回是否已設定
    return {
        "status": "ok",
        "model": s.GEMINI_MODEL,
        "credential_configured": bool(s.GEMINI_API_KEY),
    }
