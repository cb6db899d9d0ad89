# tests/conftest.py
import os

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# ---- 測試期環境變數（先於 app 載入）----
os.environ.setdefault("ENV", "test")
os.environ.setdefault("GEMINI_API_KEY", "test-key")
os.environ.setdefault("SENTRY_DSN", "")

from plantid.main import app  # noqa: E402
from plantid.core.deps import get_model_factory  # noqa: E402


class FakeModel:
    """取代 GeminiModel：回固定文字，或拋指定例外；並記錄收到的參數。"""

    def __init__(self, text=None, exc=None):
        self.text = text
        self.exc = exc
        self.calls = []

    async def generate(self, image_bytes: bytes, mime_type: str) -> str:
        self.calls.append((image_bytes, mime_type))
        if self.exc is not None:
            raise self.exc
        return self.text


@pytest.fixture
def make_model():
    """回傳 FakeModel 類別，讓測試自行組出回固定文字或拋錯的模型。"""
    return FakeModel


@pytest.fixture
def fake_model():
    """預設回一筆成功結果；測試可改 .text / .exc。"""
    model = FakeModel(text='{"name": "Mango", "description": "A tropical fruit."}')
    app.dependency_overrides[get_model_factory] = lambda: (lambda config: model)
    yield model
    app.dependency_overrides.pop(get_model_factory, None)


@pytest_asyncio.fixture
async def client():
    """使用 ASGITransport 直接掛載 app，不需啟動伺服器。"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac
