"""CORS configuration comes from settings."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from src.api.main import create_app
from src.core.config import get_settings

KIOSK_ORIGIN = "https://kiosk.example.com"


@pytest.fixture()
def production_app(monkeypatch: pytest.MonkeyPatch) -> Iterator[FastAPI]:
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("CORS_ORIGINS", f'["{KIOSK_ORIGIN}"]')
    get_settings.cache_clear()
    try:
        yield create_app()
    finally:
        get_settings.cache_clear()


async def _preflight(app: FastAPI, origin: str):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.options(
            "/health",
            headers={"Origin": origin, "Access-Control-Request-Method": "GET"},
        )


@pytest.mark.asyncio
async def test_configured_origin_is_allowed(production_app: FastAPI) -> None:
    response = await _preflight(production_app, KIOSK_ORIGIN)

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == KIOSK_ORIGIN


@pytest.mark.asyncio
async def test_unlisted_origin_is_refused(production_app: FastAPI) -> None:
    response = await _preflight(production_app, "https://someone.vercel.app")

    assert response.status_code == 400
    assert "access-control-allow-origin" not in response.headers
