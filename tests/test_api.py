"""Tests for the HydroColor HTTP API."""

from __future__ import annotations

import importlib
import io
import os
import warnings
from typing import TYPE_CHECKING
from unittest.mock import patch

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

import httpx
import pytest
from fastapi import FastAPI, status
from PIL import Image

from hydrocolor.analysis.palette import get_entry
from hydrocolor.analysis.pool import AnalysisPool
from hydrocolor.config import get_settings
from hydrocolor.main import create_app


def _init_app_state(app: FastAPI, **env_overrides: str) -> None:
    """Manually initialize app state (ASGITransport does not trigger lifespan)."""
    with patch.dict(os.environ, env_overrides):
        settings = get_settings()
    app.state.settings = settings
    app.state.analysis_pool = AnalysisPool(settings)


async def _make_client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as ac:
        yield ac
    pool: AnalysisPool = app.state.analysis_pool
    pool.shutdown()


def _png(color: tuple[int, int, int], size: tuple[int, int] = (520, 360)) -> io.BytesIO:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    buf.seek(0)
    return buf


@pytest.fixture()
def app() -> FastAPI:
    """Create a fresh app instance with default settings."""
    application = create_app()
    _init_app_state(application)
    return application


@pytest.fixture()
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    """Async HTTP client for testing the app."""
    async for ac in _make_client(app):
        yield ac


class TestHealthEndpoint:
    async def test_health_returns_ok(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/v1/health")
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "ok"
        assert data["concurrent_requests"] == 0
        assert data["queue_depth"] == 0


class TestPaletteEndpoint:
    async def test_palette_lists_eight_levels(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/v1/palette")
        assert response.status_code == status.HTTP_200_OK
        palette = response.json()["palette"]
        assert [p["level"] for p in palette] == list(range(1, 9))
        assert palette[0]["hex"] == "#FFFDF2"
        assert palette[7]["rgb"] == [180, 94, 12]


class TestAnalyzeEndpoint:
    async def test_reference_color_is_recognized(self, client: httpx.AsyncClient) -> None:
        entry = get_entry(4)
        response = await client.post(
            "/api/v1/analyze",
            files={"file": ("sample.png", _png(entry.reference_color), "image/png")},
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["ok"] is True
        assert data["level"] == 4
        assert data["label"] == "Yellow"
        assert data["confidence"] == 1.0
        assert data["usable_pixels"] == 140 * 140
        assert data["region"] == {"x": 190, "y": 110, "size": 140}
        assert [r["level"] for r in data["ranking"]][0] == 4
        assert data["ranking"][0]["hex"] == "#FFD35C"
        assert data["brightness"] == pytest.approx(186.0)
        assert data["saturation"] == pytest.approx((255 - 92) / 255)
        assert len(data["ranking"]) == 8

    async def test_region_size_query_is_clamped(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/api/v1/analyze",
            params={"region_size": 5000},
            files={"file": ("sample.png", _png(get_entry(6).reference_color), "image/png")},
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["level"] == 6
        assert data["region"] == {"x": 80, "y": 0, "size": 360}

    async def test_region_size_must_be_positive(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/api/v1/analyze",
            params={"region_size": 0},
            files={"file": ("sample.png", _png((200, 150, 50)), "image/png")},
        )
        assert response.status_code == 422

    async def test_undecodable_upload_returns_400(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/api/v1/analyze",
            files={"file": ("sample.jpg", io.BytesIO(b"not an image"), "image/jpeg")},
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        data = response.json()
        assert data["ok"] is False
        assert data["reason"] == "decode_error"
        assert data["rejected"] is None

    async def test_glare_only_upload_returns_422(self, client: httpx.AsyncClient) -> None:
        response = await client.post(
            "/api/v1/analyze",
            files={"file": ("sample.png", _png((255, 255, 255)), "image/png")},
        )
        assert response.status_code == 422
        data = response.json()
        assert data["reason"] == "insufficient_samples"
        assert "glare" in data["detail"]
        assert data["rejected"]["glare"] == 140 * 140

    async def test_oversized_upload_returns_413(self) -> None:
        app = create_app()
        _init_app_state(app, HYDROCOLOR_MAX_FILE_SIZE="64")
        async for ac in _make_client(app):
            response = await ac.post(
                "/api/v1/analyze",
                files={"file": ("sample.png", _png((200, 150, 50)), "image/png")},
            )
            assert response.status_code == 413

    def test_routes_import_without_status_deprecations(self) -> None:
        routes = importlib.import_module("hydrocolor.api.routes")
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            importlib.reload(routes)
        assert not [w for w in caught if "HTTP_" in str(w.message)]

    def test_openapi_documents_failure_statuses(self) -> None:
        responses = create_app().openapi()["paths"]["/api/v1/analyze"]["post"]["responses"]
        assert {"400", "413", "422"} <= set(responses)


class TestAuthentication:
    async def test_no_auth_required_by_default(self, client: httpx.AsyncClient) -> None:
        response = await client.get("/api/v1/health")
        assert response.status_code == status.HTTP_200_OK

    async def test_auth_required_when_api_key_set(self) -> None:
        app = create_app()
        _init_app_state(app, HYDROCOLOR_API_KEY="test-secret-key")
        async for ac in _make_client(app):
            response = await ac.get("/api/v1/palette")
            assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_auth_passes_with_correct_key(self) -> None:
        app = create_app()
        _init_app_state(app, HYDROCOLOR_API_KEY="test-secret-key")
        async for ac in _make_client(app):
            response = await ac.get(
                "/api/v1/health",
                headers={"Authorization": "Bearer test-secret-key"},
            )
            assert response.status_code == status.HTTP_200_OK

    async def test_auth_fails_with_wrong_key(self) -> None:
        app = create_app()
        _init_app_state(app, HYDROCOLOR_API_KEY="test-secret-key")
        async for ac in _make_client(app):
            response = await ac.get(
                "/api/v1/health",
                headers={"Authorization": "Bearer wrong-key"},
            )
            assert response.status_code == status.HTTP_401_UNAUTHORIZED
