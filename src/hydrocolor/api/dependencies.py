"""Request dependencies: app state accessors and API key authentication."""

from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from hydrocolor.analysis.pool import AnalysisPool
from hydrocolor.config import Settings

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    settings: Settings = request.app.state.settings
    return settings


def get_analysis_pool(request: Request) -> AnalysisPool:
    pool: AnalysisPool = request.app.state.analysis_pool
    return pool


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
PoolDep = Annotated[AnalysisPool, Depends(get_analysis_pool)]


async def verify_api_key(
    settings: SettingsDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> None:
    """Require 'Authorization: Bearer <key>' when HYDROCOLOR_API_KEY is set."""
    if settings.api_key is None:
        return

    if credentials is None or not secrets.compare_digest(credentials.credentials.encode(), settings.api_key.encode()):
        logger.info("Rejected request with %s API key", "missing" if credentials is None else "invalid")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "Bearer"},
        )
