"""REST API for the Yell Mode monitor.

Lets a UI authenticate, drive the monitoring lifecycle, change settings
and report its visibility.

    GET  /api/health               -> {"status": "OK", ...}
    GET  /api/auth/test            (bearer token)
    GET  /api/auth/me              (bearer token)
    GET  /api/monitor/state        (bearer token)
    POST /api/monitor/activate     (bearer token)
    POST /api/monitor/deactivate   (bearer token)
    PUT  /api/monitor/settings     <- {"cooldown_seconds": 60, ...}
    POST /api/monitor/visibility   <- {"visible": false}
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from justdothething.config.settings import MonitorSettings
from justdothething.domain.models import MonitorStatus, YellStyle
from justdothething.monitor.controller import ActivationError, MonitorController, MonitorError
from justdothething.server.auth import AuthError, AuthUser, IdentityProvider, extract_bearer_token
from justdothething.server.users import DEFAULT_CACHE_TTL, UserCache, UserRecord, UserStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------

class SettingsUpdateRequest(BaseModel):
    """Partial settings update; omitted fields keep their current value."""

    model_config = ConfigDict(extra="forbid")

    check_interval_seconds: int | None = None
    cooldown_seconds: int | None = None
    style: YellStyle | None = None
    use_face_detection: bool | None = None
    secondary_monitor: bool | None = None


class VisibilityRequest(BaseModel):
    visible: bool = Field(description="Whether the monitoring UI is visible")


class MonitorStateResponse(BaseModel):
    status: MonitorStatus
    phase: str
    focus_enabled: bool
    settings: MonitorSettings
    state: dict[str, Any]


class AuthContext(BaseModel):
    auth_user: AuthUser
    user: UserRecord


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(
    controller: MonitorController,
    identity: IdentityProvider,
    users: UserStore,
    cache_ttl: float = DEFAULT_CACHE_TTL,
) -> FastAPI:
    """Create the monitor REST API application.

    Args:
        controller: The monitor controller the API drives.
        identity: Verifies bearer tokens.
        users: Stores per-user records (saved settings).
        cache_ttl: Seconds a user record stays cached after lookup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Monitor API started")
        yield
        c: MonitorController = app.state.controller
        if c.status is MonitorStatus.ACTIVE:
            await c.deactivate()
        await app.state.identity.close()
        logger.info("Monitor API stopped")

    app = FastAPI(
        title="justdothething",
        description="Yell Mode focus monitor REST API",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.controller = controller
    app.state.identity = identity
    app.state.users = UserCache(users, ttl=cache_ttl)

    async def authenticate(authorization: str | None = Header(default=None)) -> AuthContext:
        token = extract_bearer_token(authorization)
        if token is None:
            raise HTTPException(status_code=401, detail="Unauthorized: No token provided")
        try:
            auth_user = await app.state.identity.get_user(token)
        except AuthError as e:
            logger.info("Authentication failed: %s", e)
            raise HTTPException(status_code=e.status_code, detail="Forbidden: Invalid token") from e
        user = await app.state.users.get(auth_user.id)
        return AuthContext(auth_user=auth_user, user=user)

    def _state_response() -> MonitorStateResponse:
        c: MonitorController = app.state.controller
        return MonitorStateResponse(
            status=c.status,
            phase=c.phase.value,
            focus_enabled=c.focus_enabled,
            settings=c.settings.current,
            state=c.snapshot().model_dump(mode="json"),
        )

    @app.get("/api/health")
    async def health_check() -> dict[str, str]:
        return {"status": "OK", "message": "Server is running"}

    # -------------------------------------------------------------------
    # Auth endpoints
    # -------------------------------------------------------------------

    @app.get("/api/auth/test")
    async def auth_test(ctx: AuthContext = Depends(authenticate)) -> dict[str, Any]:
        return {"message": "Authentication successful", "user": ctx.user.model_dump(mode="json")}

    @app.get("/api/auth/me")
    async def auth_me(ctx: AuthContext = Depends(authenticate)) -> dict[str, Any]:
        return {"user": ctx.user.model_dump(mode="json")}

    # -------------------------------------------------------------------
    # Monitor endpoints
    # -------------------------------------------------------------------

    @app.get("/api/monitor/state")
    async def monitor_state(ctx: AuthContext = Depends(authenticate)) -> MonitorStateResponse:
        return _state_response()

    @app.post("/api/monitor/activate")
    async def monitor_activate(ctx: AuthContext = Depends(authenticate)) -> MonitorStateResponse:
        c: MonitorController = app.state.controller
        if ctx.user.settings:
            try:
                c.settings.update(**ctx.user.settings)
            except ValidationError as e:
                logger.warning("Ignoring invalid saved settings for %s: %s", ctx.user.id, e)
        try:
            await c.activate()
        except ActivationError as e:
            raise HTTPException(status_code=409, detail={"reason": e.reason, "message": str(e)}) from e
        except MonitorError as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        return _state_response()

    @app.post("/api/monitor/deactivate")
    async def monitor_deactivate(ctx: AuthContext = Depends(authenticate)) -> MonitorStateResponse:
        c: MonitorController = app.state.controller
        try:
            await c.deactivate()
        except MonitorError as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        return _state_response()

    @app.put("/api/monitor/settings")
    async def monitor_settings(
        request: SettingsUpdateRequest, ctx: AuthContext = Depends(authenticate),
    ) -> MonitorSettings:
        c: MonitorController = app.state.controller
        changes = request.model_dump(exclude_none=True)
        try:
            new = c.settings.update(**changes)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=e.errors(include_url=False)) from e
        cache: UserCache = app.state.users
        record = await cache.store.save_settings(ctx.user.id, new.model_dump(mode="json"))
        cache.put(record)
        return new

    @app.post("/api/monitor/visibility")
    async def monitor_visibility(
        request: VisibilityRequest, ctx: AuthContext = Depends(authenticate),
    ) -> dict[str, bool]:
        c: MonitorController = app.state.controller
        if c.visibility is None:
            raise HTTPException(status_code=409, detail="Visibility is not tracked by this monitor")
        c.visibility.set_visible(request.visible)
        return {"visible": request.visible}

    return app


# ---------------------------------------------------------------------------
# Standalone entry point
# ---------------------------------------------------------------------------

def serve(app: FastAPI, host: str = "127.0.0.1", port: int = 3000) -> None:
    """Run the API with uvicorn."""
    uvicorn.run(app, host=host, port=port)
