"""FastAPI routes for the lanwake API."""

import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from lanwake import __version__
from lanwake.api.models import (
    DeviceCreate,
    DevicePatch,
    StatusResponse,
    WakeRequest,
    WakeResponse,
)
from lanwake.auth.token import generate_secret, verify_token
from lanwake.config.loader import (
    DEFAULT_CONFIG,
    ConfigError,
    Settings,
    load_config,
    settings_from_config,
    validate_config,
)
from lanwake.core import scan as scanner
from lanwake.core.errors import (
    LanwakeError,
    NotFoundError,
    ScanFailedError,
    TransmissionError,
    UnsupportedPlatformError,
    ValidationError,
)
from lanwake.core.registry import DeviceRegistry
from lanwake.core.store import JsonFileStore
from lanwake.core.wol import WakeTarget, wake, wake_device

logger = logging.getLogger(__name__)

_OPEN_PATHS = {"/api/status"}

_ERROR_STATUS: tuple[tuple[type[LanwakeError], int], ...] = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (UnsupportedPlatformError, 400),
    (TransmissionError, 500),
    (ScanFailedError, 500),
)


class TokenAuthMiddleware(BaseHTTPMiddleware):
    """Require a valid bearer token on every API path except the status probe."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        path = request.url.path
        if request.method == "OPTIONS" or path in _OPEN_PATHS or not path.startswith("/api/"):
            return await call_next(request)

        header = request.headers.get("authorization", "")
        token = header[len("Bearer ") :].strip() if header.startswith("Bearer ") else ""
        if not token:
            return JSONResponse({"error": "Authentication required"}, status_code=401)

        settings: Settings = request.app.state.settings
        principal = verify_token(token, settings.secret, max_age=settings.token_max_age)
        if principal is None:
            return JSONResponse({"error": "Authentication failed"}, status_code=401)

        request.state.principal = principal
        return await call_next(request)


def _load_settings(config_path: Path) -> Settings:
    """Resolve settings, seeding and persisting a token secret when the config lacks one."""
    from lanwake.config.writer import write_config

    if not config_path.exists():
        settings = settings_from_config(None)
        if not settings.secret:
            settings.secret = generate_secret()
            logger.warning(
                "Config not found at %s; using an ephemeral token secret", config_path
            )
        return settings

    raw = load_config(config_path) or {}
    errors = validate_config(raw)
    if errors:
        raise ConfigError("; ".join(errors))
    settings = settings_from_config(raw, base_dir=config_path.parent)
    if not settings.secret:
        settings.secret = generate_secret()
        raw_settings: dict[str, Any] = raw.get("settings") or {}
        raw_settings["secret"] = settings.secret
        raw["settings"] = raw_settings
        write_config(config_path, raw)
        logger.info("Generated a token secret in %s", config_path)
    return settings


def create_app(config_path: Optional[str] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config_path: Path to lanwake config.yaml. If None, uses the default location.

    Returns:
        FastAPI application instance
    """
    _config_path = Path(config_path) if config_path else DEFAULT_CONFIG
    settings = _load_settings(_config_path)

    app = FastAPI(
        title="lanwake",
        version=__version__,
        description="LAN device registry and Wake-on-LAN server",
    )

    # ── App state ─────────────────────────────────────────────────────────────
    app.state.config_path = _config_path
    app.state.settings = settings
    app.state.registry = DeviceRegistry(JsonFileStore(settings.devices_file))
    logger.info("Device registry at %s", settings.devices_file)

    # CORS is added last so it wraps auth and answers preflights itself.
    app.add_middleware(TokenAuthMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Error mapping ─────────────────────────────────────────────────────────

    @app.exception_handler(LanwakeError)
    async def handle_core_error(request: Request, exc: LanwakeError) -> JSONResponse:
        status = next((code for kind, code in _ERROR_STATUS if isinstance(exc, kind)), 500)
        return JSONResponse({"error": str(exc)}, status_code=status)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        msg = first.get("msg", "Invalid request")
        return JSONResponse({"error": f"{loc}: {msg}" if loc else msg}, status_code=400)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    # ── Helpers ────────────────────────────────────────────────────────────────

    def _registry() -> DeviceRegistry:
        registry: DeviceRegistry = app.state.registry
        return registry

    def _wake_response(target: WakeTarget) -> WakeResponse:
        return WakeResponse(
            mac_address=target.mac_address,
            broadcast_address=target.broadcast_address,
            port=target.port,
        )

    # ── Status ────────────────────────────────────────────────────────────────

    @app.get("/api/status", response_model=StatusResponse)
    async def get_status() -> StatusResponse:
        return StatusResponse(
            status="online",
            message="lanwake server is running",
            version=__version__,
        )

    # ── Discovery ─────────────────────────────────────────────────────────────

    @app.get("/api/network/scan")
    def get_network_scan() -> list[dict[str, Any]]:
        candidates = scanner.scan(timeout=app.state.settings.scan_timeout)
        return [c.to_dict() for c in candidates]

    # ── Devices ───────────────────────────────────────────────────────────────

    @app.get("/api/devices")
    def list_devices() -> list[dict[str, Any]]:
        return [d.to_dict() for d in _registry().list_devices()]

    @app.post("/api/devices", status_code=201)
    def post_device(req: DeviceCreate) -> dict[str, Any]:
        device = _registry().upsert_by_mac(
            req.mac_address,
            name=req.name,
            ip_address=req.ip_address,
            tags=req.tags,
        )
        return device.to_dict()

    @app.patch("/api/devices/{device_id}")
    def patch_device(device_id: str, req: DevicePatch) -> dict[str, Any]:
        device = _registry().patch_by_id(device_id, req.model_dump(exclude_unset=True))
        return device.to_dict()

    @app.delete("/api/devices/{device_id}")
    def delete_device(device_id: str) -> dict[str, Any]:
        _registry().delete_by_id(device_id)
        return {"message": "Device deleted successfully", "id": device_id}

    # ── Wake ──────────────────────────────────────────────────────────────────

    @app.post("/api/wake", response_model=WakeResponse)
    def post_wake(req: WakeRequest) -> WakeResponse:
        s: Settings = app.state.settings
        target = WakeTarget(
            mac_address=req.mac_address or "",
            broadcast_address=req.broadcast_address or s.broadcast_address,
            port=req.port if req.port is not None else s.wol_port,
        )
        wake(target.mac_address, broadcast_address=target.broadcast_address, port=target.port)
        return _wake_response(target)

    @app.post("/api/devices/{device_id}/wake", response_model=WakeResponse)
    def post_device_wake(device_id: str, req: Optional[WakeRequest] = None) -> WakeResponse:
        s: Settings = app.state.settings
        req = req or WakeRequest()
        if req.mac_address:
            # Caller supplied the target explicitly; the registry is not consulted.
            return post_wake(req)
        target = wake_device(
            _registry(),
            device_id,
            broadcast_address=req.broadcast_address,
            port=req.port,
            default_broadcast=s.broadcast_address,
            default_port=s.wol_port,
        )
        return _wake_response(target)

    return app
