"""
Registration Proxy.

Stateless HTTP front for the elevated registration path.  The browser
posts the candidate account here; the server holds the service-role key,
creates the identity already confirmed and deletes it again if the
profile row cannot be written.

Every response body is ``{"ok": true, "message": ...}`` or
``{"ok": false, "error": ...}``; internal error payloads never reach the
client.
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from vasudha_access import __version__
from vasudha_access.config import AppConfig
from vasudha_access.errors import status_for_kind
from vasudha_access.logger import get_logger
from vasudha_access.models.registration import RegistrationRequest
from vasudha_access.services.registration_service import RegistrationService

logger = get_logger("server")


class RegisterBody(BaseModel):
    """``POST /api/register`` body.  Field names are the wire names."""

    model_config = ConfigDict(extra="ignore")

    first: Optional[str] = None
    last: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    username: Optional[str] = None
    role: Optional[str] = None

    def to_request(self) -> RegistrationRequest:
        return RegistrationRequest(
            first_name=self.first,
            last_name=self.last,
            email=self.email,
            password=self.password,
            phone=self.phone,
            username=self.username,
            role=self.role,
        )


def _fail(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


# ── Exception handlers ──────────────────────────────────────────────
async def _validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning(
        "Malformed registration request at %s",
        [error.get("loc") for error in exc.errors()],
        extra={"event": "BAD_REQUEST"},
    )
    return _fail(400, "Malformed request body.")


async def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(
        "Rate limit exceeded for %s: %s", get_remote_address(request), exc.detail,
        extra={"event": "RATE_LIMITED"},
    )
    return _fail(429, "Too many requests. Please wait a minute and try again.")


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception: %s", exc, exc_info=True, extra={"event": "SERVER_ERROR"})
    return _fail(500, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)


# ── App factory ─────────────────────────────────────────────────────
def create_app(config: AppConfig, registration_service: RegistrationService) -> FastAPI:
    """Build the proxy around an already-wired registration service."""
    application = FastAPI(
        title="Vasudha Access",
        description="Server-side registration proxy",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )

    # Rate limiter keyed by client IP, one per app instance
    limiter = Limiter(key_func=get_remote_address)
    application.state.limiter = limiter

    application.add_middleware(
        CORSMiddleware,
        allow_origins=[config.CORS_ORIGIN],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    register_exception_handlers(application)

    @application.get("/health")
    def health() -> dict[str, bool]:
        return {"ok": True}

    @application.post("/api/register")
    @limiter.limit(config.REGISTER_RATE_LIMIT)
    def register(request: Request, body: RegisterBody) -> JSONResponse:
        result = registration_service.register(body.to_request())
        if not result.success:
            status_code = status_for_kind(result.error_code) if result.error_code else 500
            return _fail(status_code, result.error_message or "Registration failed.")
        return JSONResponse(content={"ok": True, "message": result.message})

    return application
