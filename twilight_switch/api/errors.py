from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..core.config import settings
from ..domain.errors import InfrastructureError, TwilightError

logger = logging.getLogger(__name__)

GENERIC_500 = "Internal server error"


def _body(kind: str, detail: str) -> dict:
    return {"ok": False, "error": kind, "detail": detail}


def _describe(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())[1:]) or "body"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts) or "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(TwilightError)
    async def twilight_error(request: Request, exc: TwilightError):
        detail = exc.detail
        if isinstance(exc, InfrastructureError):
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
            if settings.environment != "development":
                detail = GENERIC_500
        return JSONResponse(status_code=exc.status_code, content=_body(exc.kind, detail))

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        # Missing or malformed input is a 400 here, not FastAPI's default 422
        return JSONResponse(status_code=400, content=_body("validation_error", _describe(exc)))

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        detail = str(exc) if settings.environment == "development" else GENERIC_500
        return JSONResponse(status_code=500, content=_body("internal_error", detail))
