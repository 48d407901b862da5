from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from learnhub.core.errors import DomainError, GatewayUnavailable

logger = logging.getLogger(__name__)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Render a DomainError as ``{"reason", "message", **extra}``."""
    if isinstance(exc, GatewayUnavailable):
        logger.warning("%s %s -> gateway unavailable", request.method, request.url.path)
    else:
        logger.info(
            "%s %s -> %s (%d)",
            request.method,
            request.url.path,
            exc.code,
            exc.status_code,
        )
    headers = {"Retry-After": "5"} if isinstance(exc, GatewayUnavailable) else None
    return JSONResponse(
        status_code=exc.status_code, content=exc.to_dict(), headers=headers
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)  # type: ignore[arg-type]
