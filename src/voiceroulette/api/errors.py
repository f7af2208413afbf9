"""HTTP mapping for core failures.

Every ``RouletteError`` becomes a JSON body ``{"error": <kind>, "message": ...}``
with a status chosen by kind. Unauthorized responses add ``reason`` and never
say whether a rejected token ever existed.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from voiceroulette.core.errors import ErrorKind, InvalidCount, RouletteError, Unauthorized

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.INVALID_COUNT: 400,
    ErrorKind.EMPTY_ROSTER: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UPSTREAM_UNAVAILABLE: 503,
}


async def roulette_error_handler(request: Request, exc: RouletteError) -> JSONResponse:
    status = STATUS_BY_KIND.get(exc.kind, 500)
    body: dict[str, object] = {"error": exc.kind.value, "message": exc.message}
    headers: dict[str, str] | None = None

    if isinstance(exc, Unauthorized):
        body["reason"] = exc.reason.value
        headers = {"WWW-Authenticate": "Token"}
    elif isinstance(exc, InvalidCount):
        body["max"] = exc.total

    logger.info(
        "request_rejected path=%s kind=%s status=%d",
        request.url.path,
        exc.kind.value,
        status,
    )
    return JSONResponse(status_code=status, content=body, headers=headers)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RouletteError, roulette_error_handler)
