from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


class UpstreamError(Exception):
    """An upstream API could not produce a usable response."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class UpstreamAuthError(UpstreamError):
    pass


class UpstreamResponseError(UpstreamError):
    pass


class AssetNotSupportedError(Exception):
    def __init__(self, asset_id: str):
        super().__init__(f"Asset not supported: {asset_id}")
        self.asset_id = asset_id


def error_response(status_code: int, message: str, details: Optional[Any] = None, headers=None) -> JSONResponse:
    try:
        name = HTTPStatus(status_code).phrase
    except ValueError:
        name = "Unknown Error"

    body = {
        "error": name,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def asset_not_supported_handler(request: Request, exc: AssetNotSupportedError):
    return error_response(404, "Asset not supported", details={"id": exc.asset_id})


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(AssetNotSupportedError, asset_not_supported_handler)
