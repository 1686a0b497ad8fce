"""
Origin policy and response builders.

Every JSON response the relay produces goes through json_response() so the
CORS header set is identical on success and error paths.
"""
from typing import Any, Dict, Optional

from fastapi import Response
from fastapi.responses import JSONResponse, PlainTextResponse

from relay.config import OriginPolicy, RelayConfig


def resolve_origin(origin: str, config: RelayConfig) -> Optional[str]:
    """
    Decide which origin to echo in Access-Control-Allow-Origin.

    Returns None when the request must be rejected (strict-deny only).
    Under permissive-echo an unknown origin falls back to the first
    allowed origin and the request still proceeds.
    """
    if origin in config.allowed_origins:
        return origin
    if config.origin_policy == OriginPolicy.STRICT_DENY:
        return None
    return config.allowed_origins[0]


def cors_headers(origin: str) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


def json_response(data: Any, status_code: int, origin: str) -> JSONResponse:
    return JSONResponse(content=data, status_code=status_code, headers=cors_headers(origin))


def error_response(description: str, status_code: int, origin: str) -> JSONResponse:
    """Relay-generated failure in the upstream's {ok, description} shape."""
    return json_response({"ok": False, "description": description}, status_code, origin)


def preflight_response(origin: str) -> Response:
    return Response(status_code=204, headers=cors_headers(origin))


def forbidden_response() -> PlainTextResponse:
    # No CORS headers: the browser must not be told which origins are allowed
    return PlainTextResponse("Forbidden", status_code=403)
