"""Bearer token check for server-only routes such as ``POST /process``.

Processing costs money (speech-to-text and classifier calls), so deployments
that expose the API publicly set ``API_BEARER_TOKEN``. With no token
configured every caller is accepted.
"""

from __future__ import annotations

import secrets

from fastapi import Request
from fastapi.responses import JSONResponse

from podcast_sponsorblocker.api.schemas import ErrorResponse
from podcast_sponsorblocker.utils import constant


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token of a ``Bearer <token>`` header value, else ``None``."""
    scheme, _, token = (authorization or "").strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def is_authorized(request: Request) -> bool:
    """Return ``True`` when the request may call protected routes."""
    expected = constant.API_BEARER_TOKEN
    if not expected:
        return True
    provided = extract_bearer_token(request.headers.get("Authorization"))
    return provided is not None and secrets.compare_digest(provided, expected)


def unauthorized_response() -> JSONResponse:
    payload = ErrorResponse(
        error="invalid_token",
        message="Invalid authentication credentials.",
    ).model_dump()
    return JSONResponse(status_code=401, content=payload)
