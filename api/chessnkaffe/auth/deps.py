"""
Authentication dependencies for FastAPI.

A request is authenticated by the httpOnly session cookie set at login, or
by an ``Authorization: Bearer`` header for API clients. Both carry the same
HS256 access token.
"""

import logging
import uuid
from typing import Any

from fastapi import Cookie, Header, HTTPException
from pydantic import BaseModel

from chessnkaffe import repo
from chessnkaffe.auth.security import decode_access_token
from chessnkaffe.config import DEV_MODE, SESSION_COOKIE_NAME

logger = logging.getLogger(__name__)


class AuthErrorDetail(BaseModel):
    message: str = "unauthorized"
    reason: str
    trace_id: str


class AuthError(Exception):
    def __init__(self, reason: str, detail: str = "unauthorized"):
        self.reason = reason
        self.detail = detail
        self.trace_id = str(uuid.uuid4())
        super().__init__(detail)


def _unauthorized(reason: str, trace_id: str, message: str = "unauthorized", status_code: int = 401) -> HTTPException:
    if DEV_MODE:
        detail: dict[str, Any] = AuthErrorDetail(message=message, reason=reason, trace_id=trace_id).model_dump()
    else:
        detail = {"message": message, "trace_id": trace_id}
    return HTTPException(status_code=status_code, detail=detail)


def _log_auth_failure(reason: str, trace_id: str, auth_source: str | None = None, user_id: str | None = None) -> None:
    logger.warning("[auth] failure reason=%s trace_id=%s source=%s user_id=%s", reason, trace_id, auth_source, user_id)


def _extract_bearer(authorization: str) -> str:
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise AuthError(reason="malformed_token", detail="Invalid Authorization header")
    return parts[1].strip()


def _user_from_token(token: str, trace_id: str, auth_source: str) -> dict[str, Any]:
    try:
        payload = decode_access_token(token)
    except HTTPException as exc:
        reason = "token_expired" if "expired" in str(exc.detail).lower() else "signature_invalid"
        _log_auth_failure(reason, trace_id, auth_source)
        raise _unauthorized(reason, trace_id) from exc

    user_id = str(payload.get("sub") or "")
    if not user_id:
        _log_auth_failure("token_missing_subject", trace_id, auth_source)
        raise _unauthorized("token_missing_subject", trace_id)
    try:
        user_id = str(uuid.UUID(user_id))
    except ValueError as exc:
        _log_auth_failure("token_subject_invalid", trace_id, auth_source)
        raise _unauthorized("token_subject_invalid", trace_id) from exc

    user = repo.get_user_by_id(user_id)
    if not user:
        _log_auth_failure("token_user_not_found", trace_id, auth_source, user_id)
        raise _unauthorized("token_user_not_found", trace_id)
    if user.get("disabled_at"):
        _log_auth_failure("account_disabled", trace_id, auth_source, user_id)
        raise _unauthorized("account_disabled", trace_id, message="Account disabled", status_code=403)

    logger.debug("[auth] ok user_id=%s source=%s", user_id, auth_source)
    return {
        "id": str(user["id"]),
        "email": str(user["email"]),
        "alias": user.get("alias"),
    }


def get_current_user(
    session_token: str | None = Cookie(default=None, alias=SESSION_COOKIE_NAME),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> dict[str, Any]:
    trace_id = str(uuid.uuid4())

    if session_token:
        return _user_from_token(session_token, trace_id, "cookie")

    if authorization:
        try:
            token = _extract_bearer(authorization)
        except AuthError as e:
            _log_auth_failure(e.reason, e.trace_id, auth_source="bearer")
            raise _unauthorized(e.reason, e.trace_id, message=e.detail) from e
        return _user_from_token(token, trace_id, "bearer")

    _log_auth_failure("missing_token", trace_id, auth_source="none")
    raise _unauthorized("missing_token", trace_id, message="Authentication required")
