import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from .. import repo
from ..auth.deps import get_current_user
from ..auth.security import create_access_token, hash_password, password_needs_rehash, verify_password
from ..config import ACCESS_TOKEN_TTL_MINUTES, RL_AUTH_LOGIN_LIMIT, RL_WINDOW_SECONDS, SESSION_COOKIE_NAME, SESSION_COOKIE_SECURE
from ..http_helpers import validate_login_input
from ..schemas import LoginRequest
from ..services.rate_limit import rate_limit_dependency

logger = logging.getLogger(__name__)

router = APIRouter()

RL_AUTH_LOGIN = rate_limit_dependency("auth_login", RL_AUTH_LOGIN_LIMIT, RL_WINDOW_SECONDS)


def _is_bearer_mode(request: Request) -> bool:
    return str(request.headers.get("X-Auth-Mode") or "").strip().lower() == "bearer"


def _set_session_cookie(response: Response, access_token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=access_token,
        httponly=True,
        secure=SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
        max_age=ACCESS_TOKEN_TTL_MINUTES * 60,
    )


@router.post("/login")
def auth_login(payload: LoginRequest, request: Request, response: Response, _: None = RL_AUTH_LOGIN) -> dict[str, Any]:
    """Sign in and set the httpOnly session cookie; bearer clients also get the token in the body."""
    email, password = validate_login_input(payload.email, payload.password)
    user = repo.get_user_by_email(email)
    if not user or not verify_password(password, str(user["password_hash"])):
        logger.info("[auth] invalid credentials for email=%s", email)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if user.get("disabled_at"):
        raise HTTPException(status_code=403, detail="Account disabled")

    user_id = str(user["id"])
    if password_needs_rehash(str(user["password_hash"])):
        repo.update_password_hash(user_id, hash_password(password))
        logger.info("[auth] rehashed password for user_id=%s", user_id)
    repo.update_last_login(user_id)
    access_token = create_access_token(user_id=user_id, email=str(user["email"]))
    _set_session_cookie(response, access_token)
    logger.info("[auth] login user_id=%s", user_id)

    body: dict[str, Any] = {"id": user_id, "email": str(user["email"]), "alias": user.get("alias")}
    if _is_bearer_mode(request):
        body.update(
            {
                "access_token": access_token,
                "token_type": "bearer",
                "expires_in": ACCESS_TOKEN_TTL_MINUTES * 60,
            }
        )
    return body


@router.post("/logout")
def auth_logout(response: Response, current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    response.delete_cookie(key=SESSION_COOKIE_NAME, path="/")
    return {"message": "Logged out"}


@router.get("/me")
def auth_me(current_user: dict[str, Any] = Depends(get_current_user)) -> dict[str, Any]:
    return {
        "id": str(current_user["id"]),
        "email": str(current_user["email"]),
        "alias": current_user.get("alias"),
    }
