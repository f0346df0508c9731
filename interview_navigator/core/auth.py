from __future__ import annotations

from typing import Optional

import urllib3
from fastapi import HTTPException, Request, status
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.urllib3 import Request as GoogleAuthRequest
from google.oauth2 import id_token as google_id_token

from interview_navigator.core.config import settings
from interview_navigator.schemas.user import UserContext


async def get_current_user(request: Request) -> UserContext:
    bearer = _read_bearer_token(request)
    if bearer:
        token_info = verify_token(bearer)
        return UserContext(
            user_id=token_info["uid"],
            email=token_info.get("email") or None,
            full_name=token_info.get("name") or None,
        )

    if settings.auth_mode == "firebase":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    # Dev-mode user context:
    # - X-User-Id: firebase-uid
    # - X-User-Email: user@example.com
    user_id = (request.headers.get("x-user-id") or "").strip()
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    email = request.headers.get("x-user-email") or None
    full_name = request.headers.get("x-user-name") or (_derive_name_from_email(email) if email else None)
    return UserContext(user_id=user_id, email=email, full_name=full_name)


def _read_bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization") or ""
    prefix = "bearer "
    if auth.lower().startswith(prefix):
        return auth[len(prefix) :].strip()
    return None


def verify_token(token: str) -> dict:
    """Verify a Firebase ID token and return ``{"uid", "email", "name"}``."""
    if not settings.firebase_project_id:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Missing Firebase project id")
    try:
        req = GoogleAuthRequest(urllib3.PoolManager())
        claims = google_id_token.verify_firebase_token(
            token,
            req,
            audience=settings.firebase_project_id,
            clock_skew_in_seconds=int(settings.google_clock_skew_seconds),
        )
    except (GoogleAuthError, ValueError) as exc:
        detail = "Invalid token"
        if settings.environment != "production":
            detail = f"Invalid token: {exc}"
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

    uid = (claims or {}).get("user_id") or (claims or {}).get("sub")
    if not uid:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token (missing uid)")
    return {"uid": uid, "email": claims.get("email"), "name": claims.get("name")}


def _derive_name_from_email(email: str) -> str:
    local = email.split("@", 1)[0].strip()
    if not local:
        return email
    parts = [p for p in local.replace("_", ".").split(".") if p]
    if not parts:
        return local
    return " ".join(p[:1].upper() + p[1:] for p in parts)
