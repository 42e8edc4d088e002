from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from wellquest.core.config import settings


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)

AUTH_MODE_DEV = "dev"
AUTH_MODE_TOKEN = "oidc"


@dataclass(frozen=True)
class Viewer:
    id: str
    email: str | None
    name: str | None
    auth_mode: str


DEV_VIEWER = Viewer(id="dev", email="dev@leobit.com", name="Dev User", auth_mode=AUTH_MODE_DEV)


def get_auth_mode() -> str:
    return AUTH_MODE_DEV if settings.dev_mode else AUTH_MODE_TOKEN


def decode_viewer_token(token: str) -> Viewer:
    options = {"verify_aud": bool(settings.jwt_audience)}
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience or None,
            issuer=settings.jwt_issuer or None,
            options=options,
        )
    except JWTError as e:
        raise HTTPException(status_code=401, detail="invalid token") from e

    sub = str(payload.get("sub") or "").strip()
    if not sub:
        raise HTTPException(status_code=401, detail="invalid token")

    return Viewer(
        id=sub,
        email=payload.get("email"),
        name=payload.get("name"),
        auth_mode=AUTH_MODE_TOKEN,
    )


def get_current_viewer(request: Request, token: str | None = Depends(oauth2_scheme)) -> Viewer:
    if settings.dev_mode:
        viewer = DEV_VIEWER
    else:
        if not token:
            token = request.cookies.get("quest_token")
        if not token:
            raise HTTPException(status_code=401, detail="not authenticated")
        viewer = decode_viewer_token(token)

    request.state.user_id = viewer.id
    return viewer


def admin_subs() -> set[str]:
    return {s.strip() for s in str(settings.admin_subs or "").split(",") if s.strip()}


def require_admin(viewer: Viewer = Depends(get_current_viewer)) -> Viewer:
    # The dev viewer only exists locally and operates everything.
    if viewer.auth_mode == AUTH_MODE_DEV:
        return viewer
    if viewer.id not in admin_subs():
        raise HTTPException(status_code=403, detail="forbidden")
    return viewer
