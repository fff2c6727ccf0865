"""Sign-in endpoints for learners (Telegram) and the bootstrap admin."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlmodel import Session

from ... import schemas, services
from ...auth import Identity, require_admin
from ...database import get_session

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger("examprep.api")


def _enforce_login_rate_limit(request: Request) -> None:
    client = request.client.host if request.client else "unknown"
    retry_after = request.app.state.login_limiter.hit(f"admin-login:{client}")
    if retry_after:
        logger.warning("admin_login_throttled client=%s retry_after=%d", client, retry_after)
        raise HTTPException(
            status_code=429,
            detail=f"too many login attempts; retry after {retry_after}s",
            headers={"Retry-After": str(retry_after)},
        )


@router.post("/telegram", response_model=schemas.AuthResponse)
def telegram_login(payload: schemas.TelegramAuthRequest, request: Request, db: Session = Depends(get_session)):
    """Sign in a learner by Telegram id, registering them on first login."""
    svc = services.AuthService(db, request.app.state.user_tokens)
    return svc.telegram_login(payload)


@router.post("/admin/login", response_model=schemas.AuthResponse)
def admin_login(payload: schemas.AdminLoginRequest, request: Request):
    """Exchange the bootstrap admin credentials for an admin token."""
    _enforce_login_rate_limit(request)
    state = request.app.state
    svc = services.AdminAuthService(state.settings, state.admin_tokens, state.directory.bootstrap)
    result = svc.login(payload.username, payload.password)
    if result is None:
        raise HTTPException(status_code=401, detail="invalid credentials")
    return result


@router.get("/admin/me", response_model=schemas.AdminProfileOut)
def admin_me(request: Request, admin: Identity = Depends(require_admin)):
    state = request.app.state
    return services.AdminAuthService(state.settings, state.admin_tokens, state.directory.bootstrap).profile()
