"""Authentication helpers and FastAPI security dependencies.

Two `TokenService` instances live on `app.state`: one signs learner
tokens, the other admin tokens, each with its own secret. The
`require_user` / `require_admin` dependencies extract the bearer token,
verify it with the matching service and hand the route an `Identity`.

Token verification raises HTTPExceptions on failure so the helpers can
be used directly as route dependencies.
"""

import hmac
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext

from .enums import ELEVATED_ROLES, ExamCategory, UserRole

logger = logging.getLogger("examprep.auth")

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
JWT_ALGORITHM = "HS256"

bearer_scheme = HTTPBearer(auto_error=False)


class TokenError(Exception):
    """Raised by `TokenService.parse` for any unusable token."""


@dataclass(frozen=True)
class Identity:
    user_id: uuid.UUID
    role: UserRole
    exam: ExamCategory


class TokenService:
    """Sign and verify HS256 tokens for one audience (learners or admins)."""

    def __init__(self, secret: str, issuer: str, ttl_minutes: int = 1440):
        self.secret = secret
        self.issuer = issuer
        self.ttl = timedelta(minutes=ttl_minutes)

    def generate(self, user_id: uuid.UUID, role: UserRole, exam: ExamCategory, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {
            "userId": str(user_id),
            "role": UserRole(role).value,
            "exam": ExamCategory(exam).value,
            "iss": self.issuer,
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=JWT_ALGORITHM)

    def parse(self, token: str) -> Identity:
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[JWT_ALGORITHM],
                issuer=self.issuer,
                options={"require": ["exp", "iss", "userId"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenError("token expired")
        except jwt.PyJWTError:
            raise TokenError("invalid token")
        try:
            return Identity(
                user_id=uuid.UUID(str(claims["userId"])),
                role=UserRole(claims.get("role")),
                exam=ExamCategory(claims.get("exam")),
            )
        except ValueError:
            raise TokenError("invalid token claims")


def credentials_match(expected_username: str, expected_password: str, username: str, password: str) -> bool:
    """Constant-time comparison against the configured bootstrap credentials."""
    user_ok = hmac.compare_digest(expected_username.encode(), username.encode())
    pass_ok = hmac.compare_digest(expected_password.encode(), password.encode())
    return user_ok and pass_ok


def _bearer_token(credentials: Optional[HTTPAuthorizationCredentials]) -> str:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise HTTPException(
            status_code=401,
            detail="missing or invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


def _verify(tokens: TokenService, token: str) -> Identity:
    try:
        return tokens.parse(token)
    except TokenError as exc:
        logger.info("token_rejected reason=%s", exc)
        raise HTTPException(status_code=401, detail="invalid token", headers={"WWW-Authenticate": "Bearer"})


def require_user(request: Request, credentials: HTTPAuthorizationCredentials = Security(bearer_scheme)) -> Identity:
    """FastAPI dependency for learner routes."""
    token = _bearer_token(credentials)
    return _verify(request.app.state.user_tokens, token)


def require_admin(request: Request, credentials: HTTPAuthorizationCredentials = Security(bearer_scheme)) -> Identity:
    """FastAPI dependency for `/admin/*` routes.

    The token must be signed with the admin secret and carry an elevated
    role; a valid token with a plain `USER` role gets 403.
    """
    token = _bearer_token(credentials)
    identity = _verify(request.app.state.admin_tokens, token)
    if identity.role not in ELEVATED_ROLES:
        raise HTTPException(status_code=403, detail="insufficient role")
    return identity
