"""Application settings and validation.

Every value is read from the environment once, when `Settings()` is
constructed. Development defaults keep the service runnable locally;
`_validate` refuses those defaults outside `ENV=dev`.
"""

import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .enums import ExamCategory, UserRole

BASE = Path(__file__).resolve().parent.parent
DEFAULT_DB_URL = f"sqlite:///{BASE / 'examprep.db'}"

DEV_USER_SECRET = "change_me_user_secret"
DEV_ADMIN_SECRET = "change_me_admin_secret"
DEV_ADMIN_PASSWORD = "change_me_admin_password"


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def _int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


class Settings:
    ENV: str
    APP_NAME: str
    APP_VERSION: str
    HTTP_PORT: int
    GRPC_PORT: int
    LOG_LEVEL: str
    DATABASE_URL: str
    PG_POOL_MAX: int
    RMQ_URL: str
    RMQ_RPC_SERVER: str
    RMQ_RPC_CLIENT: str
    NATS_URL: str
    NATS_RPC_SERVER: str
    METRICS_ENABLED: bool
    SWAGGER_ENABLED: bool
    JWT_USER_SECRET: str
    JWT_ADMIN_SECRET: str
    JWT_TOKEN_TTL_MINUTES: int
    ADMIN_USERNAME: str
    ADMIN_PASSWORD: str
    ADMIN_DISPLAY_NAME: str
    ADMIN_EMAIL: str
    ADMIN_USER_ID: str
    ADMIN_PRIMARY_EXAM: str
    ADMIN_ROLE: str
    ADMIN_PERMISSIONS: List[str]
    ADMIN_CREATED_AT: Optional[datetime]
    ADMIN_LOGIN_RATE_LIMIT_PER_MIN: int
    ALLOW_DEV_CORS: bool

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.APP_NAME = os.getenv("APP_NAME", "examprep")
        self.APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
        self.HTTP_PORT = _int("HTTP_PORT", 8080)
        self.GRPC_PORT = _int("GRPC_PORT", 8081)
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.DATABASE_URL = os.getenv("DATABASE_URL") or os.getenv("PG_URL") or DEFAULT_DB_URL
        self.PG_POOL_MAX = _int("PG_POOL_MAX", 10)
        # message broker settings are passed through to the translation workers
        self.RMQ_URL = os.getenv("RMQ_URL", "")
        self.RMQ_RPC_SERVER = os.getenv("RMQ_RPC_SERVER", "")
        self.RMQ_RPC_CLIENT = os.getenv("RMQ_RPC_CLIENT", "")
        self.NATS_URL = os.getenv("NATS_URL", "")
        self.NATS_RPC_SERVER = os.getenv("NATS_RPC_SERVER", "")
        self.METRICS_ENABLED = _flag("METRICS_ENABLED", "false")
        self.SWAGGER_ENABLED = _flag("SWAGGER_ENABLED", "true")
        self.JWT_USER_SECRET = os.getenv("JWT_USER_SECRET", DEV_USER_SECRET)
        self.JWT_ADMIN_SECRET = os.getenv("JWT_ADMIN_SECRET", DEV_ADMIN_SECRET)
        self.JWT_TOKEN_TTL_MINUTES = _int("JWT_TOKEN_TTL_MINUTES", 1440)
        self.ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
        self.ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", DEV_ADMIN_PASSWORD)
        self.ADMIN_DISPLAY_NAME = os.getenv("ADMIN_DISPLAY_NAME", "Super Admin")
        self.ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
        self.ADMIN_USER_ID = os.getenv("ADMIN_USER_ID", "00000000-0000-0000-0000-000000000001")
        self.ADMIN_PRIMARY_EXAM = os.getenv("ADMIN_PRIMARY_EXAM", ExamCategory.NEET_PG.value).upper()
        self.ADMIN_ROLE = os.getenv("ADMIN_ROLE", UserRole.SUPER_ADMIN.value).upper()
        self.ADMIN_PERMISSIONS = [
            p.strip()
            for p in os.getenv("ADMIN_PERMISSIONS", "subjects.read,subjects.write").split(",")
            if p.strip()
        ]
        self.ADMIN_CREATED_AT = self._parse_created_at(os.getenv("ADMIN_CREATED_AT", ""))
        self.ADMIN_LOGIN_RATE_LIMIT_PER_MIN = _int("ADMIN_LOGIN_RATE_LIMIT_PER_MIN", 20)
        self.ALLOW_DEV_CORS = _flag("ALLOW_DEV_CORS", "true")
        self._validate()

    @staticmethod
    def _parse_created_at(raw: str) -> Optional[datetime]:
        raw = raw.strip()
        if not raw:
            return None
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            raise RuntimeError(f"ADMIN_CREATED_AT must be an ISO-8601 timestamp, got {raw!r}")
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    def _validate(self):
        try:
            uuid.UUID(self.ADMIN_USER_ID)
        except ValueError:
            raise RuntimeError("ADMIN_USER_ID must be a UUID")
        if self.ADMIN_ROLE not in (UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value):
            raise RuntimeError("ADMIN_ROLE must be ADMIN or SUPER_ADMIN")
        if self.ADMIN_PRIMARY_EXAM not in {e.value for e in ExamCategory}:
            raise RuntimeError(f"ADMIN_PRIMARY_EXAM must be one of {[e.value for e in ExamCategory]}")
        if self.JWT_TOKEN_TTL_MINUTES <= 0:
            raise RuntimeError("JWT_TOKEN_TTL_MINUTES must be positive")
        if self.ENV == "dev":
            return
        if self.JWT_USER_SECRET == DEV_USER_SECRET or self.JWT_ADMIN_SECRET == DEV_ADMIN_SECRET:
            raise RuntimeError("JWT secrets must be set to non-default values in non-dev environments")
        if self.JWT_USER_SECRET == self.JWT_ADMIN_SECRET:
            raise RuntimeError("JWT_USER_SECRET and JWT_ADMIN_SECRET must differ")
        if self.ADMIN_PASSWORD == DEV_ADMIN_PASSWORD:
            raise RuntimeError("ADMIN_PASSWORD must be set to a non-default value in non-dev environments")
