from datetime import timezone

import pytest

from examprep.config import Settings


@pytest.fixture
def env(monkeypatch):
    for name in ("ENV", "JWT_USER_SECRET", "JWT_ADMIN_SECRET", "ADMIN_PASSWORD", "ADMIN_USER_ID",
                 "ADMIN_ROLE", "ADMIN_PRIMARY_EXAM", "ADMIN_CREATED_AT", "DATABASE_URL", "PG_URL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def production(env, **overrides):
    values = {
        "ENV": "prod",
        "JWT_USER_SECRET": "u" * 32,
        "JWT_ADMIN_SECRET": "a" * 32,
        "ADMIN_PASSWORD": "a-real-password",
    }
    values.update(overrides)
    for name, value in values.items():
        env.setenv(name, value)


def test_dev_defaults(env):
    settings = Settings()
    assert settings.ENV == "dev"
    assert settings.is_sqlite
    assert settings.ADMIN_ROLE == "SUPER_ADMIN"
    assert settings.ADMIN_CREATED_AT is None
    assert settings.ADMIN_LOGIN_RATE_LIMIT_PER_MIN == 20


def test_pg_url_is_accepted(env):
    env.setenv("PG_URL", "postgresql+psycopg://u:p@db/examprep")
    settings = Settings()
    assert settings.DATABASE_URL.startswith("postgresql")
    assert not settings.is_sqlite


def test_production_requires_real_secrets(env):
    production(env, JWT_USER_SECRET="change_me_user_secret")
    with pytest.raises(RuntimeError, match="JWT secrets"):
        Settings()


def test_production_requires_distinct_secrets(env):
    production(env, JWT_ADMIN_SECRET="u" * 32)
    with pytest.raises(RuntimeError, match="must differ"):
        Settings()


def test_production_requires_admin_password(env):
    production(env, ADMIN_PASSWORD="change_me_admin_password")
    with pytest.raises(RuntimeError, match="ADMIN_PASSWORD"):
        Settings()


def test_production_ok(env):
    production(env)
    assert Settings().ENV == "prod"


@pytest.mark.parametrize("name,value", [
    ("ADMIN_USER_ID", "not-a-uuid"),
    ("ADMIN_ROLE", "USER"),
    ("ADMIN_PRIMARY_EXAM", "GRE"),
    ("JWT_TOKEN_TTL_MINUTES", "0"),
    ("HTTP_PORT", "eighty"),
    ("ADMIN_CREATED_AT", "yesterday"),
])
def test_invalid_values(env, name, value):
    env.setenv(name, value)
    with pytest.raises(RuntimeError):
        Settings()


def test_created_at_without_offset_is_utc(env):
    env.setenv("ADMIN_CREATED_AT", "2024-01-02T03:04:05")
    created = Settings().ADMIN_CREATED_AT
    assert created.tzinfo == timezone.utc
    assert created.hour == 3


def test_permissions_are_split(env):
    env.setenv("ADMIN_PERMISSIONS", "users.read, users.write,,")
    assert Settings().ADMIN_PERMISSIONS == ["users.read", "users.write"]
