"""FastAPI application factory and entrypoint.

`create_app` wires settings, the database engine, both token services,
the admin directory, the analytics stubs and every router. Shared
objects live on `app.state` so tests can build isolated apps.

Route groups:
- /auth (learner Telegram login, admin login, admin profile)
- /me, /subjects, /topics, /leaderboard, /feed
- /practice, /revision
- /podcasts, /events
- /wallet, /coupons, /referral
- /admin/* (content CRUD, AI settings, analytics, users)
"""

import json
import logging
import time
import uuid
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from .admin_directory import AdminDirectory, BootstrapAdmin
from .admin_insights import AdminInsights
from .api.error_handlers import register_error_handlers
from .api.routes import admin_analytics, admin_content, admin_users, auth, content, health, learner, practice, wallet
from .auth import TokenService
from .config import Settings
from .database import build_engine, create_db_and_tables
from .utils.rate_limit import SlidingWindowLimiter

logger = logging.getLogger("examprep.api")


def _configure_logging(level: str) -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    logging.getLogger("examprep").setLevel(level)


def _log_payload(**fields) -> str:
    return json.dumps(fields, ensure_ascii=True, default=str)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    _configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        docs_url="/swagger" if settings.SWAGGER_ENABLED else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.SWAGGER_ENABLED else None,
    )

    engine = build_engine(settings.DATABASE_URL, pool_size=settings.PG_POOL_MAX)
    create_db_and_tables(engine)
    bootstrap = BootstrapAdmin.from_settings(settings)

    app.state.settings = settings
    app.state.engine = engine
    app.state.user_tokens = TokenService(settings.JWT_USER_SECRET, settings.APP_NAME, settings.JWT_TOKEN_TTL_MINUTES)
    app.state.admin_tokens = TokenService(settings.JWT_ADMIN_SECRET, settings.APP_NAME, settings.JWT_TOKEN_TTL_MINUTES)
    app.state.directory = AdminDirectory(bootstrap)
    app.state.insights = AdminInsights(bootstrap.primary_exam)
    app.state.login_limiter = SlidingWindowLimiter(settings.ADMIN_LOGIN_RATE_LIMIT_PER_MIN, 60)

    # Wide-open CORS keeps local console and mini-app frontends working in dev.
    if settings.ALLOW_DEV_CORS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
        request.state.request_id = req_id
        started = time.perf_counter()
        client = request.client.host if request.client else "unknown"
        response: Response
        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
            logger.exception(
                "request_failed %s",
                _log_payload(request_id=req_id, path=request.url.path, method=request.method,
                             duration_ms=elapsed_ms, client=client),
            )
            raise
        response.headers["X-Request-ID"] = req_id
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.info(
            "request_done %s",
            _log_payload(request_id=req_id, path=request.url.path, method=request.method,
                         status_code=response.status_code, duration_ms=elapsed_ms, client=client),
        )
        return response

    register_error_handlers(app)
    for module in (health, auth, learner, practice, content, wallet, admin_content, admin_analytics, admin_users):
        app.include_router(module.router)

    logger.info(
        "app_started %s",
        _log_payload(app=settings.APP_NAME, version=settings.APP_VERSION, env=settings.ENV,
                     sqlite=settings.is_sqlite, metrics=settings.METRICS_ENABLED),
    )
    return app


def run() -> None:
    import uvicorn

    settings = Settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.HTTP_PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
