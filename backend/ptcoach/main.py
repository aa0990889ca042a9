# backend/ptcoach/main.py
from contextlib import asynccontextmanager
import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from redis.asyncio import Redis as AsyncRedis
from starlette.responses import JSONResponse
from fastapi_limiter import FastAPILimiter

from ptcoach.core.config import settings
from ptcoach.core.exceptions import UserActionException
from ptcoach.core.logging import configure_logging
from ptcoach.api.endpoints import (
    auth_router, users_router, packages_router, paytr_router,
    manual_payments_router, trainer_router, admin_router,
)

configure_logging()
log = structlog.get_logger(__name__)


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        limiter_redis = AsyncRedis.from_url(
            f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}/0",
            decode_responses=True
        )
        await FastAPILimiter.init(limiter_redis)

        yield

        await limiter_redis.aclose()

    app = FastAPI(
        title="PT Coach API",
        description="API платформы онлайн-тренировок: пакеты, подписки и оплата через PayTR.",
        version="1.0.0",
        lifespan=lifespan,
    )

    origins = [origin.strip() for origin in settings.ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(UserActionException)
    async def user_action_exception_handler(request: Request, exc: UserActionException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        log.exception("request.unhandled_exception", path=request.url.path, method=request.method)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Beklenmeyen bir hata oluştu. Lütfen daha sonra tekrar deneyin."},
        )

    @app.get("/health", tags=["System"])
    async def health():
        return {"status": "ok"}

    api_prefix = "/api/v1"
    app.include_router(auth_router, prefix=f"{api_prefix}/auth", tags=["Authentication"])
    app.include_router(users_router, prefix=f"{api_prefix}/user", tags=["Users"])
    app.include_router(packages_router, prefix=f"{api_prefix}/packages", tags=["Packages"])
    app.include_router(paytr_router, prefix=f"{api_prefix}/paytr", tags=["PayTR"])
    app.include_router(manual_payments_router, prefix=f"{api_prefix}/manual-payments", tags=["Manual Payments"])
    app.include_router(trainer_router, prefix=f"{api_prefix}/trainer", tags=["Trainer"])
    app.include_router(admin_router, prefix=f"{api_prefix}/admin", tags=["Admin"])

    return app

app = create_app()
