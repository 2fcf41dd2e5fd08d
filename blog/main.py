"""
Главный файл приложения
Здесь создается FastAPI, подключаются маршруты, БД и кэш
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from slowapi.middleware import SlowAPIMiddleware
from slowapi.errors import RateLimitExceeded

from blog.config import Settings, settings as default_settings
from blog.routes import posts, comments, auth, users
from blog.services.cache import cache
from blog.utils.database import Database
from blog.utils.limiter import limiter
from blog.utils.exceptions import (
    app_error_handler,
    http_exception_handler,
    validation_exception_handler,
    integrity_error_handler,
    unhandled_exception_handler,
    AppError,
    rate_limit_exceeded_handler,
)

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(level=settings.LOG_LEVEL)

    database = Database(settings.DATABASE_URL, echo=settings.DEBUG)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # БД и Redis открываются на старте и закрываются на остановке
        database.connect()
        if settings.CREATE_TABLES:
            database.create_all()
        await cache.connect()
        logger.info("Application started")
        yield
        await cache.close()
        database.close()
        logger.info("Application stopped")

    # Создаем приложение
    app = FastAPI(
        title="Blog API",
        description="Blog with posts, comments, likes and tags",
        version="1.0.0",
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        docs_url=f"{settings.API_PREFIX}/docs",
        redoc_url=f"{settings.API_PREFIX}/redoc",
        lifespan=lifespan,
    )
    app.state.db = database

    # Глобальные обработчики ошибок

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # =============================
    # Ограничитель частоты запросов
    # =============================

    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # CORS (чтобы фронтенд мог обращаться к API)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.DEBUG else settings.CORS_ORIGINS,
        allow_credentials=not settings.DEBUG,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ==============
    # HEALTH-CHECKING
    # ==============

    @app.get("/health")
    async def health_check():
        """Проверка, что приложение живо"""
        return {"status": "ok", "cache": await cache.ping()}

    # =====================
    # Подключаем все ROUTES
    # =====================

    app.include_router(auth.router) # Регистрация и авторизация
    app.include_router(users.router) # Профиль
    app.include_router(posts.router) # Посты и лайки
    app.include_router(comments.router) # Комментарии

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
