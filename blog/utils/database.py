"""
Доступ к БД.

Движок и фабрика сессий живут в объекте Database, который создается
явно при старте приложения (lifespan) и закрывается при остановке.
Эндпоинты получают сессию через зависимость get_db.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from blog.models import Base

logger = logging.getLogger(__name__)


class Database:
    def __init__(self, url: str, echo: bool = False):
        self._url = url
        self._echo = echo
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    def connect(self) -> None:
        if self._engine is not None:
            return

        kwargs = {"future": True, "echo": self._echo}
        if self._url.startswith("sqlite"):
            # SQLite в памяти: одно соединение на весь процесс
            kwargs["connect_args"] = {"check_same_thread": False}
            if self._url in ("sqlite://", "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = True

        self._engine = create_engine(self._url, **kwargs)
        self._session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self._engine,
        )
        logger.info("Database engine created (%s)", self._engine.url.get_backend_name())

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database engine disposed")

    def new_session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError("Database is not connected")
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Сессия для работы вне запроса (фоновые задачи)."""
        db = self.new_session()
        try:
            yield db
        finally:
            db.close()


def get_db(request: Request):
    db = request.app.state.db.new_session()
    try:
        yield db
    finally:
        db.close()
