from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from libs.common.config import get_settings

settings = get_settings()


def _install_sqlite_hooks(engine: AsyncEngine) -> None:
    """
    SQLite has no SELECT ... FOR UPDATE. Taking the database write lock at
    BEGIN (BEGIN IMMEDIATE) serialises writers, which gives the row locks used
    by the services the same effect locally and in tests.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself instead of pysqlite
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, **overrides: Any) -> AsyncEngine:
    """
    Create the async engine for ``url``.

    Pool sizing only applies to server databases; SQLite gets a busy timeout
    and the locking hooks instead.
    """
    options: dict[str, Any] = {
        "echo": settings.DB_ECHO,
        "future": True,
        "pool_pre_ping": True,
    }
    is_sqlite = make_url(url).get_backend_name() == "sqlite"
    if is_sqlite:
        options["connect_args"] = {"timeout": settings.SQLITE_BUSY_TIMEOUT}
    else:
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
        )
    options.update(overrides)

    engine = create_async_engine(url, **options)
    if is_sqlite:
        _install_sqlite_hooks(engine)
    return engine


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=bind, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


engine = build_engine(settings.DATABASE_URL)

AsyncSessionLocal = build_session_factory(engine)
