"""Database engine and session factory used across the application."""

from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import Engine, text
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from src.login_broker.runtime.config.config_data import DatabaseConfig
from src.login_broker.runtime.context import get_config


class DbSessionService:
    def __init__(self, db_config: DatabaseConfig | None = None) -> None:
        """Initialize the shared database engine and session factory."""
        db_config = db_config or get_config().database

        logger.info("Setting up database engine and session factory")
        self._engine = create_engine(db_config.url, **self._engine_kwargs(db_config))

    @staticmethod
    def _engine_kwargs(db_config: DatabaseConfig) -> dict:
        engine_kwargs: dict = {"echo": db_config.echo}

        if db_config.is_sqlite:
            # Identity store work runs in the threadpool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in db_config.url or db_config.url == "sqlite://":
                # One shared connection, otherwise each thread sees an empty database
                engine_kwargs["poolclass"] = StaticPool
            return engine_kwargs

        engine_kwargs.update(
            {
                "pool_size": db_config.pool_size,
                "max_overflow": db_config.max_overflow,
                "pool_timeout": db_config.pool_timeout,
                "pool_recycle": db_config.pool_recycle,
                "pool_pre_ping": True,
            }
        )
        return engine_kwargs

    @property
    def engine(self) -> Engine:
        return self._engine

    def get_session(self) -> Session:
        """Create a new database session."""
        return Session(self._engine)

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Session that commits on success and rolls back on error."""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_tables(self) -> None:
        """Create all registered tables."""
        # Register table models with the metadata
        from src.login_broker.entities import ProvisioningLinkTable, UserTable  # noqa: F401

        SQLModel.metadata.create_all(self._engine)

    def health_check(self) -> bool:
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("Database health check failed")
            return False

    def close(self) -> None:
        self._engine.dispose()
