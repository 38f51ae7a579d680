"""
Database Session Management

Provides the engine, the session factory injected into services, and the
transaction scope used by every multi-statement write.
"""
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event, exc, pool, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.engine import Engine

from config.settings import settings
from src.publicmap.errors import PublicMapError, TransactionFailure
from src.publicmap.utils.logger import get_logger

logger = get_logger(__name__)


def build_engine(database_url: str = None) -> Engine:
    """
    Create a database engine with connection pooling.

    Args:
        database_url: Override for settings.database_url

    Returns:
        SQLAlchemy engine
    """
    url = database_url or settings.database_url
    if url.startswith("sqlite"):
        return create_engine(url, echo=settings.database_echo)

    return create_engine(
        url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_timeout=settings.database_pool_timeout,
        pool_recycle=settings.database_pool_recycle,
        pool_pre_ping=True,  # Verify connections before using
        echo=settings.database_echo,  # Log SQL queries if enabled
    )


def build_session_factory(bind: Engine) -> sessionmaker:
    """Create the session factory handed to service constructors."""
    return sessionmaker(
        bind=bind,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False
    )


engine = build_engine()


@event.listens_for(pool.Pool, "invalidate")
def receive_invalidate(dbapi_conn, connection_record, exception):
    """
    Event listener for connection invalidation.

    Logs when a connection is marked as invalid and removed from pool.
    """
    logger.warning(
        "database_connection_invalidated",
        exception=str(exception) if exception else None
    )


SessionLocal = build_session_factory(engine)


@contextmanager
def transaction(session_factory: sessionmaker, operation: str) -> Generator[Session, None, None]:
    """
    Run a unit of work in one transaction with explicit rollback.

    Usage:
        with transaction(factory, "assign") as session:
            session.execute(...)

    Storage errors are rolled back and re-raised as TransactionFailure.
    Domain errors (NotFound, ValidationError, ...) are rolled back and
    re-raised unchanged.

    Args:
        session_factory: Injected session factory
        operation: Name used in log events

    Yields:
        Database session
    """
    session = session_factory()
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed", operation=operation)
    except PublicMapError:
        session.rollback()
        logger.info("transaction_rolled_back", operation=operation)
        raise
    except exc.SQLAlchemyError as e:
        session.rollback()
        logger.error(
            "transaction_rollback",
            operation=operation,
            error=str(e),
            error_type=type(e).__name__
        )
        raise TransactionFailure(f"{operation} failed and was rolled back") from e
    except Exception as e:
        session.rollback()
        logger.error(
            "transaction_error",
            operation=operation,
            error=str(e),
            error_type=type(e).__name__
        )
        raise
    finally:
        session.close()


@contextmanager
def read_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Session for read-only work; always closed, never committed."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def health_check(session_factory: sessionmaker = None) -> bool:
    """
    Check database connection health.

    Returns:
        True if database is accessible, False otherwise
    """
    try:
        with read_session(session_factory or SessionLocal) as session:
            session.execute(text("SELECT 1"))
            logger.info("database_health_check_success")
            return True
    except exc.SQLAlchemyError as e:
        logger.error(
            "database_health_check_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        return False


def close_connections():
    """
    Close all database connections and dispose of the engine.

    Should be called on application shutdown.
    """
    logger.info("closing_database_connections")
    engine.dispose()
    logger.info("database_connections_closed")


def create_all_tables(bind: Engine = None):
    """
    Create all database tables defined in models.

    WARNING: Use Alembic migrations instead in production.
    This is only for testing and initial setup.
    """
    from src.publicmap.db.base import Base, import_all_models

    logger.info("creating_database_tables")
    import_all_models()
    Base.metadata.create_all(bind=bind or engine)
    logger.info("database_tables_created")


def drop_all_tables(bind: Engine = None):
    """
    Drop all database tables.

    WARNING: This will delete all data! Only use in development/testing.
    """
    from src.publicmap.db.base import Base, import_all_models

    logger.warning("dropping_all_database_tables")
    import_all_models()
    Base.metadata.drop_all(bind=bind or engine)
    logger.warning("all_database_tables_dropped")
