"""
Database configuration module using centralized settings.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from core.config import settings
from core.logging import get_logger

logger = get_logger("database")

SQLALCHEMY_DATABASE_URL = settings.sqlalchemy_database_url


def _create_engine(url: str):
    if url.startswith("sqlite"):
        engine_kwargs = {
            "connect_args": {"check_same_thread": False},
            "echo": settings.enable_sql_logging,
        }
        # In-memory databases only live as long as their single connection
        if url in ("sqlite://", "sqlite:///:memory:"):
            engine_kwargs["poolclass"] = StaticPool
        sqlite_engine = create_engine(url, **engine_kwargs)

        @event.listens_for(sqlite_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    return create_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=settings.enable_sql_logging
    )


engine = _create_engine(SQLALCHEMY_DATABASE_URL)
logger.info("Database configuration loaded", dialect=engine.dialect.name, database=engine.url.database)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield a request-scoped session, rolling back if the request fails."""
    db = SessionLocal()
    try:
        logger.debug("Database session created")
        yield db
    except Exception as e:
        logger.error("Database session error", error=str(e))
        db.rollback()
        raise
    finally:
        db.close()
        logger.debug("Database session closed")
