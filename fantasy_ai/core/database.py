from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from fantasy_ai.core.config import settings
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # Single shared connection so in-memory databases survive across sessions
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    return {"pool_pre_ping": True, "pool_recycle": 300}


# Create SQLAlchemy engine (with graceful fallback for a bad DATABASE_URL)
try:
    engine = create_engine(
        settings.DATABASE_URL, echo=settings.DEBUG, **_engine_kwargs(settings.DATABASE_URL)
    )
    logger.info(f"Database engine created with URL: {settings.DATABASE_URL[:30]}...")
except Exception as e:
    logger.warning(f"Failed to create database engine: {e}")
    engine = None

if engine is not None:
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
else:
    SessionLocal = None

Base = declarative_base()


def get_db():
    """Dependency to get database session"""
    if SessionLocal is None:
        raise HTTPException(status_code=503, detail="Database not available")
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Initialize database tables"""
    if engine is None:
        logger.warning("Database engine not available, skipping table creation")
        return False

    try:
        # Import models so they register on Base.metadata
        from fantasy_ai.models import database_models  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
        return True

    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        return False


def check_db_connection():
    """Check if database connection is working"""
    if SessionLocal is None:
        logger.warning("Database not available")
        return False

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
