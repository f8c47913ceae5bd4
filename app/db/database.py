from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.exc import OperationalError, TimeoutError
from app.core.config import settings
import logging
import time
import random

logger = logging.getLogger(__name__)


def _engine_options(database_url: str) -> dict:
    """Pool settings for PostgreSQL; SQLite (local runs, tests) takes none of them"""
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}

    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,  # Verify connections before using
        "pool_recycle": 300,  # Recycle connections every 5 minutes
        "pool_timeout": 20,
        "connect_args": {
            "connect_timeout": 8,
            "options": "-c statement_timeout=25000",  # 25 second statement timeout
        },
    }


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db_with_retry(max_retries=None, base_delay=0.5):
    """Get database session, retrying the connection check with backoff"""
    max_retries = max_retries or settings.DB_CONNECT_RETRIES
    last_error = None

    for attempt in range(max_retries):
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        except (OperationalError, TimeoutError) as e:
            db.close()
            last_error = e
            if attempt < max_retries - 1:
                # Exponential backoff with jitter
                delay = base_delay * (2 ** attempt) + random.uniform(0, 0.5)
                logger.warning(f"Database connection attempt {attempt + 1} failed, retrying in {delay:.2f}s: {str(e)[:100]}...")
                time.sleep(delay)
            continue

        try:
            yield db
        finally:
            db.close()
        return

    logger.error(f"Database connection failed after {max_retries} attempts: {str(last_error)}")
    raise last_error


def get_db():
    """Standard dependency to get DB session with retry logic"""
    yield from get_db_with_retry()
