from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from restauri.core.config import settings
from restauri.core.logger import get_logger

logger = get_logger(__name__)


def build_engine(database_url: str, **kwargs):
    """Create an engine for *database_url*; SQLite connections may cross threads."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Queries run in the threadpool, not on the thread that opened the session
        connect_args["check_same_thread"] = False
    return create_engine(
        database_url,
        connect_args=connect_args,
        echo=settings.DB_ECHO,
        pool_pre_ping=True,
        **kwargs,
    )


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Dependency that yields a session and always closes it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None) -> None:
    """Create all tables that do not exist yet."""
    # Models must be imported so they register on Base.metadata
    import restauri.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables ensured", extra={"component": "database"})


def ping(db: Session) -> bool:
    """Run a trivial query; raises if the database is unreachable."""
    db.execute(text("SELECT 1"))
    return True
