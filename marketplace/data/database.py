# marketplace/data/database.py
from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from marketplace.utils.settings import DATABASE_URL, DB_LOCK_TIMEOUT_MS
from marketplace.utils.retry import db_connect_retry
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

Base = declarative_base()


def make_engine(url: str):
    connect_args = {}
    if url.startswith("sqlite"):
        #sessions are used from fastapi worker threads
        connect_args["check_same_thread"] = False
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def set_lock_timeout(db: Session) -> None:
    """Bound row lock waits for the current transaction (postgres only)."""
    if DB_LOCK_TIMEOUT_MS <= 0:
        return
    if db.get_bind().dialect.name != "postgresql":
        return
    db.execute(text(f"SET LOCAL lock_timeout = {int(DB_LOCK_TIMEOUT_MS)}"))


@db_connect_retry()
def init_db(bind=None) -> None:
    #models have to be imported before create_all so Base.metadata knows them
    import marketplace.data.models  # noqa: F401

    bind = bind or engine
    logger.info(f"Creating tables: {list(Base.metadata.tables.keys())}")
    Base.metadata.create_all(bind=bind)
