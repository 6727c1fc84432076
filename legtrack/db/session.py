from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from legtrack.core.config import settings


def _engine_kwargs(url: str) -> dict:
    kwargs: dict = {"echo": settings.SQL_ECHO, "future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        # Drop dead pooled connections instead of handing them to a request.
        kwargs["pool_pre_ping"] = True
    return kwargs


engine = create_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
