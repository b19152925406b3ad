"""PostgreSQL engine and session factory, built from the settings an app was created with."""

from collections.abc import Generator

from fastapi import Request
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from userhub.core.config import Settings


def build_engine(settings: Settings) -> Engine:
    # In dev the engine may point at a local Postgres/proxy (DATABASE_LOCAL_URL).
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,
        echo=settings.DEBUG,
    )


def build_session_factory(settings: Settings) -> sessionmaker[Session]:
    """Session factory bound to a fresh engine for settings.database_url."""
    return sessionmaker(autocommit=False, autoflush=False, bind=build_engine(settings))


def get_db(request: Request) -> Generator[Session, None, None]:
    """Dependency that yields a session from the app's factory and closes it when done."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def check_db_connected(db: Session) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
