from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, scoped_session
from sqlmodel import SQLModel
from app.config.settings import settings


def build_engine(url: str) -> Engine:
    """Create an engine for `url`.

    PostgreSQL gets a sized connection pool; SQLite (tests, local runs) must
    allow its connections to be used from the request threadpool.
    """
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False}, echo=False)
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        echo=False
    )


engine = build_engine(settings.database_url)

# session factory (scoped session if multithreaded or async)
SessionLocal = scoped_session(sessionmaker(autocommit=False, autoflush=False, bind=engine))


def create_tables(bind: Engine = engine) -> None:
    # models must be imported so their tables register in the metadata
    import app.models.content  # noqa: F401
    import app.models.my_list_item  # noqa: F401

    SQLModel.metadata.create_all(bind=bind)


def get_db():
    """
    generates a new database session.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
