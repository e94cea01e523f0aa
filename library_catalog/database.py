from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from library_catalog.config import settings


def build_engine(database_url: str, echo: bool = False):
    """Create an engine for the given URL.

    SQLite connections are shared across request threads, so same-thread
    checking is disabled there; server databases get a pre-pinged pool.
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_recycle=300,
        pool_size=10,
        max_overflow=20,
        echo=echo,
    )


engine = build_engine(settings.database_url, settings.database_echo)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db(bind=None):
    """Create all tables for the registered models."""
    import library_catalog.models  # noqa: F401  (registers the mappers)
    Base.metadata.create_all(bind=bind or engine)
