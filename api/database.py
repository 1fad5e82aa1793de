from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    """Create an engine suited to the configured database"""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        # In-memory databases live inside a single connection
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    # Normalize postgres:// -> postgresql:// for SQLAlchemy
    if database_url.startswith("postgres://"):
        database_url = "postgresql://" + database_url[len("postgres://"):]

    return create_engine(
        database_url,
        pool_size=5,            # Base connections kept open
        max_overflow=10,        # Additional connections when pool is full
        pool_timeout=30,        # Wait up to 30s for a connection
        pool_pre_ping=True,     # Check connections are alive before using
    )


def make_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
