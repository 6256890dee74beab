from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ride_booking.config import settings

Base = declarative_base()


def create_db_engine(database_url: str = None):
    """Create an engine; in-memory sqlite shares one connection across threads"""
    database_url = database_url or settings.DATABASE_URL

    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    return create_engine(database_url, pool_pre_ping=True)


def create_session_factory(database_url: str = None) -> sessionmaker:
    """Create the tables if needed and return a session factory bound to them"""
    from ride_booking import models  # noqa: F401  registers the tables on Base

    engine = create_db_engine(database_url)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
