from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

Base = declarative_base()


def make_engine(database_url: str, timeout: float = 5.0) -> Engine:
    if database_url.startswith("sqlite"):
        # Busy timeout bounds how long a writer waits on the file lock
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": timeout},
        )
    return create_engine(database_url, pool_pre_ping=True, pool_timeout=timeout)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    # Import models so their tables are registered on Base.metadata
    import orderpay.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
