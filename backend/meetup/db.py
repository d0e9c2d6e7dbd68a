"""Engine and session factory helpers."""

import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import sessionmaker


def create_engine_from_url(database_url: str) -> Engine:
    """Create an engine, making sure the directory of a SQLite file exists."""
    url = make_url(database_url)
    connect_args = {}
    if url.get_backend_name() == "sqlite":
        # Sessions poll from Starlette's threadpool
        connect_args["check_same_thread"] = False
        if url.database and url.database != ":memory:":
            directory = os.path.dirname(url.database)
            if directory:
                os.makedirs(directory, exist_ok=True)
    return create_engine(database_url, connect_args=connect_args)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

