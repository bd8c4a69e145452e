"""Database engine, session factory and the declarative base.

The engine is owned by a ``Database`` object built once at application startup
and disposed at shutdown; request handlers receive sessions through ``get_db``.
"""
from contextlib import contextmanager
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, declarative_base, sessionmaker

Base = declarative_base()


def _on_sqlite_connect(dbapi_conn, connection_record):
    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest properly under pysqlite
    dbapi_conn.isolation_level = None
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _on_sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


class Database:
    """Engine plus session factory for one database URL."""

    def __init__(self, url: str, busy_timeout: float = 5.0):
        self.url = url
        if url.startswith("sqlite"):
            # busy_timeout: seconds a writer waits for SQLite's database lock
            self.engine = create_engine(
                url, connect_args={"check_same_thread": False, "timeout": busy_timeout},
            )
            event.listen(self.engine, "connect", _on_sqlite_connect)
            event.listen(self.engine, "begin", _on_sqlite_begin)
        else:
            self.engine = create_engine(url, pool_pre_ping=True)
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    """FastAPI dependency: yields a session bound to the app's Database."""
    with request.app.state.database.session() as session:
        yield session
