import os

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./supplychain.db")
DB_BUSY_TIMEOUT = float(os.getenv("SUPPLYCHAIN_DB_BUSY_TIMEOUT", "5"))
DEFAULT_TIMEOUT = float(os.getenv("SUPPLYCHAIN_DEFAULT_TIMEOUT", "10"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


class Base(DeclarativeBase):
    pass


def _install_sqlite_locking(engine: Engine) -> None:
    # pysqlite defers BEGIN until the first DML, which lets two writers both
    # read before either locks. Take the write lock when the transaction opens.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def make_engine(url: str | None = None, busy_timeout: float | None = None) -> Engine:
    url = url or DATABASE_URL
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={
                "check_same_thread": False,
                "timeout": DB_BUSY_TIMEOUT if busy_timeout is None else busy_timeout,
            },
            future=True,
        )
        _install_sqlite_locking(engine)
        return engine
    return create_engine(url, pool_pre_ping=True, future=True)
