import os
import re
import logging
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from dotenv import load_dotenv
from pathlib import Path
from urllib.parse import urlparse, parse_qs, urlencode, urlunparse

load_dotenv(dotenv_path=Path(__file__).parent.parent / ".env", override=True)

_logger = logging.getLogger(__name__)

_raw_url = os.getenv("DATABASE_URL", "sqlite:///./hrsync.db")


def normalize_database_url(raw_url: str) -> tuple[str, dict]:
    """
    Return (url, connect_args) for create_engine.

    - postgres:// and postgresql:// are pinned to psycopg2
    - ssl / sslmode query params are moved into connect_args
    - sqlite gets check_same_thread disabled for the request threadpool
    """
    if raw_url.startswith("sqlite"):
        return raw_url, {"check_same_thread": False}

    url = re.sub(r'^postgres(ql)?(\+\w+)?://', 'postgresql+psycopg2://', raw_url)

    parsed = urlparse(url)
    params = parse_qs(parsed.query)
    needs_ssl = bool(params.pop("ssl", None) or params.pop("sslmode", None))
    clean_query = urlencode({k: v[0] for k, v in params.items()}) if params else ""
    url = urlunparse((parsed.scheme, parsed.netloc, parsed.path, parsed.params, clean_query, parsed.fragment))

    connect_args = {}
    if needs_ssl:
        connect_args["sslmode"] = "require"
    return url, connect_args


def enable_sqlite_savepoints(sqlite_engine):
    """
    pysqlite opens transactions lazily, which breaks SAVEPOINT.
    Hand transaction control to SQLAlchemy so begin_nested() works.
    """

    @event.listens_for(sqlite_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sqlite_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return sqlite_engine


DATABASE_URL, _connect_args = normalize_database_url(_raw_url)

_logger.info("DB URL normalized: %s...  connect_args=%s", DATABASE_URL[:50], sorted(_connect_args))

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=_connect_args)
if DATABASE_URL.startswith("sqlite"):
    enable_sqlite_savepoints(engine)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all tables. Schema migrations are managed outside this service."""
    # models must be imported so they register on Base.metadata
    from hrsync.models import employee, import_log, lifecycle, setting  # noqa: F401

    Base.metadata.create_all(bind=engine)
