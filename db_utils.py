import logging
import os
from functools import lru_cache
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from sqlalchemy import create_engine, text

logger = logging.getLogger(__name__)


def _sqlite_url(db_file: str) -> str:
    # SQLAlchemy expects forward slashes for sqlite file URLs.
    db_file_abs = os.path.abspath(db_file)
    return "sqlite:///" + db_file_abs.replace("\\", "/")


def get_database_url(*, default_sqlite_db_file: str) -> str:
    url = os.getenv("DATABASE_URL") or os.getenv("SUPABASE_DATABASE_URL")
    if url:
        url = url.strip()
        # Heroku-style URLs sometimes come as postgres://
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://") :]

        # Supabase Transaction Pooler (6543) often times out for persistent servers;
        # Session mode (5432) is the stable choice for a long-running Flask app.
        if "supabase.com" in url and ":6543" in url:
            url = url.replace(":6543", ":5432")

        return url

    return _sqlite_url(default_sqlite_db_file)


def is_postgres_url(url: str) -> bool:
    u = (url or "").lower()
    return u.startswith("postgresql://") or u.startswith("postgres://")


@lru_cache(maxsize=8)
def get_engine(database_url: str):
    connect_args: Dict[str, Any] = {}

    if is_postgres_url(database_url):
        # Supabase commonly requires SSL.
        connect_args["sslmode"] = os.getenv("DB_SSLMODE", "require").strip().lower()
        connect_args["connect_timeout"] = 10
    else:
        # Connections are shared between request threads and the realtime thread.
        connect_args["check_same_thread"] = False

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_recycle=1800,
        future=True,
        connect_args=connect_args,
    )


ParamsType = Union[None, Dict[str, Any], Tuple[Any, ...], Iterable[Any]]


def _adapt_qmark_params(sql: str, params: ParamsType) -> Tuple[str, Dict[str, Any]]:
    if params is None:
        return sql, {}

    if isinstance(params, dict):
        return sql, params

    seq = list(params)

    bind: Dict[str, Any] = {}
    out = []
    idx = 0
    for ch in sql:
        if ch == "?":
            key = f"p{idx}"
            out.append(f":{key}")
            bind[key] = seq[idx]
            idx += 1
        else:
            out.append(ch)

    return "".join(out), bind


class DBConn:
    def __init__(self, conn):
        self._conn = conn

    def execute(self, sql: str, params: ParamsType = None):
        adapted_sql, bind = _adapt_qmark_params(sql, params)
        return self._conn.execute(text(adapted_sql), bind).mappings()

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        try:
            self._conn.close()
        except Exception as e:
            # A broken connection may raise while closing; don't let cleanup mask the real error.
            logger.warning("DB connection close failed: %s", e)


def connect(*, default_sqlite_db_file: str, database_url: Optional[str] = None) -> DBConn:
    url = database_url or get_database_url(default_sqlite_db_file=default_sqlite_db_file)
    engine = get_engine(url)
    return DBConn(engine.connect())


def init_schema(*, default_sqlite_db_file: str, database_url: Optional[str] = None) -> None:
    url = database_url or get_database_url(default_sqlite_db_file=default_sqlite_db_file)
    postgres = is_postgres_url(url)

    conn = connect(default_sqlite_db_file=default_sqlite_db_file, database_url=url)
    try:
        if postgres:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS customers (
                    id BIGSERIAL PRIMARY KEY,
                    name TEXT,
                    phone TEXT,
                    created_at TIMESTAMPTZ DEFAULT now()
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS products (
                    id BIGSERIAL PRIMARY KEY,
                    name TEXT,
                    image_url TEXT,
                    price NUMERIC
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS orders (
                    id BIGSERIAL PRIMARY KEY,
                    customer_id BIGINT REFERENCES customers(id),
                    product_id BIGINT REFERENCES products(id),
                    customer_name TEXT,
                    customer_phone TEXT,
                    product_name TEXT,
                    color TEXT,
                    price NUMERIC DEFAULT 0,
                    items JSONB,
                    comments TEXT,
                    status TEXT DEFAULT 'pending',
                    created_at TIMESTAMPTZ DEFAULT now(),
                    completed_at TIMESTAMPTZ
                )
                """
            )
        else:
            conn.execute(
                "CREATE TABLE IF NOT EXISTS customers (id INTEGER PRIMARY KEY,name TEXT,phone TEXT,created_at TEXT)"
            )
            conn.execute(
                "CREATE TABLE IF NOT EXISTS products (id INTEGER PRIMARY KEY,name TEXT,image_url TEXT,price REAL)"
            )
            conn.execute(
                "CREATE TABLE IF NOT EXISTS orders (id INTEGER PRIMARY KEY,customer_id INTEGER,product_id INTEGER,"
                "customer_name TEXT,customer_phone TEXT,product_name TEXT,color TEXT,price REAL DEFAULT 0,"
                "items TEXT,comments TEXT,status TEXT DEFAULT 'pending',created_at TEXT,completed_at TEXT)"
            )

        conn.commit()
    finally:
        conn.close()
