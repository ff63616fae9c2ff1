"""Engine for the metadata store.

One engine per process, built by create_app from DATABASE_URL. Production
runs PostgreSQL through psycopg 3 (postgresql+psycopg://...). SQLite URLs
are accepted for local runs; an in-memory SQLite database is pinned to a
single shared connection, otherwise each checkout would see an empty schema.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool


def create_db_engine(database_url: str) -> Engine:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(url, pool_pre_ping=True)

    options: dict = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return create_engine(url, **options)
