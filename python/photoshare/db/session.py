"""Sessions for the metadata store.

Sessions keep loaded rows usable after commit (expire_on_commit=False):
the store converts rows to plain records after the transaction closes.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit when the block exits cleanly, roll back and re-raise otherwise."""
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    db.commit()
