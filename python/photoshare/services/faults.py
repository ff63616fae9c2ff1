"""Translation of downstream faults into API errors.

Storage and persistence faults are logged here with their detail. Callers
only ever see the generic message carried by the returned ApiError.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from photoshare.db.store import NoDataError, PersistenceError
from photoshare.errors import ApiError, PersistenceFaultError, StorageFaultError
from photoshare.logging import get_logger
from photoshare.storage.client import StorageError

logger = get_logger(__name__)


def storage_fault(e: StorageError, operation: str, **context) -> StorageFaultError:
    """Log a storage failure and return the error to raise."""
    logger.error(
        "storage_fault", operation=operation, code=e.code, error=e.message, **context
    )
    return StorageFaultError()


def persistence_fault(e: PersistenceError, operation: str, **context) -> PersistenceFaultError:
    """Log a metadata store failure and return the error to raise."""
    logger.error("persistence_fault", operation=operation, error=str(e), **context)
    return PersistenceFaultError()


@contextmanager
def store_errors(operation: str, no_data: ApiError | None = None, **context) -> Iterator[None]:
    """Map metadata store exceptions raised inside the block.

    Args:
        operation: Store operation name, for logs.
        no_data: Error raised on NoDataError. When None, NoDataError is
            treated as a persistence fault.
    """
    try:
        yield
    except NoDataError as e:
        if no_data is None:
            raise persistence_fault(PersistenceError(str(e)), operation, **context) from e
        raise no_data from e
    except PersistenceError as e:
        raise persistence_fault(e, operation, **context) from e
