"""Database module for photoshare.

Provides engine creation, session management, ORM models, and the
metadata store.
"""

from photoshare.db.engine import create_db_engine
from photoshare.db.models import (
    Asset,
    Base,
    Group,
    GroupAsset,
    GroupMembership,
    MembershipStatus,
    User,
)
from photoshare.db.session import create_session_factory, transaction
from photoshare.db.store import (
    MetadataStore,
    NoDataError,
    PersistenceError,
    SqlMetadataStore,
)

__all__ = [
    # Engine and session
    "create_db_engine",
    "create_session_factory",
    "transaction",
    # Models
    "Asset",
    "Base",
    "Group",
    "GroupAsset",
    "GroupMembership",
    "MembershipStatus",
    "User",
    # Store
    "MetadataStore",
    "NoDataError",
    "PersistenceError",
    "SqlMetadataStore",
]
