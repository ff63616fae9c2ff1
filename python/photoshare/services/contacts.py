"""Contact discovery.

Resolves identifiers the client already holds (user ids, hashed phone
numbers, hashed emails) against registered users without either side
exchanging plaintext contact data.
"""

from collections.abc import Sequence

from photoshare.db.store import MetadataStore
from photoshare.errors import NotFoundOrEmptyError
from photoshare.logging import get_logger
from photoshare.schemas.users import ContactMatchesOut
from photoshare.services.faults import store_errors

logger = get_logger(__name__)


def resolve_contacts(
    store: MetadataStore,
    ids: Sequence[str],
    phone_hashes: Sequence[str],
    email_hashes: Sequence[str],
) -> ContactMatchesOut:
    """Partition identifiers into known users and unmatched identifiers.

    A user matched in more than one identifier space appears once.

    Raises:
        NotFoundOrEmptyError: Nothing matched, including when all three
            lists are empty.
    """
    with store_errors("get_public_info_for_users", no_data=NotFoundOrEmptyError("No matches")):
        existing, unmatched = store.get_public_info_for_users(ids, phone_hashes, email_hashes)

    logger.info("contacts_resolved", matched=len(existing), unmatched=len(unmatched))
    return ContactMatchesOut(existing=existing, unmatched=unmatched)


def validate_ids(store: MetadataStore, ids: Sequence[str]) -> list[str]:
    """Return the ids that belong to registered users, in input order."""
    with store_errors("verify_identifiers", no_data=NotFoundOrEmptyError("No valid ids")):
        return store.verify_identifiers(ids)
