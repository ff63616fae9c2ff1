"""Storage locator utilities.

This module is the single point of logic for decomposing storage locators
and deriving one representation's object key from the other's.

Locator Invariant:
    - URL-shaped: {scheme}://{host}/{container}/{objectKey}
    - The path component decomposes into /{container}/{objectKey}
    - objectKey may itself contain slashes

Representation Invariant:
    - Original and low representations share one base key
    - They differ only by a literal marker in the key: "_original" vs "_low"
    - Substitution is applied to the key portion only, never to the container
"""

from urllib.parse import urlsplit

ORIGINAL_MARKER = "_original"
LOW_MARKER = "_low"


class InvalidLocatorError(ValueError):
    """Locator cannot be decomposed into container and object key."""


def parse_locator(locator: str) -> tuple[str, str]:
    """Parse a storage locator into (container, object_key).

    Args:
        locator: Fully-qualified locator, e.g. "https://s3.host/bucket/user/abc_original".

    Returns:
        Tuple of (container, object_key).

    Raises:
        InvalidLocatorError: If the path has no container or no key.
    """
    try:
        path = urlsplit(locator).path
    except ValueError as e:
        raise InvalidLocatorError(f"Malformed storage locator: {locator!r}") from e

    parts = path.split("/", 2)
    if len(parts) < 3 or not parts[1] or not parts[2]:
        raise InvalidLocatorError(f"Storage locator has no container/key: {locator!r}")
    return parts[1], parts[2]


def low_key_for(original_key: str) -> str:
    """Derive the low-representation key from the original-representation key."""
    return original_key.replace(ORIGINAL_MARKER, LOW_MARKER)


def representation_keys(original_locator: str) -> tuple[str, str, str]:
    """Decompose an original-representation locator.

    Returns:
        Tuple of (container, original_key, low_key).
    """
    container, original_key = parse_locator(original_locator)
    return container, original_key, low_key_for(original_key)


def low_locator_for(original_locator: str) -> str:
    """Derive the low-representation locator from an original-representation locator."""
    parts = urlsplit(original_locator)
    container, original_key = parse_locator(original_locator)
    path = f"/{container}/{low_key_for(original_key)}"
    return parts._replace(path=path).geturl()


def group_by_container(locators: list[str]) -> dict[str, list[str]]:
    """Group locators' object keys by container.

    Containers keep the order in which they first appear; keys keep input order.

    Raises:
        InvalidLocatorError: If any locator is malformed. Nothing is grouped then.
    """
    grouped: dict[str, list[str]] = {}
    for locator in locators:
        container, key = parse_locator(locator)
        grouped.setdefault(container, []).append(key)
    return grouped
