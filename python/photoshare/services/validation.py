"""Precondition checks shared by the services.

Every check raises ValidationError before any store or storage call.
"""

from uuid import UUID

from photoshare.errors import ValidationError


def require_non_empty(**fields: str | None) -> None:
    """Fail if any named argument is empty.

    Example:
        require_non_empty(asset_id=asset.asset_id, key=asset.key)
    """
    empty = [name for name, value in fields.items() if not value]
    if empty:
        raise ValidationError(f"Empty value for {', '.join(empty)}")


def require_uuid(value: str, label: str) -> str:
    """Fail unless `value` parses as a UUID. Returns the value unchanged."""
    try:
        UUID(value)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"Invalid UUID string for {label}") from e
    return value
