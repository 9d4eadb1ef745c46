from typing import Optional

from hangoutz.core.exceptions import ForbiddenError


def is_owner(identity: Optional[str], owner_id: Optional[str]) -> bool:
    """True when the authenticated identity owns the resource."""
    if identity is None or owner_id is None:
        return False
    return str(identity) == str(owner_id)


def ensure_owner(identity: Optional[str], owner_id: Optional[str], message: str = "Not authorized") -> None:
    if not is_owner(identity, owner_id):
        raise ForbiddenError(message)
