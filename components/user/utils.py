"""Role checks for the acting user."""

from components.core import exceptions
from components.user.models import User


def ensure_admin(actor: User) -> None:
    if actor is None or not actor.is_admin:
        raise exceptions.PermissionDeniedError("Admin role required")


def ensure_client(actor: User) -> None:
    if actor is None or actor.is_admin:
        raise exceptions.PermissionDeniedError("Client role required")


def can_view_client(actor: User, client_id: int) -> bool:
    """Admins see every client; a client sees only themselves."""
    return actor is not None and (actor.is_admin or actor.id == client_id)
