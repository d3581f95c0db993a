"""The authenticated caller of a request."""

from collections.abc import Iterable
from dataclasses import dataclass, field

from member_service.core.types import Claims

MACHINE_GRANT_TYPE = "client-credentials"


@dataclass(frozen=True)
class Principal:
    """Identity and rights of the caller, read-only once built.

    Attributes:
        user_id: Identifier of the user, or of the client for machine tokens.
        handle: Member handle, ``None`` for machine callers.
        roles: Raw role names carried by the token.
        scopes: Granted scopes (machine tokens).
        is_machine: Whether the token was issued to a machine client.
        is_admin: Whether any role is an administrative role, as computed
            when the token was decoded. Authorization also checks ``roles``.
    """

    user_id: str | None = None
    handle: str | None = None
    roles: frozenset[str] = field(default_factory=frozenset)
    scopes: frozenset[str] = field(default_factory=frozenset)
    is_machine: bool = False
    is_admin: bool = False


def find_claim(claims: Claims, name: str) -> object | None:
    """Return the claim called ``name``, plain or namespaced.

    Tokens may carry custom claims under a namespace URL, e.g.
    ``https://example.com/roles``; any key ending with ``name`` matches.
    """
    if name in claims:
        return claims[name]
    for key, value in claims.items():
        if key.endswith(f"/{name}"):
            return value
    return None


def claim_strings(value: object) -> frozenset[str]:
    """Normalize a list claim or a space separated string to a set."""
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset(value.split())
    if isinstance(value, Iterable):
        return frozenset(str(item) for item in value)
    return frozenset()


def is_machine_token(claims: Claims) -> bool:
    """Whether the claims come from a client-credentials grant."""
    return claims.get("gty") == MACHINE_GRANT_TYPE
