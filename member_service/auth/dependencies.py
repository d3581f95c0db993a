"""FastAPI dependencies resolving the caller from a bearer token."""

from typing import Annotated

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger

from member_service.auth.permissions import has_admin_role
from member_service.auth.principal import (
    Principal,
    claim_strings,
    find_claim,
    is_machine_token,
)
from member_service.core.config import Settings, get_settings
from member_service.core.exceptions import UnauthorizedError
from member_service.core.types import Claims

ALGORITHM = "HS256"

bearer_scheme = HTTPBearer(auto_error=False)


def build_principal(claims: Claims, admin_roles: list[str] | None = None) -> Principal:
    """Build the principal described by decoded token claims.

    Machine tokens carry scopes and no handle; user tokens carry the
    handle, user id and roles, possibly under a namespaced claim key.
    """
    if is_machine_token(claims):
        return Principal(
            user_id=str(claims.get("sub")) if claims.get("sub") else None,
            scopes=claim_strings(claims.get("scope") or claims.get("scopes")),
            is_machine=True,
        )

    roles = claim_strings(find_claim(claims, "roles"))
    user_id = find_claim(claims, "userId")
    handle = find_claim(claims, "handle")
    return Principal(
        user_id=str(user_id) if user_id is not None else None,
        handle=str(handle) if handle is not None else None,
        roles=roles,
        is_admin=has_admin_role(roles, admin_roles),
    )


def decode_token(token: str, settings: Settings) -> Claims:
    """Verify a bearer token and return its claims.

    Raises:
        UnauthorizedError: If the signature, expiry or issuer is invalid.
    """
    try:
        claims: Claims = jwt.decode(
            token, settings.auth_config.auth_secret, algorithms=[ALGORITHM]
        )
    except jwt.ExpiredSignatureError as exc:
        raise UnauthorizedError("Token has expired", cause=exc) from exc
    except jwt.InvalidTokenError as exc:
        logger.warning("Invalid bearer token: {}", type(exc).__name__)
        raise UnauthorizedError("Invalid token", cause=exc) from exc

    issuer = claims.get("iss")
    if issuer not in settings.auth_config.valid_issuers:
        raise UnauthorizedError(
            "Invalid token issuer", context={"issuer": str(issuer)}
        )
    return claims


async def get_current_principal(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Principal | None:
    """Resolve the caller, ``None`` for anonymous requests.

    Raises:
        UnauthorizedError: If a bearer token is present but invalid.
    """
    if credentials is None:
        return None
    claims = decode_token(credentials.credentials, settings)
    principal = build_principal(claims, settings.member_config.admin_roles)
    logger.debug(
        "Authenticated principal {} (machine: {}, admin: {})",
        principal.handle or principal.user_id,
        principal.is_machine,
        principal.is_admin,
    )
    return principal


CurrentPrincipal = Annotated[Principal | None, Depends(get_current_principal)]


async def require_principal(principal: CurrentPrincipal) -> Principal:
    """Resolve the caller, rejecting anonymous requests.

    Raises:
        UnauthorizedError: If no bearer token was sent.
    """
    if principal is None:
        raise UnauthorizedError("No token provided.")
    return principal


RequiredPrincipal = Annotated[Principal, Depends(require_principal)]
