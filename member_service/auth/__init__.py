"""Authentication and authorization for member operations.

- **principal**: The authenticated caller, built once per request
- **permissions**: Role and ownership predicates, field visibility
- **dependencies**: FastAPI dependencies resolving the caller from a bearer token
"""

from member_service.auth.dependencies import (
    CurrentPrincipal,
    RequiredPrincipal,
    build_principal,
    get_current_principal,
    require_principal,
)
from member_service.auth.permissions import (
    Capability,
    can_manage_member,
    capabilities_for,
    ensure_can_manage_member,
    field_is_visible,
    filter_member_fields,
    has_admin_role,
)
from member_service.auth.principal import Principal

__all__ = [
    "Capability",
    "CurrentPrincipal",
    "Principal",
    "RequiredPrincipal",
    "build_principal",
    "can_manage_member",
    "capabilities_for",
    "ensure_can_manage_member",
    "field_is_visible",
    "filter_member_fields",
    "get_current_principal",
    "has_admin_role",
    "require_principal",
]
