"""Authorization predicates over members.

Raw role strings are only ever compared in ``has_admin_role``; everything
else works on the capabilities a principal holds over a member.
"""

from collections.abc import Collection, Iterable, Mapping
from enum import Enum
from typing import Any, Protocol

from loguru import logger

from member_service.auth.principal import Principal
from member_service.core.config import get_settings
from member_service.core.exceptions import ForbiddenError


class HandledMember(Protocol):
    """Anything carrying a lower-cased member handle."""

    handle_lower: str | None


class Capability(Enum):
    """What a principal may do with respect to one member."""

    ADMIN = "admin"
    MACHINE = "machine"
    SELF = "self"


def has_admin_role(
    principal_or_roles: Principal | Iterable[str] | None,
    admin_roles: Collection[str] | None = None,
) -> bool:
    """Whether any role is an administrative role, ignoring case.

    Args:
        principal_or_roles: A principal or its raw role names.
        admin_roles: Administrative role names; the configured ones by default.

    Returns:
        bool: ``False`` when there are no roles.
    """
    if principal_or_roles is None:
        return False
    roles = (
        principal_or_roles.roles
        if isinstance(principal_or_roles, Principal)
        else principal_or_roles
    )
    if admin_roles is None:
        admin_roles = get_settings().member_config.admin_roles
    admin = {role.lower() for role in admin_roles}
    return any(role.lower() in admin for role in roles)


def capabilities_for(
    principal: Principal | None, member: HandledMember
) -> frozenset[Capability]:
    """Capabilities ``principal`` holds over ``member``."""
    if principal is None:
        return frozenset()
    capabilities: set[Capability] = set()
    if principal.is_machine:
        capabilities.add(Capability.MACHINE)
    if principal.is_admin or has_admin_role(principal):
        capabilities.add(Capability.ADMIN)
    if (
        principal.handle
        and member.handle_lower is not None
        and principal.handle.lower() == member.handle_lower
    ):
        capabilities.add(Capability.SELF)
    return frozenset(capabilities)


def can_manage_member(principal: Principal | None, member: HandledMember) -> bool:
    """Only machines, admins and the member themselves manage member data."""
    return bool(capabilities_for(principal, member))


def ensure_can_manage_member(
    principal: Principal | None, member: HandledMember
) -> None:
    """Raise unless ``principal`` may manage ``member``.

    Raises:
        ForbiddenError: If the principal lacks every management capability.
    """
    if not can_manage_member(principal, member):
        logger.warning(
            "Principal {} is not allowed to manage member {}",
            principal.user_id if principal else None,
            member.handle_lower,
        )
        raise ForbiddenError(
            "You are not allowed to perform this action.",
            context={"handle": member.handle_lower},
        )


def field_is_visible(
    field_name: str,
    principal: Principal | None,
    member: HandledMember,
    identifiable_fields: Collection[str] | None = None,
) -> bool:
    """Identifiable fields are visible to managers only, the rest to everyone."""
    if identifiable_fields is None:
        identifiable_fields = get_settings().member_config.id_fields
    if field_name not in identifiable_fields:
        return True
    return can_manage_member(principal, member)


def filter_member_fields(
    payload: Mapping[str, Any],
    principal: Principal | None,
    member: HandledMember,
    *,
    identifiable_fields: Collection[str] | None = None,
    admin_only_fields: Collection[str] | None = None,
) -> dict[str, Any]:
    """Drop the fields of a member payload ``principal`` may not see.

    Args:
        payload: Serialized member.
        principal: The caller, ``None`` when anonymous.
        member: The member the payload describes.
        identifiable_fields: Fields restricted to managers of the member.
        admin_only_fields: Fields restricted to admins and machines, used
            for search results. Nothing extra is dropped when omitted.

    Returns:
        dict[str, Any]: A new payload holding only the visible fields.
    """
    capabilities = capabilities_for(principal, member)
    hidden: set[str] = set()
    if admin_only_fields and not capabilities & {Capability.ADMIN, Capability.MACHINE}:
        hidden.update(admin_only_fields)
    return {
        name: value
        for name, value in payload.items()
        if name not in hidden
        and field_is_visible(name, principal, member, identifiable_fields)
    }
