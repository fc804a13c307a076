"""
Role to capability table.

This is the authoritative copy used by every protected route. Raw role
strings are normalized once, right after identity resolution, and nothing
downstream branches on them.
"""
from typing import FrozenSet, Iterable, Optional, Union

USERS = "users"
EVENTS = "events"
NEWS = "news"
SETTINGS = "settings"

CAPABILITIES = frozenset({USERS, EVENTS, NEWS, SETTINGS})

SUPER_ADMIN = "super_admin"
LEGACY_ADMIN = "admin"

ROLE_PERMISSIONS = {
    SUPER_ADMIN: frozenset({USERS, EVENTS, NEWS, SETTINGS}),
    "user_manager": frozenset({USERS}),
    "events_manager": frozenset({EVENTS}),
    "news_manager": frozenset({NEWS}),
    LEGACY_ADMIN: frozenset({USERS, EVENTS, NEWS, SETTINGS}),
}

# Historical spellings still found in stored records
ROLE_ALIASES = {
    "user_management": "user_manager",
}

# Roles that may be written to a user record (the legacy admin role may not)
ASSIGNABLE_ROLES = ("super_admin", "user_manager", "events_manager", "news_manager")


def canonical_role(name: str) -> str:
    name = name.strip().lower()
    return ROLE_ALIASES.get(name, name)


def normalize_roles(
    role: Optional[str] = None,
    roles: Optional[Union[str, Iterable[str]]] = None,
) -> FrozenSet[str]:
    """Merge the single-role and multi-role representations into one set.

    Unknown names are kept as-is; they resolve to no capabilities.
    """
    names = []
    if role:
        names.append(role)
    if isinstance(roles, str):
        names.extend(roles.split(","))
    elif roles:
        names.extend(roles)
    return frozenset(canonical_role(n) for n in names if n and n.strip())


def resolve(roles: Iterable[str]) -> FrozenSet[str]:
    capabilities = set()
    for role in roles:
        capabilities |= ROLE_PERMISSIONS.get(canonical_role(role), frozenset())
    return frozenset(capabilities)


def authorize(roles: Iterable[str], capability: str) -> bool:
    return capability in resolve(roles)


def is_super_admin(roles: Iterable[str]) -> bool:
    return any(canonical_role(r) in (SUPER_ADMIN, LEGACY_ADMIN) for r in roles)


def primary_role(roles: Iterable[str]) -> Optional[str]:
    """Single role for clients that only understand one."""
    roles = set(roles)
    for name in ASSIGNABLE_ROLES + (LEGACY_ADMIN,):
        if name in roles:
            return name
    return min(roles) if roles else None
