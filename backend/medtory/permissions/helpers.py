# Overview: Permission lookups by code and by employee position.

from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS, Position


# code -> {"code", "name", "description", "category"}
PERMISSIONS_BY_CODE = {
    code: {"code": code, "name": name, "description": description, "category": category}
    for code, name, description, category in PERMISSION_DEFINITIONS
}


def get_permission_definition(code):
    return PERMISSIONS_BY_CODE.get(code)


def validate_permission_code(code) -> bool:
    return code in PERMISSIONS_BY_CODE


def get_permissions_by_category(category) -> list[str]:
    """Codes in one PermissionCategory, in definition order."""
    return [code for code, perm in PERMISSIONS_BY_CODE.items() if perm["category"] == category]


def get_position_permissions(position) -> frozenset[str]:
    """Permission codes granted to a position (unknown positions get none)."""
    try:
        return DEFAULT_ROLE_PERMISSIONS[Position.parse(position)]
    except ValueError:
        return frozenset()


def has_permission(position, code: str) -> bool:
    return code in get_position_permissions(position)


def describe_position_permissions(position) -> dict[str, list[dict]]:
    """
    Granted permissions grouped by category, with names and descriptions.

    Feeds the account screen's "what can I do" panel. Categories the position
    has nothing in are left out.
    """
    granted = get_position_permissions(position)
    categories = dict.fromkeys(perm["category"] for perm in PERMISSIONS_BY_CODE.values())
    grouped = {}
    for category in categories:
        codes = [code for code in get_permissions_by_category(category) if code in granted]
        if codes:
            grouped[category] = [get_permission_definition(code) for code in codes]
    return grouped
