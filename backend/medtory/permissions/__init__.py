# Overview: Permission system package.
# Re-exports all public APIs so callers can import from medtory.permissions.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    INVENTORY_PERMISSIONS,
    SALES_PERMISSIONS,
    REPORT_PERMISSIONS,
    USER_PERMISSIONS,
)
from .roles import (
    Position,
    DEFAULT_ROLE_PERMISSIONS,
    MODIFIABLE_POSITIONS,
    PRIVILEGED_POSITIONS,
    can_modify,
    can_create,
)
from .helpers import (
    PERMISSIONS_BY_CODE,
    describe_position_permissions,
    get_permissions_by_category,
    get_permission_definition,
    validate_permission_code,
    get_position_permissions,
    has_permission,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "INVENTORY_PERMISSIONS",
    "SALES_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "USER_PERMISSIONS",
    "Position",
    "DEFAULT_ROLE_PERMISSIONS",
    "MODIFIABLE_POSITIONS",
    "PRIVILEGED_POSITIONS",
    "can_modify",
    "can_create",
    "PERMISSIONS_BY_CODE",
    "describe_position_permissions",
    "get_permissions_by_category",
    "get_permission_definition",
    "validate_permission_code",
    "get_position_permissions",
    "has_permission",
]
