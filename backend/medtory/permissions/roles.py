# Overview: Employee positions, their default permissions, and the who-can-modify-whom table.

"""
Position hierarchy (highest first): Owner > Admin > Manager > Cashier.

WHY a lookup table: every "may this actor touch that employee?" check in the
user management flows goes through can_modify(), so the rule lives in one
place instead of being repeated as string comparisons in each route.
"""

from __future__ import annotations

from enum import Enum


class Position(str, Enum):
    OWNER = "Owner"
    ADMIN = "Admin"
    MANAGER = "Manager"
    CASHIER = "Cashier"

    @classmethod
    def parse(cls, value) -> "Position":
        """Accept a Position or its (case-insensitive) name/value."""
        if isinstance(value, Position):
            return value
        if value is None:
            raise ValueError("position is required")
        raw = str(value).strip()
        for member in cls:
            if raw.lower() in (member.value.lower(), member.name.lower()):
                return member
        raise ValueError(f"Unknown position: {value}")


_ALL = frozenset(Position)

# actor -> positions the actor may edit, deactivate or send reset links to
MODIFIABLE_POSITIONS: dict[Position, frozenset[Position]] = {
    Position.OWNER: _ALL,
    Position.ADMIN: frozenset({Position.MANAGER, Position.CASHIER}),
    Position.MANAGER: frozenset({Position.CASHIER}),
    Position.CASHIER: frozenset(),
}

# Only the owner can mint privileged accounts
PRIVILEGED_POSITIONS = frozenset({Position.OWNER, Position.ADMIN})


_EVERYONE = (
    "VIEW_DASHBOARD",
    "VIEW_INVENTORY",
    "USE_POS",
    "VIEW_TRANSACTIONS",
)

_SUPERVISOR = _EVERYONE + (
    "VIEW_ALL_TRANSACTIONS",
    "VOID_SALE",
    "MANAGE_PRODUCTS",
    "ADJUST_INVENTORY",
    "MANAGE_CATALOG",
    "VIEW_REPORTS",
    "VIEW_USERS",
    "SEND_RESET_LINK",
)

_EXECUTIVE = _SUPERVISOR + (
    "ARCHIVE_PRODUCTS",
    "VIEW_FINANCIALS",
    "MANAGE_USERS",
)

DEFAULT_ROLE_PERMISSIONS: dict[Position, frozenset[str]] = {
    Position.OWNER: frozenset(_EXECUTIVE),
    Position.ADMIN: frozenset(_EXECUTIVE),
    Position.MANAGER: frozenset(_SUPERVISOR),
    Position.CASHIER: frozenset(_EVERYONE),
}


def can_modify(actor, target) -> bool:
    """True when an employee in position `actor` may modify one in position `target`."""
    actor_pos = Position.parse(actor)
    target_pos = Position.parse(target)
    return target_pos in MODIFIABLE_POSITIONS[actor_pos]


def can_create(actor, target) -> bool:
    """
    True when `actor` may create (invite) an account with position `target`.

    Owner/Admin accounts can only be created by the Owner; everything else
    follows the modification table.
    """
    actor_pos = Position.parse(actor)
    target_pos = Position.parse(target)
    if target_pos in PRIVILEGED_POSITIONS:
        return actor_pos == Position.OWNER
    return can_modify(actor_pos, target_pos)
