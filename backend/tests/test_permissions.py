"""
Role hierarchy and permission gating tests.
"""

import pytest

from medtory.decorators import require_permission
from medtory.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    PERMISSIONS_BY_CODE,
    PermissionCategory,
    Position,
    can_create,
    can_modify,
    describe_position_permissions,
    get_permission_definition,
    get_permissions_by_category,
    has_permission,
    validate_permission_code,
)


OWNER, ADMIN, MANAGER, CASHIER = Position.OWNER, Position.ADMIN, Position.MANAGER, Position.CASHIER


class TestHierarchy:
    @pytest.mark.parametrize("actor,target,expected", [
        (OWNER, OWNER, True),
        (OWNER, ADMIN, True),
        (OWNER, MANAGER, True),
        (OWNER, CASHIER, True),
        (ADMIN, OWNER, False),
        (ADMIN, ADMIN, False),
        (ADMIN, MANAGER, True),
        (ADMIN, CASHIER, True),
        (MANAGER, OWNER, False),
        (MANAGER, ADMIN, False),
        (MANAGER, MANAGER, False),
        (MANAGER, CASHIER, True),
        (CASHIER, OWNER, False),
        (CASHIER, ADMIN, False),
        (CASHIER, MANAGER, False),
        (CASHIER, CASHIER, False),
    ])
    def test_can_modify_table(self, actor, target, expected):
        assert can_modify(actor, target) is expected

    @pytest.mark.parametrize("actor", [ADMIN, MANAGER, CASHIER])
    @pytest.mark.parametrize("target", [OWNER, ADMIN])
    def test_only_owner_creates_privileged_accounts(self, actor, target):
        assert can_create(actor, target) is False
        assert can_create(OWNER, target) is True

    def test_admin_creates_staff(self):
        assert can_create(ADMIN, MANAGER)
        assert can_create(ADMIN, CASHIER)
        assert not can_create(MANAGER, MANAGER)

    def test_positions_parse_case_insensitively(self):
        assert can_modify("owner", "Cashier")
        with pytest.raises(ValueError):
            Position.parse("Pharmacist")


class TestPermissionTable:
    def test_every_granted_code_is_defined(self):
        defined = set(PERMISSIONS_BY_CODE)
        for granted in DEFAULT_ROLE_PERMISSIONS.values():
            assert granted <= defined

    def test_definitions_lookup(self):
        definition = get_permission_definition("VOID_SALE")
        assert definition["code"] == "VOID_SALE"
        assert validate_permission_code("VOID_SALE")
        assert not validate_permission_code("LAUNCH_ROCKETS")
        assert get_permission_definition("LAUNCH_ROCKETS") is None

    def test_categories_cover_all_codes(self):
        codes = set()
        for category in (PermissionCategory.INVENTORY, PermissionCategory.SALES,
                         PermissionCategory.REPORTS, PermissionCategory.USERS):
            codes.update(get_permissions_by_category(category))
        assert codes == set(PERMISSIONS_BY_CODE)

    def test_cashier_permissions_grouped_for_display(self):
        groups = describe_position_permissions("Cashier")

        assert list(groups) == ["INVENTORY", "SALES", "REPORTS"]
        assert [perm["code"] for perm in groups["SALES"]] == ["USE_POS", "VIEW_TRANSACTIONS"]
        assert groups["INVENTORY"][0]["name"] == "View Inventory"
        assert describe_position_permissions("Janitor") == {}

    def test_financials_are_executive_only(self):
        assert has_permission("Owner", "VIEW_FINANCIALS")
        assert has_permission("Admin", "VIEW_FINANCIALS")
        assert not has_permission("Manager", "VIEW_FINANCIALS")
        assert not has_permission("Cashier", "VIEW_FINANCIALS")

    def test_unknown_position_has_nothing(self):
        assert not has_permission("Intern", "USE_POS")


class TestRouteGating:
    @pytest.mark.parametrize("method,path", [
        ("post", "/api/transactions/1/void"),
        ("post", "/api/inventory/adjust"),
        ("post", "/api/inventory/products"),
        ("post", "/api/categories"),
        ("get", "/api/reports"),
        ("get", "/api/users"),
        ("post", "/api/users"),
    ])
    def test_cashier_is_forbidden(self, client, cashier, login, method, path):
        response = getattr(client, method)(path, headers=login(cashier), json={})
        assert response.status_code == 403
        assert response.get_json()["error"] == "Permission denied"

    @pytest.mark.parametrize("path", [
        "/api/dashboard",
        "/api/inventory",
        "/api/pos/cart",
        "/api/transactions",
        "/api/categories",
        "/api/suppliers",
    ])
    def test_cashier_may_use_basic_screens(self, client, cashier, login, path):
        assert client.get(path, headers=login(cashier)).status_code == 200

    def test_manager_cannot_archive_or_manage_users(self, client, manager, login, make_product):
        product = make_product()
        headers = login(manager)
        assert client.post(f"/api/inventory/products/{product.id}/archive", headers=headers).status_code == 403
        assert client.post("/api/users", headers=headers, json={}).status_code == 403

    def test_item_log_needs_adjust_or_reports(self, client, cashier, manager, login):
        assert client.get("/api/inventory/logs", headers=login(cashier)).status_code == 403
        assert client.get("/api/inventory/logs", headers=login(manager)).status_code == 200

    def test_unknown_code_fails_at_decoration(self):
        with pytest.raises(ValueError, match="LAUNCH_ROCKETS"):
            require_permission("LAUNCH_ROCKETS")
