# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View products, batches and stock levels",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create and edit products, receive new stock batches",
        PermissionCategory.INVENTORY,
    ),
    (
        "ARCHIVE_PRODUCTS",
        "Archive Products",
        "Archive, delete and restore products",
        PermissionCategory.INVENTORY,
    ),
    (
        "ADJUST_INVENTORY",
        "Adjust Inventory",
        "Apply manual stock corrections (damage, expiry write-off, recount)",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_CATALOG",
        "Manage Catalog",
        "Create, edit and delete categories and suppliers",
        PermissionCategory.INVENTORY,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        "USE_POS",
        "Use POS",
        "Build carts, check out, hold and resume transactions",
        PermissionCategory.SALES,
    ),
    (
        "VIEW_TRANSACTIONS",
        "View Transactions",
        "View sales history (cashiers only see their own sales)",
        PermissionCategory.SALES,
    ),
    (
        "VIEW_ALL_TRANSACTIONS",
        "View All Transactions",
        "View sales made by any cashier",
        PermissionCategory.SALES,
    ),
    (
        "VOID_SALE",
        "Void Sale",
        "Void completed sales and return their stock",
        PermissionCategory.SALES,
    ),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (
        "VIEW_DASHBOARD",
        "View Dashboard",
        "View KPI cards, alerts and charts",
        PermissionCategory.REPORTS,
    ),
    (
        "VIEW_REPORTS",
        "View Reports",
        "View the multi-tab business report",
        PermissionCategory.REPORTS,
    ),
    (
        "VIEW_FINANCIALS",
        "View Financials",
        "See cost, profit and asset value figures",
        PermissionCategory.REPORTS,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "VIEW_USERS",
        "View Users",
        "List employees and pending invitations",
        PermissionCategory.USERS,
    ),
    (
        "MANAGE_USERS",
        "Manage Users",
        "Invite, edit, deactivate employees and cancel invitations",
        PermissionCategory.USERS,
    ),
    (
        "SEND_RESET_LINK",
        "Send Reset Link",
        "Email a password reset link to a subordinate employee",
        PermissionCategory.USERS,
    ),
]


PERMISSION_DEFINITIONS = (
    INVENTORY_PERMISSIONS
    + SALES_PERMISSIONS
    + REPORT_PERMISSIONS
    + USER_PERMISSIONS
)
