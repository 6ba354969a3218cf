# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- AGENTS --

AGENT_PERMISSIONS = [
    (
        "VIEW_AGENTS",
        "View Agents",
        "View agent profiles and balances (agents see only their own)",
        PermissionCategory.AGENTS,
    ),
    (
        "MANAGE_AGENTS",
        "Manage Agents",
        "Create online and offline agents and edit their profiles",
        PermissionCategory.AGENTS,
    ),
]


# -- LEDGER --

LEDGER_PERMISSIONS = [
    (
        "VIEW_AGENT_LEDGER",
        "View Agent Ledger",
        "View agent transactions and statements",
        PermissionCategory.LEDGER,
    ),
    (
        "RECORD_AGENT_PAYMENTS",
        "Record Agent Payments",
        "Record payments and credits received from agents",
        PermissionCategory.LEDGER,
    ),
    (
        "ADJUST_AGENT_DEBT",
        "Adjust Agent Debt",
        "Manually increase or decrease an agent's debt",
        PermissionCategory.LEDGER,
    ),
    (
        "SETTLE_AGENT_ACCOUNTS",
        "Settle Agent Accounts",
        "Run full, partial and adjustment settlements",
        PermissionCategory.LEDGER,
    ),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View vehicles in stock",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_INVENTORY",
        "Manage Inventory",
        "Register vehicles and edit their details",
        PermissionCategory.INVENTORY,
    ),
    (
        "TRANSFER_INVENTORY",
        "Transfer Inventory",
        "Move vehicles between warehouses",
        PermissionCategory.INVENTORY,
    ),
    (
        "VIEW_WAREHOUSES",
        "View Warehouses",
        "View warehouse list",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_WAREHOUSES",
        "Manage Warehouses",
        "Create warehouses",
        PermissionCategory.INVENTORY,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        "CREATE_AGENT_SALE",
        "Create Agent Sale",
        "Record a sale from the agent's own warehouse",
        PermissionCategory.SALES,
    ),
    (
        "CREATE_ON_BEHALF_SALE",
        "Create Sale On Behalf",
        "Record a sale for an offline agent",
        PermissionCategory.SALES,
    ),
    (
        "CREATE_COMPANY_SALE",
        "Create Company Sale",
        "Record a direct sale from a company warehouse",
        PermissionCategory.SALES,
    ),
    (
        "VIEW_SALES",
        "View Sales",
        "View sale records",
        PermissionCategory.SALES,
    ),
]


# -- DOCUMENTS --

DOCUMENT_PERMISSIONS = [
    (
        "VIEW_DOCUMENTS",
        "View Documents",
        "View registration document tracking",
        PermissionCategory.DOCUMENTS,
    ),
    (
        "ADVANCE_DOCUMENTS",
        "Advance Documents",
        "Move a document to its next stage",
        PermissionCategory.DOCUMENTS,
    ),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (
        "VIEW_REPORTS",
        "View Reports",
        "View debt and balance reports",
        PermissionCategory.REPORTS,
    ),
    (
        "VIEW_DASHBOARD",
        "View Dashboard",
        "View dashboard counters",
        PermissionCategory.REPORTS,
    ),
    (
        "CUSTOMER_INQUIRY",
        "Customer Inquiry",
        "Search sales by customer or vehicle identifiers",
        PermissionCategory.REPORTS,
    ),
    (
        "EXPORT_REPORTS",
        "Export Reports",
        "Download CSV and printable HTML reports",
        PermissionCategory.REPORTS,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "MANAGE_USERS",
        "Manage Users",
        "Create users and change roles",
        PermissionCategory.USERS,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "USE_OCR",
        "Use ID Card OCR",
        "Send ID card images to the OCR service",
        PermissionCategory.SYSTEM,
    ),
    (
        "VERIFY_LEDGER",
        "Verify Ledger",
        "Run ledger reconciliation checks",
        PermissionCategory.SYSTEM,
    ),
]


PERMISSION_DEFINITIONS = (
    AGENT_PERMISSIONS
    + LEDGER_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + SALES_PERMISSIONS
    + DOCUMENT_PERMISSIONS
    + REPORT_PERMISSIONS
    + USER_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
