# Overview: Static role to permission mapping.

from .definitions import PERMISSION_DEFINITIONS


_ALL = [perm[0] for perm in PERMISSION_DEFINITIONS]


DEFAULT_ROLE_PERMISSIONS = {
    "super_admin": list(_ALL),
    "admin": [code for code in _ALL if code != "MANAGE_USERS"],
    # Agents are further restricted to their own agent id by the route layer
    "agent": [
        "VIEW_AGENTS",
        "VIEW_AGENT_LEDGER",
        "VIEW_INVENTORY",
        "CREATE_AGENT_SALE",
        "VIEW_SALES",
        "VIEW_DOCUMENTS",
        "CUSTOMER_INQUIRY",
        "USE_OCR",
    ],
    # Showroom staff only see company stock and company sales
    "showroom_user": [
        "VIEW_INVENTORY",
        "VIEW_WAREHOUSES",
        "CREATE_COMPANY_SALE",
        "VIEW_SALES",
        "CUSTOMER_INQUIRY",
        "USE_OCR",
    ],
}
