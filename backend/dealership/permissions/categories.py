# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    AGENTS = "AGENTS"
    LEDGER = "LEDGER"
    INVENTORY = "INVENTORY"
    SALES = "SALES"
    DOCUMENTS = "DOCUMENTS"
    REPORTS = "REPORTS"
    USERS = "USERS"
    SYSTEM = "SYSTEM"
