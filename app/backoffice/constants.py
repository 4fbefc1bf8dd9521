"""
Central constants for the back office.
"""
from __future__ import annotations

# Admin roles, most privileged first. Order is used for authorization checks.
ADMIN_ROLES = ("owner", "director", "manager", "shipper", "admin", "store", "bookkeeper")

# Minimum role for each guarded route key; overridable via app config.
DEFAULT_AUTHORIZATION = {
    "admin.view": "bookkeeper",
    "admins.index": "manager",
    "admins.insert": "director",
    "admins.update": "director",
    "admins.delete": "owner",
}
