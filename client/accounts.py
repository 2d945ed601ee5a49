"""
Built-in offline accounts and role → dashboard routing.
"""

from __future__ import annotations

from typing import Dict, List

from utils.schemas import LocalAccount

DEFAULT_DASHBOARD = "/admin/user-dashboard"

DASHBOARD_ROUTES: Dict[str, str] = {
    "admin": "/admin/enthusiast-dashboard",
    "user": "/admin/user-dashboard",
    "content-creator": "/admin/content-creator-dashboard",
    "tour-guide": "/admin/tour-guide-dashboard",
}


def dashboard_for_role(role: str) -> str:
    return DASHBOARD_ROUTES.get(role, DEFAULT_DASHBOARD)


# Last resort when no locally registered account matches.
SEED_ACCOUNTS: List[LocalAccount] = [
    LocalAccount(email="admin@heritage.com", password="admin123", role="admin",
                 dashboard=dashboard_for_role("admin")),
    LocalAccount(email="user@heritage.com", password="user123", role="user",
                 dashboard=dashboard_for_role("user")),
    LocalAccount(email="creator@heritage.com", password="creator123", role="content-creator",
                 dashboard=dashboard_for_role("content-creator")),
]
