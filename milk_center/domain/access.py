"""Role capabilities and the page allow-list.

Every predicate is a pure function of an explicit role; ``None`` stands for
"nobody logged in" and is denied everything.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .models import Role


class Page(str, Enum):
    COLLECTION = "collection"
    USERS = "users"
    REPORTS = "reports"
    ADVANCES = "advances"
    FATRATES = "fatrates"


@dataclass(frozen=True)
class NavigationItem:
    page: Page
    title: str
    roles: frozenset[Role]


_STAFF = frozenset({Role.ADMIN, Role.USER})

NAVIGATION: tuple[NavigationItem, ...] = (
    NavigationItem(Page.COLLECTION, "Milk Collection", frozenset(Role)),
    NavigationItem(Page.USERS, "Users", _STAFF),
    NavigationItem(Page.REPORTS, "Reports", _STAFF),
    NavigationItem(Page.ADVANCES, "Advances", _STAFF),
    NavigationItem(Page.FATRATES, "Fat Rates", _STAFF),
)


def is_admin(role: Role | None) -> bool:
    return role is Role.ADMIN


def is_helper(role: Role | None) -> bool:
    return role is Role.HELPER


def can_access_advanced_features(role: Role | None) -> bool:
    """Date filters, reports, advances and fat-rate administration."""
    return role in _STAFF


def can_modify_data(role: Role | None) -> bool:
    """Editing collections and farmer records."""
    return role in _STAFF


def can_manage_helpers(role: Role | None) -> bool:
    return is_admin(role)


def navigation_for(role: Role | None) -> list[NavigationItem]:
    if role is None:
        return []
    return [item for item in NAVIGATION if role in item.roles]


def visible_pages(role: Role | None) -> set[Page]:
    return {item.page for item in navigation_for(role)}


def can_view(role: Role | None, page: Page) -> bool:
    return page in visible_pages(role)
