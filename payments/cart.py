"""Session-backed shopping cart.

The cart is a list of course snapshots stored under one session key.
State transitions mirror the storefront: adding an item twice is a
no-op, removing an unknown id is a no-op, `load` replaces the contents.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable

from django.utils import timezone

SESSION_KEY = "cart"


def course_snapshot(course) -> dict[str, Any]:
    owner_profile = getattr(course.owner, "profile", None)
    return {
        "id": course.pk,
        "title": course.title,
        "instructor": getattr(owner_profile, "display_name", course.owner.username),
        "price": str(course.price),
        "level": course.level,
        "thumbnail": course.thumbnail.url if course.thumbnail else "",
        "added_at": timezone.now().isoformat(),
    }


class Cart:
    def __init__(self, session):
        self.session = session
        self.items: list[dict[str, Any]] = list(session.get(SESSION_KEY) or [])

    def save(self) -> None:
        self.session[SESSION_KEY] = self.items
        self.session.modified = True

    def contains(self, course_id) -> bool:
        return any(str(item["id"]) == str(course_id) for item in self.items)

    def add(self, item: dict[str, Any]) -> bool:
        """Append `item` unless a course with the same id is already present."""
        if self.contains(item["id"]):
            return False
        self.items.append(item)
        self.save()
        return True

    def remove(self, course_id) -> bool:
        before = len(self.items)
        self.items = [item for item in self.items if str(item["id"]) != str(course_id)]
        self.save()
        return len(self.items) != before

    def clear(self) -> None:
        self.items = []
        self.save()

    def load(self, items: Iterable[dict[str, Any]]) -> None:
        """Replace the contents, dropping duplicate ids (first one wins)."""
        self.items = []
        for item in items:
            if not self.contains(item["id"]):
                self.items.append(item)
        self.save()

    @property
    def total(self) -> Decimal:
        return sum((Decimal(str(item.get("price") or 0)) for item in self.items), Decimal("0"))

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def course_ids(self) -> list[int]:
        return [int(item["id"]) for item in self.items]

    def as_dict(self) -> dict[str, Any]:
        return {"items": self.items, "total": float(self.total), "item_count": self.item_count}
