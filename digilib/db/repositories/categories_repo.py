"""Repository helpers for category reference data."""
from __future__ import annotations

from typing import List, Optional

from digilib.db import app_session
from digilib.db.models import Category


def list_categories() -> List[Category]:
    with app_session() as session:
        return session.query(Category).order_by(Category.name.asc()).all()


def get_category(category_id: str) -> Optional[Category]:
    with app_session() as session:
        return session.get(Category, category_id)


def ensure_category(
    category_id: str,
    name: str,
    *,
    color: Optional[str] = None,
    icon: Optional[str] = None,
    description: Optional[str] = None,
) -> bool:
    """Insert the category when absent; existing rows are left untouched.

    Returns True when a row was created.
    """
    with app_session() as session:
        if session.get(Category, category_id) is not None:
            return False
        session.add(
            Category(
                id=category_id,
                name=name,
                color=color,
                icon=icon,
                description=description,
            )
        )
        return True


__all__ = ["list_categories", "get_category", "ensure_category"]
