"""Category listing and display lookups."""
from __future__ import annotations

from typing import Dict, List, Optional

from digilib.db.repositories import categories_repo
from digilib.utils import constants


def list_categories() -> List[Dict[str, Optional[str]]]:
    return [c.as_dict() for c in categories_repo.list_categories()]


def get_category(category_id: Optional[str]) -> Optional[Dict[str, Optional[str]]]:
    if not category_id:
        return None
    category = categories_repo.get_category(category_id)
    return category.as_dict() if category else None


def _resolve(category_id: Optional[str]) -> Optional[Dict[str, Optional[str]]]:
    return get_category(category_id) or get_category(constants.DEFAULT_CATEGORY_ID)


def category_name(category_id: Optional[str]) -> str:
    category = _resolve(category_id)
    return (category or {}).get("name") or constants.DEFAULT_CATEGORY_NAME


def category_color(category_id: Optional[str]) -> str:
    category = _resolve(category_id)
    return (category or {}).get("color") or constants.DEFAULT_CATEGORY_COLOR


def category_icon(category_id: Optional[str]) -> str:
    category = _resolve(category_id)
    return (category or {}).get("icon") or constants.DEFAULT_CATEGORY_ICON


def category_options() -> List[Dict[str, str]]:
    options = []
    for category in list_categories():
        icon = category.get("icon") or constants.DEFAULT_CATEGORY_ICON
        options.append({"value": category["id"], "label": f"{icon} {category['name']}"})
    return options


__all__ = [
    "list_categories",
    "get_category",
    "category_name",
    "category_color",
    "category_icon",
    "category_options",
]
