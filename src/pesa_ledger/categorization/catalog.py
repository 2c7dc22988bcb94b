"""Category catalogue: built-in defaults plus user-defined categories."""

import logging
import re
from typing import List, Optional

from ..models.core import Category, CategoryType
from ..storage.base import LedgerStore


logger = logging.getLogger(__name__)

COLOR_PATTERN = re.compile(r'^#[0-9a-fA-F]{6}$')

# (name, type, icon, color)
DEFAULT_CATEGORIES = [
    ("Food & Dining", CategoryType.EXPENSE, "cutlery", "#f97316"),
    ("Groceries", CategoryType.EXPENSE, "shopping-basket", "#84cc16"),
    ("Transport", CategoryType.EXPENSE, "bus", "#3b82f6"),
    ("Rent & Housing", CategoryType.EXPENSE, "home", "#8b5cf6"),
    ("Utilities", CategoryType.EXPENSE, "bolt", "#eab308"),
    ("Airtime & Internet", CategoryType.EXPENSE, "wifi", "#06b6d4"),
    ("Health", CategoryType.EXPENSE, "medkit", "#ef4444"),
    ("Family & Friends", CategoryType.EXPENSE, "users", "#ec4899"),
    ("Entertainment", CategoryType.EXPENSE, "film", "#a855f7"),
    ("Fees & Charges", CategoryType.EXPENSE, "warning", "#64748b"),
    ("Salary", CategoryType.INCOME, "briefcase", "#22c55e"),
    ("Business Income", CategoryType.INCOME, "money", "#10b981"),
    ("Gifts Received", CategoryType.INCOME, "gift", "#14b8a6"),
]


class CategoryCatalog:
    """Lookup and creation of categories on top of a ledger store"""

    def __init__(self, store: LedgerStore):
        self.store = store

    def ensure_defaults(self) -> int:
        """Seed the built-in categories into an empty catalogue.

        Returns:
            Number of categories created
        """
        if self.store.list_categories():
            return 0

        for name, category_type, icon, color in DEFAULT_CATEGORIES:
            self.store.save_category(Category(
                id=None, name=name, type=category_type, icon=icon, color=color, is_custom=False
            ))
        logger.info(f"Seeded {len(DEFAULT_CATEGORIES)} default categories")
        return len(DEFAULT_CATEGORIES)

    def list_categories(self, category_type: Optional[CategoryType] = None) -> List[Category]:
        categories = self.store.list_categories()
        if category_type is not None:
            categories = [c for c in categories if c.type is category_type]
        return categories

    def find_by_name(self, name: str) -> Optional[Category]:
        wanted = name.strip().lower()
        for category in self.store.list_categories():
            if category.name.lower() == wanted:
                return category
        return None

    def add_category(self, name: str,
                     category_type: CategoryType = CategoryType.EXPENSE,
                     icon: str = "tag",
                     color: str = "#64748b",
                     description: str = "") -> Category:
        """Create a custom category.

        Raises:
            ValueError: If the name is empty or taken, or the color is not ``#rrggbb``
        """
        if not COLOR_PATTERN.match(color or ""):
            raise ValueError(f"Color must look like #rrggbb, got {color!r}")

        category = Category(
            id=None,
            name=name,
            type=category_type,
            icon=icon,
            color=color.lower(),
            is_custom=True,
            description=description,
        )
        if self.find_by_name(category.name) is not None:
            raise ValueError(f"Category already exists: {category.name}")

        saved = self.store.save_category(category)
        logger.info(f"Added category {saved.id}: {saved.name}")
        return saved

    def name_for(self, category_id: Optional[int]) -> str:
        """Display label for a category id, including unknown and missing ids"""
        if category_id is None:
            return "Uncategorized"
        category = self.store.get_category(category_id)
        return category.name if category else f"Category {category_id}"
