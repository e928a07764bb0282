"""
Lookup-or-fallback resolvers.

Stored IDs are weak references: a Category or Debt can be deleted while
Transactions, Budgets or Repayments still point at it. Every read that
needs to display a referenced record goes through exactly one resolver
per entity kind, which returns a sentinel instead of raising.
"""

from collections.abc import Iterable, Mapping
from typing import Optional, Union

from budget_tracker.models.entities import Category, Debt
from budget_tracker.models.insights import (
    FALLBACK_COLOR,
    UNKNOWN_LABEL,
    CategoryRef,
    SubcategoryRef,
)


Categories = Union[Mapping[str, Category], Iterable[Category]]


def index_categories(categories: Categories) -> dict[str, Category]:
    """Build an id -> Category mapping (passes mappings through)."""
    if isinstance(categories, Mapping):
        return dict(categories)
    return {category.id: category for category in categories}


def resolve_category(
    categories: Categories,
    category_id: Optional[str],
    fallback: str = UNKNOWN_LABEL,
) -> CategoryRef:
    """Resolve a category ID for display; dangling IDs get ``fallback``."""
    category = index_categories(categories).get(category_id or "")
    if category is None:
        return CategoryRef(
            id=category_id or "",
            name=fallback,
            color=FALLBACK_COLOR,
            exists=False,
        )
    return CategoryRef(id=category.id, name=category.name, color=category.color)


def resolve_subcategory(
    categories: Categories,
    category_id: Optional[str],
    subcategory_id: Optional[str],
) -> Optional[SubcategoryRef]:
    """
    Resolve a subcategory within its parent category.

    Returns None when no subcategory is referenced, or when either the
    parent or the subcategory no longer exists.
    """
    if not subcategory_id:
        return None

    category = index_categories(categories).get(category_id or "")
    if category is None:
        return None

    sub = category.find_subcategory(subcategory_id)
    if sub is None:
        return None
    return SubcategoryRef(id=sub.id, name=sub.name, color=sub.color)


def resolve_debt(debts: Iterable[Debt], debt_id: Optional[str]) -> Optional[Debt]:
    for debt in debts:
        if debt.id == debt_id:
            return debt
    return None
