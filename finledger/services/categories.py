import uuid
from typing import List

from loguru import logger
from sqlmodel import Session, select

from ..core.clock import utcnow
from ..models.category import Category, EntryType


DEFAULT_CATEGORIES = [
    ("Salary", EntryType.INCOME, "#10b981"),
    ("Freelance", EntryType.INCOME, "#3b82f6"),
    ("Food & Dining", EntryType.EXPENSE, "#f43f5e"),
    ("Transportation", EntryType.EXPENSE, "#f97316"),
    ("Housing", EntryType.EXPENSE, "#8b5cf6"),
    ("Shopping", EntryType.EXPENSE, "#ec4899"),
    ("Utilities", EntryType.EXPENSE, "#06b6d4"),
    ("Entertainment", EntryType.EXPENSE, "#eab308"),
]

ALLOCATION_CATEGORIES = {
    EntryType.INCOME: ("Allocation Income", "#10b981"),
    EntryType.EXPENSE: ("Allocation Expense", "#f43f5e"),
}


def seed_default_categories(session: Session, user_id: uuid.UUID) -> List[Category]:
    """Give a new user the starter categories. No-op if they already have any."""
    existing = session.exec(select(Category).where(Category.user_id == user_id)).first()
    if existing is not None:
        return []

    now = utcnow()
    created = [
        Category(user_id=user_id, name=name, type=entry_type, color=color, created_at=now, updated_at=now)
        for name, entry_type, color in DEFAULT_CATEGORIES
    ]
    session.add_all(created)
    logger.info("Seeded {} default categories for user {}", len(created), user_id)
    return created


def find_or_create_category(session: Session, user_id: uuid.UUID, entry_type: EntryType) -> Category:
    entry_type = EntryType(entry_type)
    # Oldest category of the type wins, matching what the user saw first.
    stmt = (
        select(Category)
        .where(Category.user_id == user_id, Category.type == entry_type)
        .order_by(Category.created_at.asc())
    )
    category = session.exec(stmt).first()
    if category is not None:
        return category

    name, color = ALLOCATION_CATEGORIES[entry_type]
    category = Category(user_id=user_id, name=name, type=entry_type, color=color)
    session.add(category)
    session.flush()
    logger.info("Created default {} category for user {}", entry_type.value, user_id)
    return category
