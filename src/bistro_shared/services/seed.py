"""
Initial data for a fresh store.

Each group (staff, categories, menu items, tables) is only inserted when its
table is empty, so running the seed on every start is safe.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..constants import Roles, TableStatus
from ..db import Store
from ..logging_config import get_logger
from ..models import MenuCategory, MenuItem, Staff, Table
from ..security import hash_password

logger = get_logger(__name__)

DEFAULT_ADMIN = {"name": "Admin", "username": "admin", "password": "admin"}

SEED_CATEGORIES = [
    {"name": "Món chính", "description": "Traditional Vietnamese main dishes", "display_order": 1},
    {"name": "Món phụ", "description": "Side dishes and starters", "display_order": 2},
    {"name": "Đồ uống", "description": "Drinks", "display_order": 3},
]

SEED_MENU_ITEMS = {
    "Món chính": [
        ("Phở Bò", 40000, "Beef noodle soup with a slow-simmered bone broth"),
        ("Bún Chả", 35000, "Grilled pork with vermicelli, herbs and dipping sauce"),
        ("Cơm Tấm", 30000, "Broken rice with grilled pork chop"),
        ("Bún Bò Huế", 45000, "Spicy Hue-style beef noodle soup"),
        ("Mì Quảng", 35000, "Quang Nam turmeric noodles with pork and shrimp"),
    ],
    "Món phụ": [
        ("Gỏi Cuốn", 20000, "Fresh spring rolls with shrimp and pork"),
        ("Chả Giò", 25000, "Crispy fried spring rolls"),
        ("Rau Muống Xào Tỏi", 15000, "Water spinach stir-fried with garlic"),
        ("Đậu Que Xào", 15000, "Stir-fried green beans"),
    ],
    "Đồ uống": [
        ("Trà Đào Cam Sả", 25000, "Peach, orange and lemongrass iced tea"),
        ("Cà Phê Sữa Đá", 20000, "Iced coffee with condensed milk"),
        ("Sinh Tố Bơ", 30000, "Avocado smoothie"),
        ("Nước Chanh Tươi", 15000, "Fresh lemonade"),
        ("Trà Gừng", 20000, "Hot ginger tea"),
    ],
}

SEED_TABLES = [
    ("Bàn 1", "Main", 4),
    ("Bàn 2", "Main", 4),
    ("Bàn 3", "Main", 4),
    ("Bàn 4", "Main", 6),
    ("Bàn 5", "Terrace", 2),
    ("Bàn 6", "Terrace", 4),
]


def _is_empty(session: Session, model) -> bool:
    return not session.scalar(select(func.count()).select_from(model))


def ensure_seed_data(store: Store) -> dict[str, int]:
    """Insert the default admin, sample menu and tables into empty tables."""
    created = {"staff": 0, "categories": 0, "menu_items": 0, "tables": 0}
    with store.transaction() as session:
        if _is_empty(session, Staff):
            session.add(
                Staff(
                    name=DEFAULT_ADMIN["name"],
                    username=DEFAULT_ADMIN["username"],
                    password_hash=hash_password(DEFAULT_ADMIN["password"]),
                    role=Roles.ADMIN.value,
                )
            )
            created["staff"] = 1
            logger.warning("Created default admin account 'admin'; change its password")

        if _is_empty(session, MenuCategory):
            for data in SEED_CATEGORIES:
                session.add(MenuCategory(**data))
            created["categories"] = len(SEED_CATEGORIES)
            session.flush()

        if _is_empty(session, MenuItem):
            categories = {
                category.name: category
                for category in session.execute(select(MenuCategory)).scalars()
            }
            for category_name, items in SEED_MENU_ITEMS.items():
                category = categories.get(category_name)
                for position, (name, price, description) in enumerate(items, start=1):
                    session.add(
                        MenuItem(
                            name=name,
                            price=Decimal(price),
                            description=description,
                            category=category,
                            display_order=position,
                        )
                    )
                    created["menu_items"] += 1

        if _is_empty(session, Table):
            for name, section, capacity in SEED_TABLES:
                session.add(
                    Table(
                        name=name,
                        section=section,
                        capacity=capacity,
                        status=TableStatus.EMPTY.value,
                    )
                )
            created["tables"] = len(SEED_TABLES)

    if any(created.values()):
        logger.info("Seed data inserted", extra=created)
    return created
