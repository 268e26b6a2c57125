"""Seed data helper for development convenience."""

from .database_manager import DatabaseManager
from .models import Task, User
from .repositories import create_task, create_user, get_user_by_external_id

DEMO_EXTERNAL_ID = "demo-user"

DEMO_TASKS = [
    ("Drink a glass of water", 1, 2),
    ("Reply to one email", 2, 10),
    ("Tidy the desk", 2, 15),
    ("Plan tomorrow's meals", 3, 20),
    ("Draft the project update", 4, 45),
    ("File the tax return", 5, 120),
]


def seed_demo_user(db: DatabaseManager) -> User:
    existing = get_user_by_external_id(db, DEMO_EXTERNAL_ID)
    if existing is not None:
        return existing  # Already seeded
    user = create_user(db, User(id=None, external_id=DEMO_EXTERNAL_ID, display_name="Demo"))
    for title, complexity, minutes in DEMO_TASKS:
        create_task(
            db,
            Task(
                id=None,
                user_id=user.id,  # type: ignore[arg-type]
                title=title,
                complexity_level=complexity,
                estimated_minutes=minutes,
            ),
        )
    return user

__all__ = ["seed_demo_user", "DEMO_EXTERNAL_ID"]
