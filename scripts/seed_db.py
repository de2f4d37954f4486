"""
Seed the category taxonomy and, optionally, a demo user with one sample post per category.
"""
import argparse
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from sqlalchemy import select

from core.logging import setup_logging, get_logger
from db_config import Base, SessionLocal, engine
from models.models import Category, LocationEnum, Post, Subcategory, User, VisibilityEnum
from core.security import get_password_hash
from services.category_service import CategoryService
from services.user_service import UserService

setup_logging()
logger = get_logger("seed")

DEMO_USERNAME = "testuser"
DEMO_EMAIL = "test@example.com"
DEMO_PASSWORD = "password123"


def seed_demo_data(db) -> int:
    """Create the demo user and a sample post in every category that has none from them."""
    service = UserService(db)
    user = service.get_by_email(DEMO_EMAIL)
    if user is None:
        user = service.create_user_with_preferences(User(
            username=DEMO_USERNAME,
            email=DEMO_EMAIL,
            password_hash=get_password_hash(DEMO_PASSWORD),
            name="Test User",
            location=LocationEnum.chandigarh,
            is_verified=True,
        ))
        logger.info("Demo user created", user_id=user.id)

    created = 0
    for category in db.execute(select(Category).order_by(Category.id)).scalars().all():
        subcategory = db.execute(
            select(Subcategory).where(Subcategory.category_id == category.id).order_by(Subcategory.id)
        ).scalars().first()
        title = f"Sample {category.display_name} Post"
        exists = db.execute(
            select(Post.id).where(Post.user_id == user.id, Post.title == title)
        ).first()
        if exists or subcategory is None:
            continue

        db.add(Post(
            user_id=user.id,
            title=title,
            description=(
                f"This is a sample post in the {category.display_name} category with "
                f"{subcategory.display_name} subcategory. Check out this feature of the Notice Board!"
            ),
            category_id=category.id,
            subcategory_id=subcategory.id,
            location=LocationEnum.chandigarh,
            location_details="Sector 17",
            visibility=VisibilityEnum.public,
        ))
        created += 1

    db.commit()
    return created


def main():
    parser = argparse.ArgumentParser(description="Seed the notice board database")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first (development only)")
    parser.add_argument("--demo", action="store_true", help="Also create a demo user and sample posts")
    args = parser.parse_args()

    if args.create_tables:
        Base.metadata.create_all(bind=engine)
        logger.info("Tables created")

    with SessionLocal() as db:
        rows = CategoryService(db).seed_taxonomy()
        print(f"Taxonomy rows created: {rows}")
        if args.demo:
            posts = seed_demo_data(db)
            print(f"Sample posts created: {posts}")


if __name__ == "__main__":
    main()
