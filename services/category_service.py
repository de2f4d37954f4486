"""
Category Service for the fixed post taxonomy.
"""
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.orm import Session
from models.models import Category, Subcategory, PostCategoryEnum
from core.exceptions import ResourceNotFoundException
from core.logging import get_logger

logger = get_logger("categories")

# (name, display name, icon, subcategory names)
TAXONOMY = [
    ("announcement", "Announcement", "bell", ["travel plan", "opening", "change of location"]),
    ("event", "Event", "calendar", [
        "blood donation", "wellness/fitness", "medical camp", "environmental/community", "club",
        "restaurant", "office", "movie", "artist", "radio", "exhibition", "competition", "show",
        "sale", "workshop", "religious", "comedy",
    ]),
    ("traffic_alert", "Traffic Alert", "alert-triangle", ["jam", "vehicle stuck", "route change", "wall of fame", "signal faulty"]),
    ("looking_for", "Looking For", "search", ["custom", "doctor", "professional", "boutique", "teacher"]),
    ("rental_to_let", "Rental-To let", "home", ["residential", "commercial", "paying guest", "industrial"]),
    ("reviews", "Reviews", "star", ["movies", "shows", "restaurants", "service", "products"]),
    ("recommendations", "Recommendations", "thumbs-up", ["general recommendations"]),
    ("news", "News", "newspaper", [
        "local news", "state news", "regional news", "national news", "international news", "breaking news",
    ]),
    ("citizen_reporter", "Citizen Reporter", "users", [
        "awareness", "event coverage", "illegal activity report", "accident", "complaint/grievances",
    ]),
    ("community_services", "Community Services", "heart", [
        "blood", "plantation", "cleaning", "donations", "medical camp", "meet up for a cause",
    ]),
    ("health_capsule", "Health Capsule", "activity", ["general health"]),
    ("science_knowledge", "Science & Knowledge", "book", ["general science"]),
    ("article", "Article", "file-text", [
        "art", "causes", "comedy", "crafts", "dance", "drinks", "film", "fitness", "food", "games",
        "gardening", "health", "home", "literature", "music", "networking", "others", "party",
        "religion", "shopping", "sports", "theatre", "wellness",
    ]),
    ("jobs", "Jobs", "briefcase", ["job offer", "job wanted"]),
    ("help", "Help", "help-circle", ["general help"]),
    ("sale", "Sale", "tag", [
        "four-wheelers", "two-wheelers", "furniture", "mobile phone", "electronics", "pets", "books", "others",
    ]),
    ("property", "Property", "home", [
        "for-sale residential", "for-sale commercial", "for-sale industrial",
        "to-buy residential", "to-buy commercial", "to-buy industrial",
    ]),
    ("rental_required", "Rental Required", "key", ["residential", "paying guests", "commercial", "industrial"]),
    ("promotion", "Promotion", "trending-up", ["general promotion"]),
    ("page_3", "Page 3", "coffee", ["general entertainment"]),
]


class CategoryService:
    """Service for reading and seeding categories and subcategories."""

    def __init__(self, db: Session):
        self.db = db

    def list_categories(self) -> List[Category]:
        stmt = select(Category).order_by(Category.display_name)
        return list(self.db.execute(stmt).scalars().all())

    def get_category(self, category_id: int) -> Category:
        category = self.db.get(Category, category_id)
        if category is None:
            raise ResourceNotFoundException("Category not found")
        return category

    def get_category_by_name(self, name: str) -> Optional[Category]:
        """Return the category with this name, or None for unknown names."""
        try:
            enum_value = PostCategoryEnum(name)
        except ValueError:
            return None
        stmt = select(Category).where(Category.name == enum_value)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_subcategories(self, category_id: Optional[int] = None) -> List[Subcategory]:
        stmt = select(Subcategory)
        if category_id is not None:
            stmt = stmt.where(Subcategory.category_id == category_id)
        stmt = stmt.order_by(Subcategory.display_name, Subcategory.id)
        return list(self.db.execute(stmt).scalars().all())

    def get_subcategory(self, subcategory_id: int) -> Subcategory:
        subcategory = self.db.get(Subcategory, subcategory_id)
        if subcategory is None:
            raise ResourceNotFoundException("Subcategory not found")
        return subcategory

    def seed_taxonomy(self) -> int:
        """
        Insert any missing categories and subcategories.

        Existing rows are left untouched, so this is safe to run on every startup.

        Returns:
            int: Number of rows created
        """
        created = 0
        existing = {c.name.value: c for c in self.db.execute(select(Category)).scalars().all()}

        for name, display_name, icon, subcategory_names in TAXONOMY:
            category = existing.get(name)
            if category is None:
                category = Category(name=PostCategoryEnum(name), display_name=display_name, icon=icon)
                self.db.add(category)
                self.db.flush()
                created += 1

            known = set(
                self.db.execute(
                    select(Subcategory.name).where(Subcategory.category_id == category.id)
                ).scalars().all()
            )
            for sub_name in subcategory_names:
                if sub_name in known:
                    continue
                self.db.add(Subcategory(
                    category_id=category.id,
                    name=sub_name,
                    display_name=sub_name[:1].upper() + sub_name[1:],
                ))
                created += 1

        self.db.commit()
        if created:
            logger.info("Category taxonomy seeded", rows_created=created)
        return created
