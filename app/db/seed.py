# File: app/db/seed.py
"""
Reference data: the first admin account and the complaint taxonomy.

    python -m app.db.seed

Safe to run repeatedly; existing rows are left alone.
"""

import logging
import secrets

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import hash_password
from app.db.session import SessionLocal
from app.models.category import Category, Subcategory
from app.models.user import User, UserRole
import app.models.complaint  # noqa: F401

TAXONOMY = {
    ("Infrastructure", "Issues related to public infrastructure"): [
        ("Roads", "Issues with roads, highways, and streets"),
        ("Bridges", "Issues with bridges and overpasses"),
        ("Public Buildings", "Issues with government offices and public buildings"),
        ("Public Transport", "Issues with buses, stations, and public transport services"),
    ],
    ("Education", "Issues related to education services"): [
        ("Primary Schools", "Issues with primary schools"),
        ("Secondary Schools", "Issues with secondary schools"),
        ("Higher Education", "Issues with universities and colleges"),
        ("Educational Programs", "Issues with government educational programs"),
    ],
    ("Healthcare", "Issues related to healthcare services"): [
        ("Hospitals", "Issues with hospitals"),
        ("Health Centers", "Issues with local health centers"),
        ("Medication", "Issues with availability or cost of medication"),
        ("Health Insurance", "Issues with health insurance coverage"),
    ],
    ("Public Safety", "Issues related to public safety and security"): [
        ("Police Services", "Issues with police services"),
        ("Fire Services", "Issues with fire and rescue services"),
        ("Emergency Services", "Issues with emergency response"),
        ("Public Security", "General public security concerns"),
    ],
    ("Utilities", "Issues related to public utilities"): [
        ("Water Supply", "Issues with water supply and quality"),
        ("Electricity", "Issues with power supply and outages"),
        ("Waste Management", "Issues with garbage collection and disposal"),
        ("Internet & Telecommunications", "Issues with internet and phone services"),
    ],
}

log = logging.getLogger(__name__)


def seed_admin(db: Session) -> User | None:
    if db.query(User).filter(User.email == settings.seed_admin_email).first():
        return None
    password = settings.seed_admin_password
    if not password:
        password = secrets.token_urlsafe(12)
        log.warning("SEED_ADMIN_PASSWORD not set; generated admin password: %s", password)
    admin = User(
        email=settings.seed_admin_email,
        first_name="Admin",
        last_name="User",
        hashed_password=hash_password(password),
        role=UserRole.admin,
        is_active=True,
        is_verified=True,
    )
    db.add(admin)
    return admin


def seed_taxonomy(db: Session) -> int:
    created = 0
    for (name, description), subs in TAXONOMY.items():
        category = db.query(Category).filter(Category.name == name).first()
        if not category:
            category = Category(name=name, description=description, is_active=True)
            db.add(category)
            db.flush()
            created += 1
        existing = {s.name for s in category.subcategories}
        for sub_name, sub_description in subs:
            if sub_name not in existing:
                db.add(Subcategory(name=sub_name, description=sub_description, category_id=category.id))
                created += 1
    return created


def run(db: Session) -> None:
    try:
        admin = seed_admin(db)
        created = seed_taxonomy(db)
        db.commit()
    except Exception:
        db.rollback()
        raise
    log.info("Seed complete: admin %s, %d taxonomy rows created", "created" if admin else "exists", created)


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level.upper())
    with SessionLocal() as session:
        run(session)
