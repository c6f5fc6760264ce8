import unittest
from datetime import datetime, timezone

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import hash_password, make_tokens
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models.category import Category, Subcategory
from app.models.complaint import Complaint, ComplaintPriority, ComplaintStatus
from app.models.status_history import StatusHistoryEntry
from app.models.user import User, UserRole
from app.schemas.auth import Actor


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def naive(value):
    return value.replace(tzinfo=None) if value is not None else None


class DatabaseTestCase(unittest.TestCase):
    """Fresh in-memory schema per test, wired into the FastAPI app."""

    def setUp(self):
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        event.listen(self.engine, "connect", _enable_foreign_keys)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        self.db = self.Session()

        def override_get_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

        self.category = self.create_category("Infrastructure", ["Roads", "Bridges"])
        self.roads = next(s for s in self.category.subcategories if s.name == "Roads")
        self.admin = self.create_user("admin@example.com", role=UserRole.admin)

    def tearDown(self):
        app.dependency_overrides.pop(get_db, None)
        self.db.close()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    # ---- factories ----

    def create_category(self, name, subcategories=(), is_active=True):
        category = Category(name=name, description=f"{name} issues", is_active=is_active)
        self.db.add(category)
        self.db.flush()
        for sub in subcategories:
            self.db.add(Subcategory(name=sub, category_id=category.id))
        self.db.commit()
        self.db.refresh(category)
        return category

    def create_user(self, email, role=UserRole.citizen, is_verified=True, phone_number=None, password="Password123!"):
        user = User(
            email=email,
            first_name="Test",
            last_name=role.value.title(),
            phone_number=phone_number,
            hashed_password=hash_password(password),
            role=role,
            is_active=True,
            is_verified=is_verified,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def create_complaint(self, tracking_id="IJW-2025-12345", status=ComplaintStatus.pending, **kwargs):
        data = {
            "tracking_id": tracking_id,
            "description": "Large pothole on the main road near the market.",
            "location": "Kigali, Nyarugenge",
            "category_id": self.category.id,
            "subcategory_id": self.roads.id,
            "full_name": "Jane Citizen",
            "phone_number": "250788123456",
            "email": "jane@example.com",
            "status": status,
            "priority": ComplaintPriority.medium,
        }
        data.update(kwargs)
        complaint = Complaint(**data)
        self.db.add(complaint)
        self.db.flush()
        self.db.add(StatusHistoryEntry(
            complaint_id=complaint.id,
            new_status=ComplaintStatus.pending.value,
            comment="Complaint submitted",
            created_at=datetime.now(timezone.utc),
        ))
        self.db.commit()
        self.db.refresh(complaint)
        return complaint

    def actor(self, user):
        return Actor(id=user.id, role=user.role.value, is_verified=user.is_verified)

    def auth_headers(self, user):
        return {"Authorization": f"Bearer {make_tokens(user)['access_token']}"}

    def ledger(self, complaint):
        return (
            self.db.query(StatusHistoryEntry)
            .filter(StatusHistoryEntry.complaint_id == complaint.id)
            .order_by(StatusHistoryEntry.id)
            .all()
        )
