import sys
import os
from datetime import date

# Add parent dir to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.infrastructure.database import Base, SessionLocal, engine
from app.application.services.auth_service import create_user, get_user_by_email
from app.domain.models.user import UserRole
from app.domain.models.maintenance_request import MaintenanceRequest, ServiceCategory
from app.domain.models.message import Message
from app.domain.models.feedback import Feedback
from app.domain.models.scheduled_email import ScheduledEmail

SEED_USERS = [
    {
        "email": "admin@homefix.com",
        "password": "admin123",
        "first_name": "Admin",
        "last_name": "User",
        "birth_date": date(1990, 1, 1),
        "role": UserRole.ADMIN,
    },
    {
        "email": "tecnico@homefix.com",
        "password": "tecnico123",
        "first_name": "Carlos",
        "last_name": "Técnico",
        "birth_date": date(1985, 5, 15),
        "role": UserRole.TECHNICIAN,
        "technician_categories": [c.value for c in ServiceCategory],
    },
    {
        "email": "cliente@homefix.com",
        "password": "cliente123",
        "first_name": "Ana",
        "last_name": "Cliente",
        "birth_date": date(1995, 9, 20),
        "role": UserRole.CLIENT,
    },
]


def seed():
    print("Seeding HomeFix users...")
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        for data in SEED_USERS:
            if get_user_by_email(db, data["email"]):
                print(f"  {data['email']} already exists, skipping")
                continue
            user = create_user(db, **data)
            print(f"  created {user.email} ({user.role})")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
