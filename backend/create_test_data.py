import sys
import os
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from fuelos import models  # noqa: F401
from fuelos.config import get_settings
from fuelos.database import SessionLocal, engine, Base
from fuelos.seed import seed_demo_data, seed_superadmin


def create_test_data():
    # Create tables
    Base.metadata.create_all(bind=engine)
    settings = get_settings()

    db = SessionLocal()

    try:
        superadmin = seed_superadmin(db, settings)
        print(f"Superadmin: {superadmin.email}")

        if seed_demo_data(db):
            print("Seeded demo owners, pumps, managers and operators")
        else:
            print("Owners already present, demo data skipped")

        print("\nTest data ready!")
        print("Owner login:    rajesh@sharma.com / owner123 (role: owner)")
        print("Manager login:  kavitha@gupta.com / mgr123 (role: manager, tenant via pump P4)")
        print("Operator login: amit@sharma.com / op123 (role: operator)")
        print("\nYou can now:")
        print("1. Run the server: uvicorn fuelos.main:app --reload --host 0.0.0.0 --port 8000")
        print("2. Open http://localhost:8000/docs for API documentation")

    except Exception as e:
        print(f"Error creating test data: {e}")
        db.rollback()
    finally:
        db.close()


if __name__ == "__main__":
    create_test_data()
