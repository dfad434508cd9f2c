import sys
import os

# Add the parent directory to sys.path to allow importing modules
sys.path.append(os.path.join(os.path.dirname(__file__), '../../'))

from cleancheck.infrastructure.database import SessionLocal, engine, Base
from cleancheck.infrastructure.models import User, SchoolClass, Area, Default

SAMPLE_CLASSES = ["701", "702", "801"]

SAMPLE_AREAS = [
    ("701 教室", "701"),
    ("一樓走廊", "701"),
    ("702 教室", "702"),
    ("二樓廁所", "702"),
    ("801 教室", "801"),
]

SAMPLE_DEFAULTS = [
    ("地", "地板有垃圾"),
    ("桌", "桌面未擦拭"),
    ("垃", "垃圾桶未清空"),
    ("窗", "窗戶未擦"),
]


def seed_data(admin_email: str):
    print("Seeding Database...")

    # Create Tables
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()

    try:
        # 1. Administrator allow-list
        if not db.query(User).filter(User.email == admin_email.lower()).first():
            print(f"Adding administrator {admin_email}...")
            db.add(User(email=admin_email.lower()))
            db.commit()

        # 2. Classes
        if db.query(SchoolClass).count() == 0:
            print("Creating Classes...")
            db.add_all([SchoolClass(name=name) for name in SAMPLE_CLASSES])
            db.commit()

        classes = {c.name: c.id for c in db.query(SchoolClass).all()}

        # 3. Areas, ranked in listing order
        if db.query(Area).count() == 0:
            print("Creating Areas...")
            db.add_all([
                Area(name=name, class_id=classes[class_name], rank=rank)
                for rank, (name, class_name) in enumerate(SAMPLE_AREAS, start=1)
                if class_name in classes
            ])
            db.commit()

        # 4. Canned messages
        if db.query(Default).count() == 0:
            print("Creating Defaults...")
            db.add_all([
                Default(shorthand=shorthand, text=text, rank=rank)
                for rank, (shorthand, text) in enumerate(SAMPLE_DEFAULTS, start=1)
            ])
            db.commit()

        print("Seeding Complete!")

    except Exception as e:
        print(f"Error seeding data: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python -m cleancheck.scripts.seed_db <admin-email>")
        sys.exit(1)
    seed_data(sys.argv[1])
