"""Seed the database with operators, default configurations and sample case studies."""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from caseflow.database import SessionLocal, engine, Base
import caseflow.models  # noqa: F401

from caseflow.models.user import User
from caseflow.models.case_study import CaseStudy
from caseflow.services.config_service import compute_config_hash, seed_default_configs


def seed():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        if db.query(User).count() > 0:
            print("Database already seeded. Skipping.")
            return

        # Users
        users = [
            User(emp_id="admin001", name="관리자 김철수", role="admin", email="admin@company.com"),
            User(emp_id="editor001", name="편집자 이영희", role="editor", email="editor1@company.com"),
            User(emp_id="viewer001", name="열람자 정수연", role="viewer", email="viewer1@company.com"),
        ]
        db.add_all(users)
        db.flush()

        configs = seed_default_configs(db, actor=users[0].emp_id)
        config_hash = compute_config_hash(db)

        # Case studies
        cases = [
            CaseStudy(
                title="Why did Slack's DAU drop after the redesign?",
                the_question="Slack's daily active users fell 8% the week after a sidebar redesign. What happened?",
                read_time_minutes=3,
                difficulty="intermediate",
                question_type="Root Cause Analysis (RCA)",
                seniority_level=1,
                frameworks_applicable=["5 Whys"],
                tags=["engagement", "redesign"],
                industry="SaaS",
                company_name="Slack",
                source_type="framework_classic",
                config_version_hash=config_hash,
            ),
            CaseStudy(
                title="Should Spotify launch audiobooks in the free tier?",
                the_question="Spotify is deciding whether audiobooks belong in the free tier. Make the call.",
                read_time_minutes=3,
                difficulty="advanced",
                question_type="Launch Decision",
                seniority_level=2,
                frameworks_applicable=["Jobs to be Done"],
                tags=["pricing", "content"],
                industry="Media",
                company_name="Spotify",
                source_type="framework_book",
                config_version_hash=config_hash,
            ),
        ]
        db.add_all(cases)

        db.commit()
        print("Seed data inserted successfully.")
        print(f"  Users: {len(users)}")
        print(f"  Configurations: {configs}")
        print(f"  Case studies: {len(cases)}")
        print()
        print("Test login credentials:")
        for u in users:
            print(f"  emp_id={u.emp_id}  role={u.role}  name={u.name}")

    except Exception as e:
        db.rollback()
        raise e
    finally:
        db.close()


if __name__ == "__main__":
    seed()
