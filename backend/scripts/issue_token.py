"""Print a bearer token for an active operator (for curl / batch callers)."""
import argparse
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi import HTTPException

from caseflow.database import SessionLocal
from caseflow.services.auth_service import authenticate_operator, issue_access_token


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Issue an access token for an operator.")
    parser.add_argument("emp_id", help="operator emp_id (e.g. admin001)")
    parser.add_argument("--minutes", type=int, default=None, help="token lifetime in minutes")
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        user = authenticate_operator(db, args.emp_id)
    except HTTPException as exc:
        print(exc.detail, file=sys.stderr)
        return 1
    finally:
        db.close()

    print(issue_access_token(user, expires_minutes=args.minutes))
    return 0


if __name__ == "__main__":
    sys.exit(main())
