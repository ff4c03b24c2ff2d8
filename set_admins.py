import argparse
import sys

from database.config import SessionLocal
from services.admin_service import set_admins


def main():
    parser = argparse.ArgumentParser(description='Grant the platform admin role to existing users')
    parser.add_argument('emails', nargs='+', help='Email addresses of the users to promote')
    args = parser.parse_args()

    db = SessionLocal()
    try:
        results = set_admins(db, args.emails)
    except Exception as e:
        print(f"An error occurred: {e}")
        db.rollback()
        sys.exit(1)
    finally:
        db.close()

    for result in results:
        if result["status"] == "updated":
            print(f"{result['email']}: now admin (ID: {result['user_id']})")
        else:
            print(f"{result['email']}: user not found")

    if any(r["status"] == "not_found" for r in results):
        sys.exit(2)


if __name__ == "__main__":
    main()
