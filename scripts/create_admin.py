import argparse
import getpass

from app.db.init_db import init_db
from app.db.session import session_scope
from app.services.users import ensure_admin


def create_admin(email: str, password: str, name: str | None = None) -> dict[str, object]:
    init_db()
    with session_scope() as db:
        user, created = ensure_admin(db, email, password, name)
        return {"id": user.id, "email": user.email, "created": created}


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or promote the first admin account")
    parser.add_argument("email", help="Admin email address")
    parser.add_argument("--name", default=None, help="Display name (defaults to the email local part)")
    parser.add_argument(
        "--password",
        default=None,
        help="Password for a new account; prompted for when omitted",
    )
    args = parser.parse_args()

    password = args.password or getpass.getpass("Password: ")
    result = create_admin(args.email, password, args.name)
    action = "Created" if result["created"] else "Promoted"
    print(f"{action} admin {result['email']} (id={result['id']})")


if __name__ == "__main__":
    main()
