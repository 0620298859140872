import argparse

from app.db.session import session_scope
from app.services.idempotency import cleanup_expired_keys


def purge_keys() -> int:
    with session_scope() as db:
        return cleanup_expired_keys(db)


def main() -> None:
    parser = argparse.ArgumentParser(description="Delete idempotency keys older than IDEMPOTENCY_TTL_HOURS")
    parser.parse_args()
    deleted = purge_keys()
    print(f"Purged {deleted} idempotency keys")


if __name__ == "__main__":
    main()
