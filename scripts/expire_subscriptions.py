from __future__ import annotations

import argparse
import logging
from datetime import datetime

from pathgate.config import Settings
from pathgate.db import SessionLocal, init_db
from pathgate.logger import setup_logging
from pathgate.models import Subscription
from pathgate.services.clock import ensure_utc, utcnow
from pathgate.services.subscriptions import deactivate_expired

logger = logging.getLogger("expire_subscriptions")


def _expired_ids(now: datetime) -> list[int]:
    with SessionLocal() as db:
        rows = (
            db.query(Subscription.id)
            .filter(Subscription.is_active.is_(True))
            .filter(Subscription.expiry_date < now)
            .all()
        )
        return [row[0] for row in rows]


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Deactivate expired subscriptions.")
    parser.add_argument("--dry-run", action="store_true", help="List only, change nothing")
    parser.add_argument(
        "--now",
        type=datetime.fromisoformat,
        default=None,
        help="Reference time (ISO 8601), defaults to the current UTC time",
    )
    args = parser.parse_args(argv)

    setup_logging()
    init_db(Settings())
    now = ensure_utc(args.now) if args.now else utcnow()

    if args.dry_run:
        ids = _expired_ids(now)
        for sub_id in ids:
            print(f"[dry-run] expire subscription={sub_id}")
        return len(ids)

    with SessionLocal() as db:
        count = deactivate_expired(db, now=now)
    logger.info("expiry sweep done: %d deactivated", count)
    return count


if __name__ == "__main__":
    main()
