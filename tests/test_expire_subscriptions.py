from datetime import timedelta

from pathgate.db import SessionLocal
from pathgate.models import Subscription
from scripts import expire_subscriptions
from tests.utils.factories import NOW, add_subscription, new_id


def test_dry_run_changes_nothing(apply_migrations, capsys):
    user = new_id()
    with SessionLocal() as db:
        sub = add_subscription(db, user, start=NOW - timedelta(days=400), days=30)

    ref = (NOW - timedelta(days=300)).isoformat()
    count = expire_subscriptions.main(["--dry-run", "--now", ref])

    assert count >= 1
    assert f"expire subscription={sub.id}" in capsys.readouterr().out
    with SessionLocal() as db:
        assert db.get(Subscription, sub.id).is_active is True


def test_sweep_deactivates_expired(apply_migrations):
    user = new_id()
    with SessionLocal() as db:
        expired = add_subscription(db, user, start=NOW - timedelta(days=400), days=30)
        current = add_subscription(db, user, scope="lp-1", start=NOW - timedelta(days=340), days=60)

    ref = (NOW - timedelta(days=300)).isoformat()
    assert expire_subscriptions.main(["--now", ref]) >= 1
    assert expire_subscriptions.main(["--now", ref]) == 0

    with SessionLocal() as db:
        assert db.get(Subscription, expired.id).is_active is False
        assert db.get(Subscription, current.id).is_active is True
