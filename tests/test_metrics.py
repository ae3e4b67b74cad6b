from datetime import timedelta

from pathgate.config import Settings
from pathgate.db import SessionLocal
from pathgate.services.clock import utcnow
from tests.utils.factories import add_path, add_subscription, new_id

settings = Settings()


def test_entitlement_metrics_exposed(client):
    user = new_id()
    chapter = new_id("ch")
    with SessionLocal() as db:
        add_subscription(db, user, start=utcnow() - timedelta(days=1))
        path_id = add_path(db, [[chapter]])
    headers = {"X-API-Key": settings.api_key, "X-API-Ver": "v1", "X-User-ID": user}
    for _ in range(4):
        client.post(
            "/v1/entitlements/authorize",
            headers=headers,
            json={"path_id": path_id, "chapter_id": chapter, "action": "chat"},
        )

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    body = metrics.text
    assert 'entitlement_decisions_total{action="chat",outcome="allowed"}' in body
    assert 'entitlement_decisions_total{action="chat",outcome="quota_exhausted"}' in body
    assert 'quota_reject_total{action="chat"}' in body
    assert "authorize_latency_seconds_bucket" in body
    # request metrics from the instrumentator
    assert "http_requests_total" in body
