from prometheus_client import Counter, Histogram
# Prometheus metrics definitions

# Entitlement decisions by action kind and outcome (allowed / denied reason)
entitlement_decisions_total = Counter(
    "entitlement_decisions_total",
    "Entitlement decisions returned by the gate",
    ["action", "outcome"],
)

# latency buckets cover a few sequential queries against the database
_authorize_buckets = (
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
)

authorize_latency_seconds = Histogram(
    "authorize_latency_seconds",
    "Time spent deciding an authorize request",
    buckets=_authorize_buckets,
)

# Quota rejects when a daily chat or monthly MCQ ceiling is reached
quota_reject_total = Counter(
    "quota_reject_total", "Number of quota rejected requests", ["action"]
)

# Payment reconciliation
payment_reconciled_total = Counter(
    "payment_reconciled_total", "Payments turned into subscriptions", ["plan_type"]
)

# Replayed payment events (same external payment id delivered again)
payment_replay_total = Counter(
    "payment_replay_total", "Payment events applied more than once"
)

# Concurrent reconciliations that lost the active-record uniqueness race
reconcile_conflict_total = Counter(
    "reconcile_conflict_total", "Reconciliations resolved by re-reading"
)

# Rejected payment events (unknown amount, wrong currency)
payment_rejected_total = Counter(
    "payment_rejected_total", "Payment events rejected by the reconciler", ["reason"]
)

# Subscriptions whose tier label disagreed with the paid amount
subscription_repair_total = Counter(
    "subscription_repair_total", "Subscriptions corrected to match paid amount"
)

# Subscriptions deactivated by the expiry sweep
subscription_expired_total = Counter(
    "subscription_expired_total", "Subscriptions deactivated after expiry"
)

# Webhook rejects (IP or signature)
webhook_forbidden_total = Counter(
    "webhook_forbidden_total", "Total forbidden webhook requests"
)

__all__ = [
    "entitlement_decisions_total",
    "authorize_latency_seconds",
    "quota_reject_total",
    "payment_reconciled_total",
    "payment_replay_total",
    "reconcile_conflict_total",
    "payment_rejected_total",
    "subscription_repair_total",
    "subscription_expired_total",
    "webhook_forbidden_total",
]
