"""Exceptions raised by the entitlement services.

Business outcomes (no subscription, locked content, exhausted quota) are
returned as ``Decision`` values and never raised. These exceptions cover
invalid inputs and states that cannot be decided.
"""


class EntitlementError(Exception):
    """Base class for engine errors."""


class UnknownPlanAmount(EntitlementError, ValueError):
    """Raised when a paid amount maps to no plan in the price table."""

    def __init__(self, amount: int | None):
        super().__init__(f"no plan is priced at {amount!r}")
        self.amount = amount


class InvalidPaymentEvent(EntitlementError, ValueError):
    """Raised when a payment event cannot be reconciled as given."""


class ReconcileConflict(EntitlementError):
    """Raised when another payment won the scope in a concurrent reconciliation."""


class LearningPathStructureError(EntitlementError, ValueError):
    """Raised when stored learning path structure is malformed."""
