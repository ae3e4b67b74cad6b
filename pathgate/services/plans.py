"""Price table mapping a paid amount to a plan tier and its ceilings.

This is the only place tier and quota ceilings are derived. Subscriptions
store the amount they were paid with, and every tier label is recomputed from
that amount.
"""
from __future__ import annotations

from dataclasses import dataclass

from pathgate.config import Settings
from pathgate.errors import UnknownPlanAmount

settings = Settings()


@dataclass(frozen=True)
class Plan:
    plan_type: str
    plan_amount: int
    daily_chat_limit: int
    monthly_mcq_limit: int
    max_learning_paths_per_payment: int


def plan_table(cfg: Settings | None = None) -> dict[int, Plan]:
    cfg = cfg or settings
    return {
        cfg.basic_price: Plan(
            plan_type="basic",
            plan_amount=cfg.basic_price,
            daily_chat_limit=cfg.basic_daily_chat_limit,
            monthly_mcq_limit=cfg.basic_monthly_mcq_limit,
            max_learning_paths_per_payment=cfg.max_learning_paths_per_payment,
        ),
        cfg.premium_price: Plan(
            plan_type="premium",
            plan_amount=cfg.premium_price,
            daily_chat_limit=cfg.premium_daily_chat_limit,
            monthly_mcq_limit=cfg.premium_monthly_mcq_limit,
            max_learning_paths_per_payment=cfg.max_learning_paths_per_payment,
        ),
    }


def plan_for_amount(amount: int | None, cfg: Settings | None = None) -> Plan:
    """Return the plan bought by ``amount``; never falls back to a default tier."""
    if not amount or amount <= 0:
        raise UnknownPlanAmount(amount)
    plan = plan_table(cfg).get(int(amount))
    if plan is None:
        raise UnknownPlanAmount(amount)
    return plan


__all__ = ["Plan", "plan_table", "plan_for_amount"]
