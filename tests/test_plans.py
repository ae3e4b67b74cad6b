import pytest

from pathgate.config import Settings
from pathgate.errors import UnknownPlanAmount
from pathgate.services.plans import plan_for_amount


def test_basic_and_premium_prices():
    basic = plan_for_amount(99)
    assert (basic.plan_type, basic.daily_chat_limit, basic.monthly_mcq_limit) == ("basic", 3, 3)
    premium = plan_for_amount(199)
    assert (premium.plan_type, premium.daily_chat_limit, premium.monthly_mcq_limit) == (
        "premium",
        5,
        5,
    )
    assert basic.max_learning_paths_per_payment == premium.max_learning_paths_per_payment == 1


@pytest.mark.parametrize("amount", [0, None, -99, 100, 150, 198, 200])
def test_unpriced_amounts_are_rejected(amount):
    with pytest.raises(UnknownPlanAmount) as exc:
        plan_for_amount(amount)
    assert exc.value.amount == amount


def test_prices_come_from_settings():
    cfg = Settings(basic_price=149, premium_price=299)
    assert plan_for_amount(149, cfg).plan_type == "basic"
    assert plan_for_amount(299, cfg).plan_type == "premium"
    with pytest.raises(UnknownPlanAmount):
        plan_for_amount(99, cfg)
