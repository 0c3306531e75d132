"""Plan tiers and the plan guard check."""

from patissio.core.exceptions import PlanRequiredError
from patissio.db.models import PlanTier

PLAN_LEVELS: dict[str, int] = {
    PlanTier.STARTER.value: 1,
    PlanTier.PRO.value: 2,
    PlanTier.PREMIUM.value: 3,
}

# Public catalogue of plans, prices in euro cents
PLANS: dict[str, dict] = {
    PlanTier.STARTER.value: {
        "name": "Starter",
        "monthly_price": 0,
        "yearly_price": 0,
        "features": ["storefront", "creations", "categories"],
    },
    PlanTier.PRO.value: {
        "name": "Pro",
        "monthly_price": 1990,
        "yearly_price": 19900,
        "features": ["storefront", "creations", "categories", "products", "orders", "workshops"],
    },
    PlanTier.PREMIUM.value: {
        "name": "Premium",
        "monthly_price": 3990,
        "yearly_price": 39900,
        "features": [
            "storefront",
            "creations",
            "categories",
            "products",
            "orders",
            "workshops",
            "custom_domain",
        ],
    },
}


def plan_level(plan: str | None) -> int:
    """Rank of a plan; unknown plans rank below starter."""
    return PLAN_LEVELS.get(plan or "", 0)


def plan_satisfies(current_plan: str | None, required_plan: str) -> bool:
    """Whether ``current_plan`` is at least ``required_plan``."""
    return plan_level(current_plan) >= plan_level(required_plan)


def ensure_plan(current_plan: str, required_plan: str) -> None:
    """Raise unless the current plan meets the requirement.

    Raises:
        PlanRequiredError: If current_plan ranks below required_plan
    """
    if not plan_satisfies(current_plan, required_plan):
        raise PlanRequiredError(required_plan=required_plan, current_plan=current_plan)
