"""
Subscription tier limits and per-property pricing.

COMPS_ONLY (DIY reports): 1 property. STARTER ($149/property/yr): 5.
GROWTH ($124/property/yr): 9. PORTFOLIO ($99/property/yr): 20.
PERFORMANCE: unlimited. More than 20 properties requires custom pricing.
"""
from typing import Optional, Union

from overtaxed.schemas.user import SubscriptionTier

UNLIMITED = 999

PROPERTY_LIMITS = {
    SubscriptionTier.COMPS_ONLY: 1,
    SubscriptionTier.STARTER: 5,
    SubscriptionTier.GROWTH: 9,
    SubscriptionTier.PORTFOLIO: 20,
    SubscriptionTier.PERFORMANCE: UNLIMITED,
}

RETAIL_PRICE_PER_PROPERTY = 149

GROWTH_PRICE_PER_PROPERTY = 124
GROWTH_MIN_PROPERTIES = 1
GROWTH_MAX_PROPERTIES = 9

PORTFOLIO_PRICE_PER_PROPERTY = 99
PORTFOLIO_MIN_PROPERTIES = 1
PORTFOLIO_MAX_PROPERTIES = 20


def get_property_limit(tier: Union[SubscriptionTier, str]) -> int:
    try:
        return PROPERTY_LIMITS[SubscriptionTier(tier)]
    except ValueError:
        return PROPERTY_LIMITS[SubscriptionTier.COMPS_ONLY]


def can_add_property(current_count: int, tier: Union[SubscriptionTier, str]) -> bool:
    limit = get_property_limit(tier)
    if limit >= UNLIMITED:
        return True
    return current_count < limit


def growth_price_for_properties(n: int) -> Optional[int]:
    if GROWTH_MIN_PROPERTIES <= n <= GROWTH_MAX_PROPERTIES:
        return n * GROWTH_PRICE_PER_PROPERTY
    return None


def portfolio_price_for_properties(n: int) -> Optional[int]:
    if PORTFOLIO_MIN_PROPERTIES <= n <= PORTFOLIO_MAX_PROPERTIES:
        return n * PORTFOLIO_PRICE_PER_PROPERTY
    return None


def requires_custom_pricing(n: int) -> bool:
    return n > PORTFOLIO_MAX_PROPERTIES
