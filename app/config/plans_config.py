"""
Subscription Plan Limits Configuration
Defines what each billing plan allows. The plan itself is written to profiles.plan
by the billing provider webhook; this service only reads it.
"""

from typing import Dict, Any, Optional

DEFAULT_PLAN = "free"

# None means unlimited
PLAN_LIMITS: Dict[str, Dict[str, Any]] = {
    "free": {
        "max_active_workshops": 1,
        "max_participants": 5,
        "ai_enabled": False,
        "description": "Free plan: one active workshop, five participants"
    },
    "pro": {
        "max_active_workshops": None,
        "max_participants": None,
        "ai_enabled": True,
        "description": "Pro plan: unlimited workshops and participants, AI clustering"
    },
    "curago": {
        "max_active_workshops": None,
        "max_participants": None,
        "ai_enabled": True,
        "description": "Partner organisation plan, same limits as pro"
    }
}


def get_plan_limits(plan: Optional[str]) -> Dict[str, Any]:
    """Return the limits for a plan name, falling back to the free plan for unknown values."""
    return PLAN_LIMITS.get((plan or DEFAULT_PLAN).lower(), PLAN_LIMITS[DEFAULT_PLAN])


def is_within_limit(limit: Optional[int], current: int) -> bool:
    """True if one more item may be added on top of `current`."""
    if limit is None:
        return True
    return current < limit
