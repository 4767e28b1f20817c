"""Subscription plans and plan-change transitions.

Plan table (quota -1 = unlimited):
- free: 1 user, 10 cases, no trial, $0
- starter: 5 users, 100 cases, 14 day trial, $49
- professional: 20 users, 500 cases, 14 day trial, $149
- enterprise: unlimited users and cases, 30 day trial, $499

Everything here is pure: callers pass the current organization document and
persist whatever update dict comes back.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional, Tuple, Union
import logging

from models import SubscriptionPlan, SubscriptionStatus

logger = logging.getLogger(__name__)

UNLIMITED = -1


# ============================================================================
# PLAN DEFINITIONS
# ============================================================================
PLAN_DEFINITIONS: Dict[SubscriptionPlan, Dict[str, Any]] = {
    SubscriptionPlan.FREE: {
        "name": "Free",
        "max_users": 1,
        "max_cases": 10,
        "trial_days": 0,
        "price": 0,
        "features": ["Basic case management", "Up to 10 cases", "1 user"],
    },
    SubscriptionPlan.STARTER: {
        "name": "Starter",
        "max_users": 5,
        "max_cases": 100,
        "trial_days": 14,
        "price": 49,
        "features": ["Up to 100 cases", "5 users", "Client management", "Payment tracking"],
    },
    SubscriptionPlan.PROFESSIONAL: {
        "name": "Professional",
        "max_users": 20,
        "max_cases": 500,
        "trial_days": 14,
        "price": 149,
        "features": ["Up to 500 cases", "20 users", "Hearing calendar", "Document storage", "Priority support"],
    },
    SubscriptionPlan.ENTERPRISE: {
        "name": "Enterprise",
        "max_users": UNLIMITED,
        "max_cases": UNLIMITED,
        "trial_days": 30,
        "price": 499,
        "features": ["Unlimited cases", "Unlimited users", "Dedicated support", "Custom integrations"],
    },
}


def get_plan(plan: Union[SubscriptionPlan, str]) -> Dict[str, Any]:
    return PLAN_DEFINITIONS[SubscriptionPlan(plan)]


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ============================================================================
# TRANSITIONS
# ============================================================================

def initial_subscription_state(
    plan: Union[SubscriptionPlan, str],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Subscription fields for a newly created organization.

    Plans with a trial start in ``trial`` with ``trial_end_date`` set;
    the free plan starts ``active``.
    """
    plan = SubscriptionPlan(plan)
    plan_def = get_plan(plan)
    current = _now(now)

    state = {
        "subscription_plan": plan.value,
        "max_users": plan_def["max_users"],
        "max_cases": plan_def["max_cases"],
        "subscription_start_date": current.isoformat(),
        "trial_end_date": None,
    }
    if plan_def["trial_days"] > 0:
        state["subscription_status"] = SubscriptionStatus.TRIAL.value
        state["trial_end_date"] = (current + timedelta(days=plan_def["trial_days"])).isoformat()
    else:
        state["subscription_status"] = SubscriptionStatus.ACTIVE.value
    return state


def complete_trial_state(
    current: Dict[str, Any],
    updates: Dict[str, Any],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Add a ``trial_end_date`` to ``updates`` when they leave the organization in
    trial on a plan with a trial but without an end date.
    """
    merged = {**current, **updates}
    if merged.get("subscription_status") != SubscriptionStatus.TRIAL.value or merged.get("trial_end_date"):
        return updates
    trial_days = get_plan(merged["subscription_plan"])["trial_days"]
    if trial_days > 0:
        updates = {**updates, "trial_end_date": (_now(now) + timedelta(days=trial_days)).isoformat()}
    return updates


def resolve_subscription_transition(
    current: Dict[str, Any],
    plan: Union[SubscriptionPlan, str],
    status: Optional[Union[SubscriptionStatus, str]] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Compute the fields to write when an organization changes plan.

    Rules, in order:
    1. Quotas and ``subscription_plan`` always come from the requested plan.
    2. An explicit status is written as given.
    3. Otherwise an organization already in trial stays in trial when the new
       plan has a trial, keeping its trial end date (or starting one).
    4. Otherwise the organization becomes active from now.

    An organization that is not in trial never gets a fresh trial this way.
    """
    plan = SubscriptionPlan(plan)
    plan_def = get_plan(plan)
    current_time = _now(now)

    update: Dict[str, Any] = {
        "subscription_plan": plan.value,
        "max_users": plan_def["max_users"],
        "max_cases": plan_def["max_cases"],
    }

    if status is not None:
        update["subscription_status"] = SubscriptionStatus(status).value
    elif plan_def["trial_days"] > 0 and current.get("subscription_status") == SubscriptionStatus.TRIAL.value:
        update["subscription_status"] = SubscriptionStatus.TRIAL.value
        update["trial_end_date"] = current.get("trial_end_date") or (
            current_time + timedelta(days=plan_def["trial_days"])
        ).isoformat()
    else:
        update["subscription_status"] = SubscriptionStatus.ACTIVE.value
        update["subscription_start_date"] = current_time.isoformat()

    return update


# ============================================================================
# QUOTA CHECKS
# ============================================================================

def check_subscription(org: Dict[str, Any], now: Optional[datetime] = None) -> Tuple[bool, str]:
    """Whether the organization's subscription currently permits new records."""
    status = org.get("subscription_status")
    if status == SubscriptionStatus.EXPIRED.value:
        return False, "Subscription has expired"
    if status == SubscriptionStatus.CANCELLED.value:
        return False, "Subscription has been cancelled"
    if status == SubscriptionStatus.TRIAL.value:
        trial_end = _parse_iso(org.get("trial_end_date"))
        if trial_end is not None and trial_end < _now(now):
            return False, "Trial period has ended"
    return True, "Subscription is active"


def _quota_check(limit: Optional[int], used: Optional[int], label: str) -> Tuple[bool, str]:
    limit = limit or 0
    used = used or 0
    if limit == UNLIMITED:
        return True, "OK"
    if used >= limit:
        return False, f"Organization has reached maximum {label} limit ({limit})"
    return True, "OK"


def can_add_case(org: Dict[str, Any]) -> Tuple[bool, str]:
    return _quota_check(org.get("max_cases"), org.get("current_cases"), "case")


def can_add_user(org: Dict[str, Any]) -> Tuple[bool, str]:
    return _quota_check(org.get("max_users"), org.get("current_users"), "user")


def check_case_creation(org: Dict[str, Any], now: Optional[datetime] = None) -> Tuple[bool, str]:
    """Gate applied before a case is tagged with this organization.

    A ``max_cases`` of 0 means the organization has no case quota configured.
    """
    allowed, reason = check_subscription(org, now)
    if not allowed:
        return False, reason
    if (org.get("max_cases") or 0) > 0:
        return can_add_case(org)
    return True, "OK"
