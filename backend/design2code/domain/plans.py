"""Plan tiers and the guest plan lifecycle.

Pure domain logic with no external dependencies. Expiry is evaluated only
when a caller asks for it (load, plan change, session change); nothing here
runs on a timer.
"""
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from enum import Enum

PRO_PLAN_DURATION = timedelta(days=30)


class PlanTier(str, Enum):
    """Subscription level gating feature access."""

    STARTER = "starter"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class PlanPhase(str, Enum):
    """Lifecycle phase of a plan at a given instant."""

    STARTER = "starter"
    ACTIVE = "active"
    EXPIRED = "expired"  # Transient: reconcile_expiry collapses it to STARTER


@dataclass(frozen=True)
class PlanState:
    """Current tier plus optional expiry. Starter never carries an expiry."""

    tier: PlanTier = PlanTier.STARTER
    expiry_date: datetime | None = None


def parse_tier(value: str | None) -> PlanTier | None:
    """Map a stored or session-reported tier string to PlanTier, None if unknown."""
    if value is None:
        return None
    try:
        return PlanTier(value)
    except ValueError:
        return None


def plan_phase(state: PlanState, now: datetime) -> PlanPhase:
    """Classify a plan state at ``now``."""
    if state.tier == PlanTier.STARTER:
        return PlanPhase.STARTER
    if state.expiry_date is not None and now > state.expiry_date:
        return PlanPhase.EXPIRED
    return PlanPhase.ACTIVE


def change_plan(
    state: PlanState,
    tier: PlanTier,
    now: datetime | None = None,
    duration: timedelta = PRO_PLAN_DURATION,
) -> PlanState:
    """Apply an explicit plan change.

    Rules:
        - pro always restarts the clock: expiry = now + duration
        - starter clears the expiry
        - enterprise keeps whatever expiry was already set
    """
    now = now or datetime.now(UTC)

    if tier == PlanTier.PRO:
        return PlanState(tier=tier, expiry_date=now + duration)
    if tier == PlanTier.STARTER:
        return PlanState()
    return replace(state, tier=tier)


def reconcile_expiry(state: PlanState, now: datetime | None = None) -> PlanState:
    """Collapse an expired paid plan back to starter.

    Returns the same object when nothing changes so callers can detect a
    transition with an identity check.
    """
    now = now or datetime.now(UTC)

    if plan_phase(state, now) == PlanPhase.EXPIRED:
        return PlanState()
    return state
