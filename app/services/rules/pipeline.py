"""
Rule evaluation pipeline.

Turns a facility's rule set plus one request into an ordered list of
checks, then runs every check against a single EvaluationContext. No check
short-circuits another: all violations are collected so the caller can
explain every reason at once. The verdict is Deny iff anything was
collected.

Planning happens before history is read, so the engine knows which
history sources to fetch and which checks depend on each of them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Protocol

from app.errors import EvaluationCanceled
from app.models import BookingRequest, RestrictionType, RuleViolation
from app.services.rules import account, court, household  # noqa: F401  (registers evaluators)
from app.services.rules.base import EVALUATORS, USER_BOOKINGS, EvaluationContext
from app.services.rules.catalog import RuleCategory
from app.services.rules.overlays import (
    ADMIN_POLICY,
    PEAK_HOURS,
    WEEKEND_POLICY,
    admin_exempt,
    admin_overlay,
    peak_applies,
    peak_hours_overlay,
    weekend_applies,
    weekend_overlay,
)
from app.services.rules.registry import FacilityRuleSet

logger = logging.getLogger(__name__)


class CancelToken(Protocol):
    """Anything with an ``is_set()`` flag, e.g. asyncio.Event or threading.Event."""

    def is_set(self) -> bool:
        ...


@dataclass(frozen=True)
class Check:
    code: str
    run: Callable[[EvaluationContext], list[RuleViolation]]
    needs: frozenset[str] = frozenset()
    safety_critical: bool = False


def _bind(func: Callable[[EvaluationContext, Any], RuleViolation | None], config: Any):
    def run(ctx: EvaluationContext) -> list[RuleViolation]:
        found = func(ctx, config)
        return [found] if found is not None else []
    return run


def plan_checks(
    rule_set: FacilityRuleSet,
    request: BookingRequest,
    span: tuple[int, int],
) -> list[Check]:
    """
    Checks that apply to *request*, in catalog order followed by overlays.

    *span* is the requested slot run in minutes since midnight; it decides
    whether the peak-hour overlay applies.
    """
    policy = rule_set.policy
    checks: list[Check] = []

    if admin_exempt(request.is_admin, policy):
        checks.append(Check(ADMIN_POLICY, admin_overlay, frozenset({USER_BOOKINGS})))
    else:
        by_address = (
            policy.restriction_type == RestrictionType.ADDRESS
            and request.household_id is not None
        )
        for entry in rule_set.active_rules():
            if not entry.spec.booking_time:
                continue
            if entry.category == RuleCategory.HOUSEHOLD and not by_address:
                continue
            evaluator = EVALUATORS.get(entry.code)
            if evaluator is None:
                logger.warning("No evaluator registered for rule %s", entry.code)
                continue
            checks.append(Check(
                entry.code,
                _bind(evaluator.func, entry.config),
                evaluator.needs,
                entry.spec.safety_critical,
            ))

    if peak_applies(request, policy, span):
        checks.append(Check(PEAK_HOURS, peak_hours_overlay, frozenset({USER_BOOKINGS})))
    if weekend_applies(request, policy):
        checks.append(Check(WEEKEND_POLICY, weekend_overlay, frozenset({USER_BOOKINGS})))
    return checks


def required_sources(checks: Iterable[Check]) -> set[str]:
    return {source for check in checks for source in check.needs}


def run_checks(
    checks: Iterable[Check],
    ctx: EvaluationContext,
    *,
    skip: Iterable[str] = (),
    cancel: CancelToken | None = None,
) -> list[RuleViolation]:
    """
    Evaluate every check and collect all violations.

    Checks whose code is in *skip* are not run. *cancel* is polled before
    each check; once set, evaluation stops with EvaluationCanceled.
    """
    skipped = set(skip)
    violations: list[RuleViolation] = []
    for check in checks:
        if cancel is not None and cancel.is_set():
            raise EvaluationCanceled(
                "evaluation canceled", next_rule=check.code,
            )
        if check.code in skipped:
            continue
        violations.extend(check.run(ctx))
    return violations
