"""
Rule registry – typed, cached view of a facility's rule configuration.

Loads the stored rule rows and facility policy through a RuleConfigProvider,
validates every config against its catalog model, and caches the result per
facility. The registry never mutates rules; the admin surface that edits
them calls invalidate() afterwards.

Usage::

    registry = RuleRegistry(provider, ttl_seconds=300)
    rules = await registry.load("club-1")
    rules.active_rules()            # enabled entries in catalog order
    rules.court                     # enabled court-category entries
    registry.invalidate("club-1")
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field

from app import config
from app.errors import BookingEngineError, EvaluationUnavailable
from app.models import FacilityPolicy
from app.services.providers import RuleConfigProvider
from app.services.rules.catalog import (
    RULE_CATALOG,
    RuleCategory,
    RuleConfig,
    RuleSpec,
    parse_rule_config,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleEntry:
    spec: RuleSpec
    enabled: bool
    config: RuleConfig

    @property
    def code(self) -> str:
        return self.spec.code

    @property
    def category(self) -> RuleCategory:
        return self.spec.category


@dataclass(frozen=True)
class FacilityRuleSet:
    """Everything configured for one facility, validated."""

    facility_id: str
    policy: FacilityPolicy
    entries: dict[str, RuleEntry] = field(default_factory=dict)

    def active_rules(self) -> list[RuleEntry]:
        return [
            self.entries[code]
            for code in RULE_CATALOG
            if code in self.entries and self.entries[code].enabled
        ]

    def get(self, code: str) -> RuleEntry | None:
        """The entry for *code* if it is enabled."""
        entry = self.entries.get(code)
        return entry if entry is not None and entry.enabled else None

    def by_category(self, category: RuleCategory) -> list[RuleEntry]:
        return [e for e in self.active_rules() if e.category == category]

    @property
    def account(self) -> list[RuleEntry]:
        return self.by_category(RuleCategory.ACCOUNT)

    @property
    def cancellation(self) -> list[RuleEntry]:
        return self.by_category(RuleCategory.CANCELLATION)

    @property
    def court(self) -> list[RuleEntry]:
        return self.by_category(RuleCategory.COURT)

    @property
    def household(self) -> list[RuleEntry]:
        return self.by_category(RuleCategory.HOUSEHOLD)


def default_policy(facility_id: str) -> FacilityPolicy:
    """Policy used for facilities without a stored policy row."""
    return FacilityPolicy(
        facility_id=facility_id,
        timezone=config.FACILITY_TIMEZONE,
        day_start_hour=config.DAY_START_HOUR,
        day_end_hour=config.DAY_END_HOUR,
        slot_granularity_minutes=config.SLOT_GRANULARITY_MINUTES,
    )


class RuleRegistry:
    """
    Per-facility cache of FacilityRuleSet.

    Entries expire after *ttl_seconds* (0 keeps them until invalidated).
    Concurrent loads for the same facility share one provider round-trip.
    """

    def __init__(
        self,
        provider: RuleConfigProvider,
        *,
        ttl_seconds: float = config.RULE_CACHE_TTL_SECONDS,
    ) -> None:
        self._provider = provider
        self._ttl = ttl_seconds
        self._cache: dict[str, tuple[float, FacilityRuleSet]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    # ── Read ───────────────────────────────────────────────────────────

    async def load(self, facility_id: str) -> FacilityRuleSet:
        cached = self._fresh(facility_id)
        if cached is not None:
            return cached

        lock = self._locks.setdefault(facility_id, asyncio.Lock())
        async with lock:
            cached = self._fresh(facility_id)
            if cached is not None:
                return cached
            rule_set = await self._fetch(facility_id)
            self._cache[facility_id] = (time.monotonic(), rule_set)
            logger.info(
                "Loaded %d active rules for facility %s",
                len(rule_set.active_rules()), facility_id,
            )
            return rule_set

    def _fresh(self, facility_id: str) -> FacilityRuleSet | None:
        hit = self._cache.get(facility_id)
        if hit is None:
            return None
        loaded_at, rule_set = hit
        if self._ttl > 0 and time.monotonic() - loaded_at >= self._ttl:
            return None
        return rule_set

    async def _fetch(self, facility_id: str) -> FacilityRuleSet:
        try:
            rows = await self._provider.active_rules(facility_id)
            policy = await self._provider.facility_policy(facility_id)
        except BookingEngineError:
            raise
        except Exception as exc:
            raise EvaluationUnavailable(
                f"could not load rules for facility {facility_id}",
                facility_id=facility_id,
            ) from exc

        entries: dict[str, RuleEntry] = {}
        for row in rows:
            code = row.rule_code.upper()
            spec = RULE_CATALOG.get(code)
            if spec is None:
                logger.warning(
                    "Ignoring unknown rule code %r for facility %s", row.rule_code, facility_id,
                )
                continue
            entries[code] = RuleEntry(
                spec=spec,
                enabled=row.enabled,
                config=parse_rule_config(code, row.config),
            )

        return FacilityRuleSet(
            facility_id=facility_id,
            policy=policy or default_policy(facility_id),
            entries=entries,
        )

    # ── Invalidation ───────────────────────────────────────────────────

    def invalidate(self, facility_id: str | None = None) -> None:
        """Drop one facility's cached rules, or all of them."""
        if facility_id is None:
            self._cache.clear()
            logger.info("Rule cache cleared")
            return
        if self._cache.pop(facility_id, None) is not None:
            logger.info("Rule cache invalidated for facility %s", facility_id)
