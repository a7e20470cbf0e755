"""
Facility rule and policy endpoints.

Writes go straight to storage and then drop the facility's cached rule
set so the next evaluation sees them.
"""

from fastapi import APIRouter, Request, status

from app import db
from app.dependencies import Engine
from app.errors import InputError, RuleConfigError
from app.models import FacilityPolicy, FacilityRuleConfig, FacilityRules, RuleSummary, RuleUpdate
from app.rate_limit import ADMIN, limiter
from app.services.rules.catalog import RULE_CATALOG, parse_rule_config

router = APIRouter(prefix="/api/facilities/{facility_id}", tags=["rules"])


@router.get(
    "/rules",
    response_model=FacilityRules,
    operation_id="getRules",
    summary="Get the facility policy and its typed rule configuration",
)
async def get_rules(facility_id: str, engine: Engine) -> FacilityRules:
    rule_set = await engine.registry.load(facility_id)
    return FacilityRules(
        facility_id=facility_id,
        policy=rule_set.policy,
        rules=[
            RuleSummary(
                code=entry.code,
                name=entry.spec.name,
                category=entry.category.value,
                enabled=entry.enabled,
                config=entry.config.model_dump(mode="json"),
            )
            for code, entry in sorted(rule_set.entries.items())
        ],
    )


@router.put(
    "/rules/{rule_code}",
    response_model=FacilityRuleConfig,
    operation_id="putRule",
    summary="Enable, disable, or reconfigure one rule",
)
@limiter.limit(ADMIN)
async def put_rule(
    request: Request,
    facility_id: str,
    rule_code: str,
    body: RuleUpdate,
    engine: Engine,
) -> FacilityRuleConfig:
    code = rule_code.upper()
    if code not in RULE_CATALOG:
        raise InputError(f"unknown rule code {rule_code}", rule_code=rule_code)
    # Reject configs the registry would refuse to load
    try:
        parse_rule_config(code, body.config)
    except RuleConfigError as exc:
        raise InputError(exc.message, **exc.details) from exc
    rule = FacilityRuleConfig(
        facility_id=facility_id, rule_code=code, enabled=body.enabled, config=body.config,
    )
    saved = await db.upsert_rule_config(rule)
    engine.registry.invalidate(facility_id)
    return saved


@router.put(
    "/policy",
    response_model=FacilityPolicy,
    operation_id="putPolicy",
    summary="Replace the facility policy",
)
@limiter.limit(ADMIN)
async def put_policy(
    request: Request,
    facility_id: str,
    body: FacilityPolicy,
    engine: Engine,
) -> FacilityPolicy:
    policy = body.model_copy(update={"facility_id": facility_id})
    saved = await db.save_facility_policy(policy)
    engine.registry.invalidate(facility_id)
    return saved


@router.post(
    "/rules/invalidate",
    status_code=status.HTTP_204_NO_CONTENT,
    operation_id="invalidateRules",
    summary="Drop the cached rule set for a facility",
)
async def invalidate_rules(facility_id: str, engine: Engine) -> None:
    engine.registry.invalidate(facility_id)
