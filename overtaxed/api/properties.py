from fastapi import APIRouter, Depends, Header, HTTPException
import logging

from overtaxed.core.billing_limits import can_add_property, get_property_limit, requires_custom_pricing
from overtaxed.db.repository import Repository, get_repository
from overtaxed.schemas.billing import PlanLimitInfo
from overtaxed.schemas.property import CreatePropertyRequest, Property
from pydantic import ValidationError

router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)


@router.post("/properties", response_model=Property, status_code=201)
async def add_property(
    body: CreatePropertyRequest,
    x_user_id: str = Header(..., alias="X-User-ID"),
    repo: Repository = Depends(get_repository),
):
    user = repo.get_user(x_user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    count = len(repo.list_properties(user.id))
    if not can_add_property(count, user.subscription_tier):
        limit = get_property_limit(user.subscription_tier)
        detail = f"Property limit reached for {user.subscription_tier.value} ({limit})"
        if requires_custom_pricing(count + 1):
            detail += ". More than 20 properties requires custom pricing."
        raise HTTPException(status_code=403, detail=detail)

    try:
        prop = Property(user_id=user.id, **body.model_dump())
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors()[0]["msg"])

    repo.add_property(prop)
    logger.info(f"Property {prop.pin} added for user {user.id}")
    return prop


@router.get("/billing/plan-info", response_model=PlanLimitInfo)
async def plan_info(
    x_user_id: str = Header(..., alias="X-User-ID"),
    repo: Repository = Depends(get_repository),
):
    user = repo.get_user(x_user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    count = len(repo.list_properties(user.id))
    return PlanLimitInfo(
        tier=user.subscription_tier.value,
        property_limit=get_property_limit(user.subscription_tier),
        property_count=count,
        can_add_property=can_add_property(count, user.subscription_tier),
    )
