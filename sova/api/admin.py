"""Admin routes, guarded by the admin shared secret."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from sova.api.deps import get_services, require_admin
from sova.api.schemas import (
    AdminStatsResponse,
    AdminSubscriptionRequest,
    AdminSubscriptionResponse,
    AdminUserResponse,
    AdminUsersResponse,
    SubscriptionResponse,
)
from sova.errors import NotFoundError, ValidationError
from sova.models import User
from sova.services import Services

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


async def _describe(services: Services, user: User) -> AdminUserResponse:
    subscription = await services.subscriptions.get(user.id)
    return AdminUserResponse(
        id=user.id,
        email=user.email,
        created_at=user.created_at,
        sessions=services.sessions.count_for(user.id),
        subscription=(
            SubscriptionResponse.from_subscription(subscription) if subscription else None
        ),
    )


@router.get("/users", response_model=AdminUsersResponse)
async def list_users(services: Services = Depends(get_services)):
    users = [await _describe(services, u) for u in services.users.list_users()]
    return AdminUsersResponse(total=len(users), users=users)


@router.get("/stats", response_model=AdminStatsResponse)
async def admin_stats(services: Services = Depends(get_services)):
    counts = await services.subscriptions.counts()
    return AdminStatsResponse(
        users=len(services.users),
        active_subscriptions=counts["active"],
        expired_subscriptions=counts["expired"],
        sessions=len(services.sessions),
        signals=len(services.ledger),
    )


@router.get("/search", response_model=AdminUsersResponse)
async def search_users(
    email: Optional[str] = Query(None, description="Substring of the email"),
    services: Services = Depends(get_services),
):
    if not email or not email.strip():
        raise ValidationError("Search query is required")
    users = [await _describe(services, u) for u in services.users.search(email.strip())]
    return AdminUsersResponse(total=len(users), users=users)


@router.post("/subscription", response_model=AdminSubscriptionResponse)
async def manage_subscription(
    body: AdminSubscriptionRequest,
    services: Services = Depends(get_services),
):
    """Activate, deactivate or delete a user's subscription."""
    if body.action == "activate":
        result = await services.activate_by_email(body.email, months=body.months, channel="admin")
        return AdminSubscriptionResponse(
            success=True,
            message="Subscription activated",
            user_id=result.user_id,
            subscription=SubscriptionResponse.from_subscription(result.subscription),
        )

    user = services.users.find_by_email(body.email)
    if user is None:
        raise NotFoundError("User not found")

    if body.action == "deactivate":
        changed = await services.subscriptions.deactivate(user.id)
        message = "Subscription deactivated" if changed else "No subscription to deactivate"
    else:
        changed = await services.subscriptions.delete(user.id)
        message = "Subscription deleted" if changed else "No subscription to delete"

    subscription = await services.subscriptions.get(user.id)
    return AdminSubscriptionResponse(
        success=changed,
        message=message,
        user_id=user.id,
        subscription=(
            SubscriptionResponse.from_subscription(subscription) if subscription else None
        ),
    )
