"""Public and user-facing REST API routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from sova.api.deps import (
    AuthContext,
    client_info,
    current_user,
    get_services,
    require_webhook_secret,
    subscribed_user,
)
from sova.api.schemas import (
    ActivationResponse,
    AuthResponse,
    AutoActivateRequest,
    CredentialsRequest,
    EmailSubscriptionResponse,
    LogoutOthersResponse,
    MessageResponse,
    SessionResponse,
    SessionsResponse,
    SignalReceivedResponse,
    SignalsResponse,
    SubscriptionResponse,
    SubscriptionStatusResponse,
)
from sova.errors import ValidationError
from sova.models import IngressPolicy
from sova.services import Services

logger = logging.getLogger(__name__)

router = APIRouter()


# Accounts and sessions

@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: CredentialsRequest,
    request: Request,
    services: Services = Depends(get_services),
):
    """Create an account and log it in."""
    user_id = await services.users.register(body.email, body.password)
    addr, agent = client_info(request)
    token = await services.sessions.login(user_id, addr, agent)
    return AuthResponse(token=token, user_id=user_id)


@router.post("/login", response_model=AuthResponse)
async def login(
    body: CredentialsRequest,
    request: Request,
    services: Services = Depends(get_services),
):
    """Log in, subject to the per-user device limit."""
    user_id = await services.users.authenticate(body.email, body.password)
    addr, agent = client_info(request)
    token = await services.sessions.login(user_id, addr, agent)
    return AuthResponse(token=token, user_id=user_id)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    auth: AuthContext = Depends(current_user),
    services: Services = Depends(get_services),
):
    await services.sessions.logout(auth.user_id, auth.token)
    return MessageResponse(message="Logged out successfully")


@router.get("/sessions", response_model=SessionsResponse)
async def list_sessions(
    auth: AuthContext = Depends(current_user),
    services: Services = Depends(get_services),
):
    """List the caller's active devices."""
    sessions = await services.sessions.list_sessions(auth.user_id)
    return SessionsResponse(
        sessions=[
            SessionResponse(
                client_addr=s.client_addr,
                client_agent=s.client_agent,
                created_at=s.created_at,
                last_activity=s.last_activity,
                current=s.token == auth.token,
            )
            for s in sessions
        ]
    )


@router.post("/logout-other-sessions", response_model=LogoutOthersResponse)
async def logout_other_sessions(
    auth: AuthContext = Depends(current_user),
    services: Services = Depends(get_services),
):
    removed = await services.sessions.logout_others(auth.user_id, auth.token)
    return LogoutOthersResponse(message="Other sessions logged out", removed=removed)


# Signal ingestion

async def _read_signal_body(request: Request) -> dict:
    """Parse a JSON or form-encoded signal body."""
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            data = await request.json()
        except ValueError:
            raise ValidationError("Invalid JSON body")
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON body")
        return data
    if "form" in content_type:
        form = await request.form()
        return dict(form)
    return {}


async def _ingest(services: Services, data: dict, policy: IngressPolicy) -> SignalReceivedResponse:
    signal = await services.ledger.append(data.get("asset"), data.get("signal"), policy)
    return SignalReceivedResponse(message="Signal received successfully", signal=signal)


@router.post("/receive_signal", response_model=SignalReceivedResponse)
async def receive_signal(request: Request, services: Services = Depends(get_services)):
    """Receive a signal from the advisor (JSON or form body)."""
    data = await _read_signal_body(request)
    return await _ingest(services, data, services.post_ingress)


@router.get("/receive_signal", response_model=SignalReceivedResponse)
async def receive_signal_get(
    asset: Optional[str] = Query(None),
    signal: Optional[str] = Query(None),
    services: Services = Depends(get_services),
):
    """Receive a signal passed as query parameters."""
    return await _ingest(services, {"asset": asset, "signal": signal}, services.get_ingress)


# Signal access

@router.get("/get_signals", response_model=SignalsResponse)
async def get_signals(
    limit: Optional[int] = Query(None, ge=1, description="Maximum signals to return"),
    auth: AuthContext = Depends(subscribed_user),
    services: Services = Depends(get_services),
):
    """Signal history, newest first. Requires an active subscription."""
    ledger = services.ledger
    if limit is None:
        signals = ledger.list_all()
    elif limit > ledger.capacity:
        raise ValidationError(f"limit must be between 1 and {ledger.capacity}")
    else:
        signals = ledger.list_recent(limit)
    return SignalsResponse(total=len(ledger), signals=signals)


@router.get("/stats")
async def get_stats(services: Services = Depends(get_services)):
    """Aggregate signal counts."""
    stats = services.ledger.stats(recent=services.settings.recent_signals)
    by_direction = stats["by_direction"]
    return {
        "total_signals": stats["total"],
        "buy_signals": by_direction.get("buy", 0),
        "sell_signals": by_direction.get("sell", 0),
        "by_direction": by_direction,
        "last_signals": stats["recent"],
    }


# Subscriptions

@router.get("/subscription_status", response_model=SubscriptionStatusResponse)
async def subscription_status(
    auth: AuthContext = Depends(current_user),
    services: Services = Depends(get_services),
):
    user = services.users.get(auth.user_id)
    summary = await services.subscriptions.status_of(auth.user_id)
    return SubscriptionStatusResponse(email=user.email, **summary.model_dump())


@router.get("/check-subscription-by-email", response_model=EmailSubscriptionResponse)
async def check_subscription_by_email(
    email: Optional[str] = Query(None),
    services: Services = Depends(get_services),
):
    if not email or not email.strip():
        raise ValidationError("Email is required")

    user = services.users.find_by_email(email)
    if user is None:
        return EmailSubscriptionResponse(email=email, exists=False, has_active=False)

    summary = await services.subscriptions.status_of(user.id)
    return EmailSubscriptionResponse(
        email=email,
        exists=True,
        has_active=summary.has_active,
        status=summary.status,
        expires_at=summary.expires_at,
    )


@router.post(
    "/auto-activate",
    response_model=ActivationResponse,
    dependencies=[Depends(require_webhook_secret)],
)
async def auto_activate(
    body: AutoActivateRequest,
    services: Services = Depends(get_services),
):
    """Activate a subscription from a confirmed payment (trusted caller)."""
    result = await services.activate_by_email(
        body.email,
        months=body.months,
        payment_ref=body.order_id,
        amount=body.amount,
        currency=body.currency,
        channel=body.payment_system,
    )
    return ActivationResponse(
        success=True,
        message="Subscription activated",
        user_id=result.user_id,
        is_new_user=result.is_new_user,
        subscription=SubscriptionResponse.from_subscription(result.subscription),
    )
