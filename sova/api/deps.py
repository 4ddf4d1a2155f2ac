"""Request dependencies: services lookup and authorization."""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request

from sova.services import Services


@dataclass
class AuthContext:
    """Authenticated caller."""

    user_id: int
    token: str


def get_services(request: Request) -> Services:
    return request.app.state.services


def bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Extract the token from ``Authorization: Bearer <token>``."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


async def current_user(
    token: Optional[str] = Depends(bearer_token),
    services: Services = Depends(get_services),
) -> AuthContext:
    user_id = await services.gateway.authorize(token)
    return AuthContext(user_id=user_id, token=token)


async def subscribed_user(
    token: Optional[str] = Depends(bearer_token),
    services: Services = Depends(get_services),
) -> AuthContext:
    user_id = await services.gateway.authorize_with_subscription(token)
    return AuthContext(user_id=user_id, token=token)


def require_webhook_secret(
    secret: Optional[str] = Header(None, alias="X-Webhook-Secret"),
    services: Services = Depends(get_services),
) -> None:
    services.gateway.authorize_trusted_activation(secret)


def require_admin(
    secret: Optional[str] = Header(None, alias="X-Admin-Secret"),
    services: Services = Depends(get_services),
) -> None:
    services.gateway.authorize_admin(secret)


def client_info(request: Request) -> tuple[Optional[str], Optional[str]]:
    """(client address, user agent) of the request."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        addr = forwarded.split(",")[0].strip()
    else:
        addr = request.client.host if request.client else None
    return addr, request.headers.get("user-agent")
