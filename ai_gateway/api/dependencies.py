"""Shared API dependencies and error translation."""

import asyncio
import logging
from typing import Any, Awaitable, NoReturn, Optional

from fastapi import Depends, Header, HTTPException, Request

from ai_gateway.services.chat_service import ChatService
from ai_gateway.services.configuration_service import ConfigurationService
from ai_gateway.services.credential_vault import CredentialVault
from ai_gateway.services.interaction_service import InteractionService
from ai_gateway.services.errors import (
    CapabilityNotSupported,
    ConfigurationError,
    ConfigurationNotFound,
    GatewayError,
    NetworkTimeout,
    VendorRateLimited,
)

logger = logging.getLogger(__name__)

# Seconds between client disconnect checks while a vendor call is in flight
DISCONNECT_POLL_INTERVAL = 0.5

# nginx convention for "client closed request"
CLIENT_CLOSED_REQUEST = 499


def get_tenant_id(x_tenant_id: int = Header(..., description="Tenant making the request")) -> int:
    """Get the calling tenant from the X-Tenant-ID header."""
    return x_tenant_id


def get_user_id(x_user_id: Optional[int] = Header(None, description="User making the request")) -> Optional[int]:
    """Get the calling user from the optional X-User-ID header."""
    return x_user_id


def get_vault() -> CredentialVault:
    """Get credential vault instance."""
    return CredentialVault()


def get_configuration_service(vault: CredentialVault = Depends(get_vault)) -> ConfigurationService:
    """Get configuration service instance."""
    return ConfigurationService(vault)


def get_interaction_service() -> InteractionService:
    """Get interaction service instance."""
    return InteractionService()


def get_chat_service(
    vault: CredentialVault = Depends(get_vault),
    configuration_service: ConfigurationService = Depends(get_configuration_service),
    interaction_service: InteractionService = Depends(get_interaction_service),
) -> ChatService:
    """Get chat service instance."""
    return ChatService(vault, configuration_service, interaction_service=interaction_service)


def raise_http_error(error: GatewayError) -> NoReturn:
    """Translate a gateway error into an HTTP error.

    ``error_type`` tells the caller whether to reconfigure (``configuration``)
    or retry later (``vendor``).
    """
    if isinstance(error, ConfigurationNotFound):
        status_code, error_type = 404, "configuration"
    elif isinstance(error, ConfigurationError):
        status_code, error_type = 422, "configuration"
    elif isinstance(error, CapabilityNotSupported):
        status_code, error_type = 501, "capability"
    elif isinstance(error, VendorRateLimited):
        status_code, error_type = 429, "vendor"
    elif isinstance(error, NetworkTimeout):
        status_code, error_type = 504, "vendor"
    else:
        status_code, error_type = 502, "vendor"

    raise HTTPException(
        status_code=status_code,
        detail={"message": str(error), "error_type": error_type},
    )


async def run_until_disconnected(request: Request, work: Awaitable[Any]) -> Any:
    """Await work, cancelling it if the client disconnects first.

    Cancelling the task aborts any outbound vendor request it is waiting on.
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_INTERVAL)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.warning(f"Client disconnected from {request.url.path}, cancelling vendor call")
                task.cancel()
                raise HTTPException(status_code=CLIENT_CLOSED_REQUEST, detail="Client closed request")
    finally:
        if not task.done():
            task.cancel()
