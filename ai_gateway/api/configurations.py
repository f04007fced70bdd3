"""AI configuration API endpoints."""

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from ai_gateway.api.dependencies import (
    get_chat_service,
    get_configuration_service,
    get_tenant_id,
    raise_http_error,
)
from ai_gateway.database.database import get_db
from ai_gateway.services.chat_service import ChatService
from ai_gateway.services.configuration_service import ConfigurationService
from ai_gateway.services.errors import GatewayError

router = APIRouter(prefix="/api/v1/ai/configurations", tags=["ai-configurations"])


class ConfigurationCreate(BaseModel):
    """Configuration creation request."""

    model_config = ConfigDict(protected_namespaces=())

    provider: str
    api_key: str
    model_id: Optional[str] = None
    activate: bool = True
    verify_key: bool = True


class ConfigurationResponse(BaseModel):
    """Configuration response."""

    model_config = ConfigDict(protected_namespaces=())

    id: int
    provider: str
    model_id: Optional[str] = None
    is_active: bool
    api_key_masked: str
    created_at: str
    updated_at: str


class ConnectionTestResponse(BaseModel):
    """Connection test response."""

    ok: bool
    message: str


class ModelsResponse(BaseModel):
    """Model listing response."""

    models: List[str]


def _to_response(configuration_dict: dict) -> ConfigurationResponse:
    return ConfigurationResponse(
        id=configuration_dict["id"],
        provider=configuration_dict["provider"],
        model_id=configuration_dict["model_id"],
        is_active=configuration_dict["is_active"],
        api_key_masked=configuration_dict["api_key_masked"],
        created_at=configuration_dict["created_at"].isoformat(),
        updated_at=configuration_dict["updated_at"].isoformat(),
    )


def _find(service: ConfigurationService, db: Session, tenant_id: int, configuration_id: int) -> dict:
    configuration_dict = next(
        (c for c in service.list_configurations(db, tenant_id) if c["id"] == configuration_id),
        None,
    )
    if not configuration_dict:
        raise HTTPException(status_code=404, detail=f"AI configuration {configuration_id} not found")
    return configuration_dict


@router.post("", response_model=ConfigurationResponse, status_code=201)
async def create_configuration(
    configuration: ConfigurationCreate,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
    service: ConfigurationService = Depends(get_configuration_service),
):
    """Create a configuration.

    The key is tested against the vendor (unless ``verify_key`` is false) and
    stored encrypted.
    """
    try:
        created = await service.add_configuration(
            db=db,
            tenant_id=tenant_id,
            provider=configuration.provider,
            api_key=configuration.api_key,
            model_id=configuration.model_id,
            activate=configuration.activate,
            validate=configuration.verify_key,
        )
    except GatewayError as e:
        raise_http_error(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _to_response(_find(service, db, tenant_id, created.id))


@router.get("", response_model=List[ConfigurationResponse])
async def list_configurations(
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
    service: ConfigurationService = Depends(get_configuration_service),
):
    """List the tenant's configurations with masked API keys."""
    return [_to_response(c) for c in service.list_configurations(db, tenant_id)]


@router.post("/{configuration_id}/activate", response_model=ConfigurationResponse)
async def activate_configuration(
    configuration_id: int,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
    service: ConfigurationService = Depends(get_configuration_service),
):
    """Make a configuration the active one for its provider."""
    try:
        activated = service.set_active(db, tenant_id, configuration_id)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if not activated:
        raise HTTPException(status_code=404, detail=f"AI configuration {configuration_id} not found")
    return _to_response(_find(service, db, tenant_id, configuration_id))


@router.delete("/{configuration_id}", status_code=204)
async def delete_configuration(
    configuration_id: int,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
    service: ConfigurationService = Depends(get_configuration_service),
):
    """Delete a configuration."""
    if not service.delete_configuration(db, tenant_id, configuration_id):
        raise HTTPException(status_code=404, detail=f"AI configuration {configuration_id} not found")
    return None


@router.post("/{configuration_id}/test", response_model=ConnectionTestResponse)
async def test_configuration(
    configuration_id: int,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
    service: ChatService = Depends(get_chat_service),
):
    """Test a stored configuration against its vendor.

    Vendor failures are reported in the body with ``ok: false``.
    """
    try:
        result = await service.test_configuration(db, tenant_id, configuration_id)
    except GatewayError as e:
        raise_http_error(e)

    return ConnectionTestResponse(ok=result.ok, message=result.message)


@router.get("/{configuration_id}/models", response_model=ModelsResponse)
async def list_models(
    configuration_id: int,
    tenant_id: int = Depends(get_tenant_id),
    db: Session = Depends(get_db),
    service: ChatService = Depends(get_chat_service),
):
    """List models available to a stored configuration, where the vendor supports it."""
    try:
        models = await service.list_models(db, tenant_id, configuration_id)
    except GatewayError as e:
        raise_http_error(e)

    return ModelsResponse(models=models)
