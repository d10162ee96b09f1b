"""Integration endpoints: connect sources and trigger scans."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import current_user_id
from ..exceptions import InvalidRequestError, NotFoundError
from ..models.ingestion import ScanResult
from ..models.integration import (
    Integration,
    IntegrationConnectRequest,
    IntegrationUpdateRequest,
)
from ..models.source import SourceType
from ..services import integration_service
from ..services.scanner import scan_integration

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/integrations", tags=["integrations"])


@router.get("", response_model=list[Integration])
def list_integrations(user_id: str = Depends(current_user_id)) -> list[Integration]:
    """List the caller's connected sources. Credentials are never returned."""
    return integration_service.list_integrations(user_id)


@router.put("/{source}", response_model=Integration)
def connect_integration(
    source: SourceType,
    request: IntegrationConnectRequest,
    user_id: str = Depends(current_user_id),
) -> Integration:
    """Connect a source or replace its credentials."""
    try:
        return integration_service.connect_integration(user_id, source, request)
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.patch("/{source}", response_model=Integration)
def update_integration(
    source: SourceType,
    request: IntegrationUpdateRequest,
    user_id: str = Depends(current_user_id),
) -> Integration:
    """Change scan frequency, filter rules or source settings."""
    try:
        return integration_service.update_integration(user_id, source, request)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.delete("/{source}")
def disconnect_integration(
    source: SourceType,
    user_id: str = Depends(current_user_id),
) -> dict[str, bool]:
    try:
        integration_service.disconnect_integration(user_id, source)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return {"success": True}


@router.post("/{source}/scan", response_model=ScanResult)
def scan_now(
    source: SourceType,
    max_items: int | None = None,
    user_id: str = Depends(current_user_id),
) -> ScanResult:
    """Scan a source immediately instead of waiting for its poller."""
    try:
        return scan_integration(user_id, source, max_items=max_items)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
