from fastapi import APIRouter, Depends, Request, Response, status

from mediareaper.auth import require_auth
from mediareaper.schemas import (
    ConnectionCreate,
    ConnectionOut,
    ConnectionTestRequest,
    ConnectionUpdate,
    ErrorBody,
    TestResult,
)
from mediareaper.services.registry import ConnectionRegistry

router = APIRouter(
    dependencies=[Depends(require_auth)],
    responses={401: {"model": ErrorBody}},
)


def get_registry(request: Request) -> ConnectionRegistry:
    """Dependency to get the registry built at startup."""
    return request.app.state.registry


@router.get("", response_model=list[ConnectionOut])
async def list_connections(registry: ConnectionRegistry = Depends(get_registry)):
    """List all connections with masked API keys."""
    return await registry.list_connections()


@router.post(
    "",
    response_model=ConnectionOut,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorBody}},
)
async def create_connection(body: ConnectionCreate, registry: ConnectionRegistry = Depends(get_registry)):
    """Create a Sonarr, Radarr or Emby connection; the API key is stored encrypted."""
    return await registry.create(body)


@router.post(
    "/test",
    response_model=TestResult,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorBody}},
)
async def test_unsaved_connection(body: ConnectionTestRequest, registry: ConnectionRegistry = Depends(get_registry)):
    """Probe credentials before saving them. Nothing is stored."""
    return await registry.test_unsaved(body)


@router.get("/{connection_id}", response_model=ConnectionOut, responses={404: {"model": ErrorBody}})
async def get_connection(connection_id: str, registry: ConnectionRegistry = Depends(get_registry)):
    return await registry.get(connection_id)


@router.put(
    "/{connection_id}",
    response_model=ConnectionOut,
    responses={400: {"model": ErrorBody}, 404: {"model": ErrorBody}},
)
async def update_connection(
    connection_id: str,
    body: ConnectionUpdate,
    registry: ConnectionRegistry = Depends(get_registry)
):
    """Update a connection. Omit apiKey to keep the current one."""
    return await registry.update(connection_id, body)


@router.delete(
    "/{connection_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorBody}},
)
async def delete_connection(connection_id: str, registry: ConnectionRegistry = Depends(get_registry)):
    await registry.delete(connection_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{connection_id}/test",
    response_model=TestResult,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorBody}},
)
async def test_saved_connection(connection_id: str, registry: ConnectionRegistry = Depends(get_registry)):
    """Probe a saved connection and record its health status."""
    return await registry.test_saved(connection_id)
