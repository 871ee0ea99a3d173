"""Manage router: index maintenance actions and health endpoints."""

import os

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from server.api.models.requests import ManageRequest
from server.api.models.responses import HealthResponse, ManageResponse
from shared.dependencies.auth import get_organization_id, verify_api_key

manage_router = APIRouter()


@manage_router.post(
    "/search/manage",
    dependencies=[Depends(verify_api_key)],
    tags=["Manage"],
)
async def handle_manage(
    request: Request,
    body: ManageRequest,
    organization_id: str = Depends(get_organization_id),
) -> JSONResponse:
    """Run one index maintenance action for the caller's organization.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        body (ManageRequest): The action and its arguments.
        organization_id (str): The tenant from the request headers.

    Returns:
        JSONResponse: Whether the action succeeded, with a readable message.

    Raises:
        HTTPException: 400 if a file action comes without file_id.
    """
    integration_service = request.app.state.integration_service
    request.app.state.logging.info("Manage action %r for organization_id=%s", body.action, organization_id)

    if body.action in ("index_file", "remove_file") and not body.file_id:
        raise HTTPException(status_code=400, detail="file_id is required for this action.")

    if body.action == "index_file":
        success = await integration_service.index_file(body.file_id, organization_id)
        message = "File indexed successfully" if success else "Failed to index file"
        response = ManageResponse(success=success, action=body.action, message=message)

    elif body.action == "remove_file":
        success = await integration_service.remove_file(body.file_id, organization_id)
        message = "File removed from index" if success else "Failed to remove file from index"
        response = ManageResponse(success=success, action=body.action, message=message)

    elif body.action == "bulk_index":
        result = await integration_service.bulk_index_files(organization_id, limit=body.limit, offset=body.offset)
        response = ManageResponse(
            success=True,
            action=body.action,
            message=f"Bulk indexing complete: {result['success']} success, {result['failed']} failed",
            indexed=result["success"],
            failed=result["failed"],
        )

    elif body.action == "reindex_all":
        success = await integration_service.reindex_organization(organization_id)
        message = "Organization reindexed successfully" if success else "Reindexing finished with failures"
        response = ManageResponse(success=success, action=body.action, message=message)

    else:
        health = await integration_service.health_check()
        response = ManageResponse(success=health.status == "healthy", action=body.action, message=health.message)

    return JSONResponse(content=response.model_dump())


@manage_router.get(
    "/search/manage",
    dependencies=[Depends(verify_api_key)],
    tags=["Manage"],
)
async def handle_manage_health(request: Request) -> JSONResponse:
    """Report the health of the search backend."""
    health = await request.app.state.integration_service.health_check()
    return JSONResponse(content={"success": health.status == "healthy", **health.model_dump()})


@manage_router.get(
    "/health",
    dependencies=[Depends(verify_api_key)],
    tags=["Manage"],
)
async def handle_health(request: Request) -> JSONResponse:
    """Liveness of the process plus the health of the search backend and the database."""
    search_health = await request.app.state.search_service.health_check()
    database_ok = await request.app.state.database_client.do_healthcheck()
    response = HealthResponse(
        status="ok" if search_health.status == "healthy" and database_ok else "degraded",
        version=os.getenv("APP_VERSION", "unknown"),
        search=search_health,
        database=database_ok,
    )
    return JSONResponse(content=response.model_dump())
