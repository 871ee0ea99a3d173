"""FastAPI authentication and tenant dependencies."""

import hmac

from fastapi import HTTPException, Request


async def verify_api_key(request: Request) -> None:
    """Verify the API key provided in the request header.

    Args:
        request (Request): The incoming FastAPI request.

    Raises:
        HTTPException: If the API key is missing or invalid (401).
    """
    config = request.app.state.config
    expected_key = config.get_string_val("APP_API_KEY")
    provided_key = request.headers.get("X-API-Key")
    if not provided_key or not hmac.compare_digest(provided_key, expected_key):
        raise HTTPException(status_code=401, detail="Invalid or missing API key.")


async def get_organization_id(request: Request) -> str:
    """Resolve the tenant of the request from the X-Organization-Id header.

    Every search operation is scoped by this value.

    Raises:
        HTTPException: If the header is missing or blank (401).
    """
    organization_id = (request.headers.get("X-Organization-Id") or "").strip()
    if not organization_id:
        raise HTTPException(status_code=401, detail="Organization context required.")
    return organization_id
