"""Search router: full-text document search and title suggestions."""

import math
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from server.api.models.requests import SearchRequest
from server.api.models.responses import PaginationInfo, SearchApiResponse, SuggestionsResponse
from shared.dependencies.auth import get_organization_id, verify_api_key
from shared.models.search import DateRange, Pagination, SearchFilters, SearchQuery, SearchType, SizeRange, SortSpec

search_router = APIRouter()


@search_router.get(
    "/search",
    dependencies=[Depends(verify_api_key)],
    tags=["Search"],
)
async def handle_search_get(
    request: Request,
    organization_id: str = Depends(get_organization_id),
    q: str = "",
    department: list[str] = Query(default=[]),
    file_type: list[str] = Query(default=[]),
    author: list[str] = Query(default=[]),
    tags: list[str] = Query(default=[]),
    visibility: list[str] = Query(default=[]),
    date_from: str | None = None,
    date_to: str | None = None,
    size_min: int | None = None,
    size_max: int | None = None,
    folder_path: str | None = None,
    has_content: bool | None = None,
    ocr_confidence_min: float | None = None,
    search_type: SearchType = SearchType.BASIC,
    highlight: bool = False,
    sort_field: str | None = None,
    sort_order: Literal["asc", "desc"] = "desc",
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=500),
) -> JSONResponse:
    """Search documents of the caller's organization with query string parameters.

    Repeated parameters (e.g. ?department=HR&department=Legal) select several values.

    Returns:
        JSONResponse: The search response plus page information.
    """
    filters = SearchFilters(
        department=department,
        file_type=file_type,
        author=author,
        tags=tags,
        visibility=visibility,
        date_range=DateRange(from_=date_from, to=date_to) if (date_from or date_to) else None,
        size_range=SizeRange(min=size_min, max=size_max) if (size_min is not None or size_max is not None) else None,
        folder_path=folder_path or None,
        has_content=has_content,
        ocr_confidence_min=ocr_confidence_min,
    )
    search_query = SearchQuery(
        query=q,
        organization_id=organization_id,
        filters=filters,
        sort=SortSpec(field=sort_field, order=sort_order) if sort_field else None,
        pagination=Pagination(from_=(page - 1) * page_size, size=page_size),
        search_type=search_type,
        highlight=highlight,
    )
    request.app.state.logging.info(
        "Search received - organization_id=%s type=%s query=%r", organization_id, search_type.value, q[:80]
    )

    result = await request.app.state.search_service.search_documents(search_query)
    response = SearchApiResponse(
        **result.model_dump(),
        pagination=PaginationInfo(
            page=page,
            page_size=page_size,
            total_pages=math.ceil(result.total / page_size),
        ),
    )
    return JSONResponse(content=response.model_dump(mode="json"))


@search_router.post(
    "/search",
    dependencies=[Depends(verify_api_key)],
    tags=["Search"],
)
async def handle_search_post(
    request: Request,
    body: SearchRequest,
    organization_id: str = Depends(get_organization_id),
) -> JSONResponse:
    """Search documents of the caller's organization with a JSON body.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        body (SearchRequest): Query, filters, sort, pagination, mode and highlight flag.
        organization_id (str): The tenant from the request headers, never from the body.

    Returns:
        JSONResponse: The search response.
    """
    search_query = body.to_search_query(organization_id)
    request.app.state.logging.info(
        "Search received - organization_id=%s type=%s query=%r",
        organization_id, search_query.search_type.value, search_query.query[:80],
    )

    result = await request.app.state.search_service.search_documents(search_query)
    response = SearchApiResponse(**result.model_dump())
    return JSONResponse(content=response.model_dump(mode="json"))


@search_router.get(
    "/search/suggestions",
    dependencies=[Depends(verify_api_key)],
    tags=["Search"],
)
async def handle_suggestions(
    request: Request,
    q: str = "",
    organization_id: str = Depends(get_organization_id),
) -> JSONResponse:
    """Suggest document titles for a partial query (at least 2 characters)."""
    suggestions = await request.app.state.search_service.get_search_suggestions(q, organization_id)
    return JSONResponse(content=SuggestionsResponse(suggestions=suggestions).model_dump())
