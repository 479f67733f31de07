from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import ValidationError

from thrift_search.agents.orchestrator import SearchOrchestrator
from thrift_search.core.exceptions import SearchContractError
from thrift_search.models.products import SearchFilters
from thrift_search.models.search import SearchResponse, TextSearchRequest

router = APIRouter(prefix="/search", tags=["search"])


def get_search_orchestrator() -> SearchOrchestrator:
    return SearchOrchestrator.from_settings()


@router.post("/text", response_model=SearchResponse)
async def search_by_text(
    request: TextSearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_search_orchestrator),
) -> SearchResponse:
    return await orchestrator.match_by_text(request.query, request.filters, request.limit)


@router.post("/image", response_model=SearchResponse)
async def search_by_image(
    image: UploadFile = File(..., description="Photo of the item to find."),
    city: str | None = Form(None),
    productType: str | None = Form(None),
    condition: str | None = Form(None),
    minPrice: str | None = Form(None),
    maxPrice: str | None = Form(None),
    limit: int | None = Form(None),
    orchestrator: SearchOrchestrator = Depends(get_search_orchestrator),
) -> SearchResponse:
    try:
        filters = SearchFilters(
            city=city,
            productType=productType,
            condition=condition,
            minPrice=minPrice,
            maxPrice=maxPrice,
        )
    except ValidationError as exc:
        raise SearchContractError(
            "Invalid search filters.",
            details={"fields": [".".join(str(part) for part in err["loc"]) for err in exc.errors()]},
        ) from exc

    data = await image.read()
    return await orchestrator.match_by_image(
        data,
        image.content_type or "",
        filters,
        limit,
        filename=image.filename,
    )
