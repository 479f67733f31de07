from fastapi import APIRouter, Depends, File, UploadFile

from thrift_search.models.listings import ListingDraft
from thrift_search.services.listings import ListingAnalysisService

router = APIRouter(prefix="/listings", tags=["listings"])


def get_listing_service() -> ListingAnalysisService:
    return ListingAnalysisService.from_settings()


@router.post("/analyze", response_model=ListingDraft)
async def analyze_listing_photo(
    image: UploadFile = File(..., description="Photo of the item being sold."),
    service: ListingAnalysisService = Depends(get_listing_service),
) -> ListingDraft:
    data = await image.read()
    return await service.analyze_image(data, image.content_type or "", image.filename)
