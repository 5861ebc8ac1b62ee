from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from fitting_portal.db import get_session
from fitting_portal.schemas.size_recommendation import recommendation_to_dict
from fitting_portal.security import require_email, verify_api_secret
from fitting_portal.services.size_recommendation import SizeRecommendationService

router = APIRouter()

NO_RECOMMENDATION_MESSAGE = (
    "No recommendation available. Please ensure you have body measurements on file "
    "and that size charts are available for the requested product type."
)


@router.get("", dependencies=[Depends(verify_api_secret)])
def get_size_recommendation(
    session: Session = Depends(get_session),
    customer_email: str | None = Query(default=None, alias="customerEmail"),
    product_type: str | None = Query(default=None, alias="productType"),
    brand: str | None = Query(default=None),
    collection: str | None = Query(default=None),
    history: bool = Query(default=False),
) -> dict:
    """
    history=true 이면 과거 추천 이력, 아니면 새로 계산한 추천 결과를 반환합니다.
    """
    email = require_email(customer_email)
    if not product_type or not product_type.strip():
        raise HTTPException(status_code=400, detail="Product type is required")

    service = SizeRecommendationService(session)

    if history:
        records = service.get_history(email, product_type)
        return {"success": True, "data": [recommendation_to_dict(r) for r in records]}

    result = service.get_recommendation(email, product_type.strip(), brand=brand, collection=collection)
    if result is None:
        raise HTTPException(status_code=404, detail=NO_RECOMMENDATION_MESSAGE)

    return {"success": True, "data": result.to_response()}
