# app/routers/reviews.py
import uuid

from fastapi import APIRouter, Depends, Request, status
from sqlmodel import Session

from app.core.auth import require_any_role, require_user
from app.core.query_features import query_params_to_dict
from app.database import get_session
from app.models.user import User
from app.routers.factory import list_envelope
from app.schemas.review import ReviewCreate, ReviewUpdate
from app.services import resources
from app.services.resource_service import ResourceService
from app.services.review_service import ReviewService

router = APIRouter(tags=["Reviews"])

resource_service = ResourceService(resources.reviews)
service = ReviewService(resource_service)


# -------- Public reads --------


@router.get("/reviews")
def list_reviews(request: Request, session: Session = Depends(get_session)):
    params = query_params_to_dict(request.query_params.multi_items())
    data, pagination = resource_service.list(session, params)
    return list_envelope(data, pagination)


@router.get("/products/{product_id}/reviews")
def list_product_reviews(
    product_id: uuid.UUID,
    request: Request,
    session: Session = Depends(get_session),
):
    """
    Reviews of one product. Pagination counts only this product's reviews.
    """
    params = query_params_to_dict(request.query_params.multi_items())
    data, pagination = resource_service.list(
        session, params, {"product_id": product_id}
    )
    return list_envelope(data, pagination)


@router.get("/reviews/{review_id}")
def get_review(review_id: uuid.UUID, session: Session = Depends(get_session)):
    return {"data": resource_service.get_one(session, review_id, populate=True)}


# -------- Customer writes --------


@router.post("/reviews", status_code=status.HTTP_201_CREATED)
def create_review(
    payload: ReviewCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    data = service.create_review(session, current_user, payload)
    return {"data": data, "message": "Review created successfully"}


@router.post("/products/{product_id}/reviews", status_code=status.HTTP_201_CREATED)
def create_product_review(
    product_id: uuid.UUID,
    payload: ReviewCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    data = service.create_review(session, current_user, payload, product_id)
    return {"data": data, "message": "Review created successfully"}


@router.put("/reviews/{review_id}")
def update_review(
    review_id: uuid.UUID,
    payload: ReviewUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Only the author can edit a review.
    """
    data = service.update_review(session, current_user, review_id, payload)
    return {"data": data, "message": "Review updated successfully"}


@router.delete("/reviews/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_review(
    review_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_any_role),
):
    """
    The author, an admin or a manager can delete a review.
    """
    service.delete_review(session, current_user, review_id)
    return None
