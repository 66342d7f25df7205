import uuid
from typing import Any

from sqlmodel import Session, select

from app.core.errors import BadRequestError, ForbiddenError
from app.models.product import Product
from app.models.review import Review
from app.models.user import User
from app.schemas.review import ReviewCreate, ReviewUpdate
from app.services.resource_service import ResourceService


class ReviewService:
    """
    Ownership rules on top of the generic review handlers.

    Rules:
      - the author is always the authenticated user
      - one review per (user, product)
      - only the author may edit a review
      - the author or staff may delete it
    """

    def __init__(self, resources: ResourceService):
        self.resources = resources

    def create_review(
        self,
        session: Session,
        user: User,
        payload: ReviewCreate,
        product_id: uuid.UUID | None = None,
    ) -> dict[str, Any]:
        body = payload.model_dump(exclude_unset=True)
        body["product_id"] = body.get("product_id") or product_id
        if body["product_id"] is None:
            raise BadRequestError("Review must belong to a product")
        if session.get(Product, body["product_id"]) is None:
            raise BadRequestError("Product does not exist")
        duplicate = session.exec(
            select(Review).where(
                Review.user_id == user.id,
                Review.product_id == body["product_id"],
            )
        ).first()
        if duplicate is not None:
            raise BadRequestError("You already created a review for this product")
        body["user_id"] = user.id
        return self.resources.create_one(session, body)

    def update_review(
        self,
        session: Session,
        user: User,
        review_id: uuid.UUID,
        payload: ReviewUpdate,
    ) -> dict[str, Any]:
        review = self.resources.get_instance(session, review_id)
        if review.user_id != user.id:
            raise ForbiddenError("You are not allowed to perform this action")
        return self.resources.update_one(
            session, review_id, payload.model_dump(exclude_unset=True)
        )

    def delete_review(self, session: Session, user: User, review_id: uuid.UUID) -> None:
        review = self.resources.get_instance(session, review_id)
        if user.role == "user" and review.user_id != user.id:
            raise ForbiddenError("You are not allowed to perform this action")
        self.resources.delete_one(session, review_id)
