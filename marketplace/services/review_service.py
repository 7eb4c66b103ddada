# marketplace/services/review_service.py
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.data.models.review import ReviewModel
from marketplace.domain.actor import Actor
from marketplace.domain.errors import (
    AlreadyReviewed,
    NotEligible,
    ProductNotFound,
    ReviewNotFound,
    TransactionFailure,
)
from marketplace.domain.schemas import ReviewCreate, ReviewUpdate
from marketplace.domain.statuses import OrderStatus
from marketplace.repos.product_repo import ProductRepo
from marketplace.repos.review_repo import ReviewRepo
from marketplace.utils.settings import DEFAULT_PAGE_SIZE
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

RATINGS = range(1, 6)


class ReviewService:
    """
    One review per (user, product), and only after an order containing
    the product has been delivered to the user.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = ReviewRepo(db)
        self.products = ProductRepo(db)

    # queries
    def get_review(self, review_id: int) -> ReviewModel:
        review = self.repo.get_review(review_id)
        if not review:
            raise ReviewNotFound("Review not found", review_id=review_id)
        return review

    def list_reviews(
        self,
        product_id: int | None = None,
        user_id: int | None = None,
        min_rating: int | None = None,
        page: int = 1,
        per_page: int = DEFAULT_PAGE_SIZE,
    ) -> list[ReviewModel]:
        return self.repo.list_reviews(
            product_id=product_id,
            user_id=user_id,
            min_rating=min_rating,
            limit=per_page,
            offset=(page - 1) * per_page,
        )

    def product_stats(self, product_id: int) -> dict:
        if not self.products.get_product(product_id):
            raise ProductNotFound("Product not found", product_id=product_id)

        counts = self.repo.rating_counts(product_id)
        distribution = {rating: counts.get(rating, 0) for rating in RATINGS}
        total = sum(distribution.values())
        average = sum(r * n for r, n in distribution.items()) / total if total else 0

        return {
            "total_reviews": total,
            "average_rating": round(average, 2),
            "rating_distribution": distribution,
        }

    # commands
    def create_review(self, actor: Actor, payload: ReviewCreate) -> ReviewModel:
        if not self.products.get_product(payload.product_id):
            raise ProductNotFound("Product not found", product_id=payload.product_id)

        if self.repo.get_user_review(actor.user_id, payload.product_id):
            raise AlreadyReviewed("You have already reviewed this product", product_id=payload.product_id)

        if not self.repo.has_delivered_item(actor.user_id, payload.product_id, OrderStatus.DELIVERED.value):
            raise NotEligible(
                "You can only review products after the order is delivered",
                product_id=payload.product_id,
            )

        review = ReviewModel(
            product_id=payload.product_id,
            user_id=actor.user_id,
            rating=payload.rating,
            comment=payload.comment,
        )
        try:
            self.repo.add(review)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise AlreadyReviewed("You have already reviewed this product", product_id=payload.product_id) from None
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Saving review of product {payload.product_id} failed: {e}")
            raise TransactionFailure("Failed to save review") from e

        logger.info(f"User {actor.user_id} reviewed product {payload.product_id} ({payload.rating}/5)")
        return review

    def update_review(self, actor: Actor, review_id: int, payload: ReviewUpdate) -> ReviewModel:
        review = self._own_review(actor, review_id)

        changes = payload.model_dump(exclude_unset=True)
        if changes.get("rating") is None:
            changes.pop("rating", None)

        try:
            for field, value in changes.items():
                setattr(review, field, value)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Updating review {review_id} failed: {e}")
            raise TransactionFailure("Failed to update review") from e

        logger.info(f"Review {review_id} updated")
        return review

    def delete_review(self, actor: Actor, review_id: int) -> None:
        review = self._own_review(actor, review_id)

        try:
            self.repo.delete(review)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Deleting review {review_id} failed: {e}")
            raise TransactionFailure("Failed to delete review") from e

        logger.info(f"Review {review_id} deleted")

    def _own_review(self, actor: Actor, review_id: int) -> ReviewModel:
        review = self.repo.get_review(review_id)
        # author only, someone else's review looks the same as a missing one
        if not review or review.user_id != actor.user_id:
            raise ReviewNotFound("Review not found", review_id=review_id)
        return review
