# marketplace/repos/review_repo.py
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel, OrderItemModel
from marketplace.data.models.review import ReviewModel


class ReviewRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_review(self, review_id: int) -> ReviewModel | None:
        return self.db.get(ReviewModel, review_id)

    def get_user_review(self, user_id: int, product_id: int) -> ReviewModel | None:
        return self.db.execute(
            select(ReviewModel).where(
                ReviewModel.user_id == user_id,
                ReviewModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def has_delivered_item(self, user_id: int, product_id: int, status: str) -> bool:
        stmt = (
            select(OrderItemModel.id)
            .join(OrderItemModel.order)
            .where(
                OrderModel.buyer_id == user_id,
                OrderModel.status == status,
                OrderItemModel.product_id == product_id,
            )
            .limit(1)
        )
        return self.db.execute(stmt).first() is not None

    def list_reviews(
        self,
        product_id: int | None = None,
        user_id: int | None = None,
        min_rating: int | None = None,
        limit: int = 15,
        offset: int = 0,
    ) -> list[ReviewModel]:
        stmt = select(ReviewModel)
        if product_id is not None:
            stmt = stmt.where(ReviewModel.product_id == product_id)
        if user_id is not None:
            stmt = stmt.where(ReviewModel.user_id == user_id)
        if min_rating is not None:
            stmt = stmt.where(ReviewModel.rating >= min_rating)
        stmt = stmt.order_by(ReviewModel.created_at.desc(), ReviewModel.id.desc()).limit(limit).offset(offset)
        return list(self.db.execute(stmt).scalars().all())

    def rating_counts(self, product_id: int) -> dict[int, int]:
        stmt = (
            select(ReviewModel.rating, func.count(ReviewModel.id))
            .where(ReviewModel.product_id == product_id)
            .group_by(ReviewModel.rating)
        )
        return {rating: count for rating, count in self.db.execute(stmt).all()}

    def add(self, review: ReviewModel) -> ReviewModel:
        self.db.add(review)
        self.db.flush()
        return review

    def delete(self, review: ReviewModel) -> None:
        self.db.delete(review)
        self.db.flush()
