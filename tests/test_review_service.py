import pytest
from sqlalchemy.exc import OperationalError

from marketplace.domain.actor import Actor
from marketplace.domain.errors import (
    AlreadyReviewed,
    NotEligible,
    ProductNotFound,
    ReviewNotFound,
    TransactionFailure,
)
from marketplace.domain.schemas import CheckoutIn, ReviewCreate, ReviewUpdate
from marketplace.services.cart_service import CartService
from marketplace.services.checkout_service import CheckoutService
from marketplace.services.order_service import OrderService
from marketplace.services.review_service import ReviewService


@pytest.fixture
def product(seller, make_product):
    return make_product(seller.user_id, stock=5)


@pytest.fixture
def order(db, buyer, product, lock_service):
    CartService(db).add_item(buyer.user_id, product.id, 1)
    payload = CheckoutIn(delivery_method="pickup", pickup_location="Library")
    return CheckoutService(db, lock_service=lock_service).checkout(buyer.user_id, payload)


def test_review_requires_delivered_order(db, buyer, seller, product, order):
    reviews = ReviewService(db)
    payload = ReviewCreate(product_id=product.id, rating=5, comment="Works great")

    with pytest.raises(NotEligible):
        reviews.create_review(buyer, payload)

    OrderService(db).seller_update_status(seller, order.id, "shipped")
    with pytest.raises(NotEligible):
        reviews.create_review(buyer, payload)

    OrderService(db).seller_update_status(seller, order.id, "delivered")
    review = reviews.create_review(buyer, payload)

    assert review.rating == 5
    assert review.user_id == buyer.user_id


def test_review_without_any_order(db, buyer, product):
    with pytest.raises(NotEligible):
        ReviewService(db).create_review(buyer, ReviewCreate(product_id=product.id, rating=3))


def test_delivered_order_of_someone_else_does_not_count(db, buyer, other_buyer, seller, product, order):
    OrderService(db).seller_update_status(seller, order.id, "delivered")

    with pytest.raises(NotEligible):
        ReviewService(db).create_review(other_buyer, ReviewCreate(product_id=product.id, rating=4))


@pytest.mark.parametrize("rating,comment", [(5, "again"), (1, None)])
def test_second_review_is_rejected(db, buyer, seller, product, order, rating, comment):
    OrderService(db).seller_update_status(seller, order.id, "delivered")
    reviews = ReviewService(db)
    reviews.create_review(buyer, ReviewCreate(product_id=product.id, rating=4, comment="first"))

    with pytest.raises(AlreadyReviewed):
        reviews.create_review(buyer, ReviewCreate(product_id=product.id, rating=rating, comment=comment))


def test_unknown_product(db, buyer):
    with pytest.raises(ProductNotFound):
        ReviewService(db).create_review(buyer, ReviewCreate(product_id=777, rating=4))


def test_only_author_updates_and_deletes(db, buyer, other_buyer, seller, product, order):
    OrderService(db).seller_update_status(seller, order.id, "delivered")
    reviews = ReviewService(db)
    review = reviews.create_review(buyer, ReviewCreate(product_id=product.id, rating=2))

    with pytest.raises(ReviewNotFound):
        reviews.update_review(other_buyer, review.id, ReviewUpdate(rating=1))
    with pytest.raises(ReviewNotFound):
        reviews.delete_review(other_buyer, review.id)

    updated = reviews.update_review(buyer, review.id, ReviewUpdate(comment="better after a week"))
    assert updated.rating == 2
    assert updated.comment == "better after a week"

    reviews.delete_review(buyer, review.id)
    assert reviews.list_reviews(product_id=product.id) == []


def test_list_reviews_filters(db, buyer, seller, product, order):
    OrderService(db).seller_update_status(seller, order.id, "delivered")
    reviews = ReviewService(db)
    review = reviews.create_review(buyer, ReviewCreate(product_id=product.id, rating=3))

    assert [r.id for r in reviews.list_reviews(product_id=product.id)] == [review.id]
    assert reviews.list_reviews(min_rating=4) == []
    assert [r.id for r in reviews.list_reviews(user_id=buyer.user_id)] == [review.id]


def test_get_review(db, buyer, seller, product, order):
    OrderService(db).seller_update_status(seller, order.id, "delivered")
    reviews = ReviewService(db)
    review = reviews.create_review(buyer, ReviewCreate(product_id=product.id, rating=4))

    assert reviews.get_review(review.id).rating == 4
    with pytest.raises(ReviewNotFound):
        reviews.get_review(review.id + 100)


def test_product_stats_without_reviews(db, product):
    stats = ReviewService(db).product_stats(product.id)

    assert stats == {
        "total_reviews": 0,
        "average_rating": 0,
        "rating_distribution": {1: 0, 2: 0, 3: 0, 4: 0, 5: 0},
    }


def test_product_stats(db, buyer, other_buyer, make_user, seller, product, lock_service):
    make_user(22)
    reviewers = [buyer, other_buyer, Actor(user_id=22)]
    orders = OrderService(db)
    for actor in reviewers:
        CartService(db).add_item(actor.user_id, product.id, 1)
        placed = CheckoutService(db, lock_service=lock_service).checkout(
            actor.user_id, CheckoutIn(delivery_method="pickup", pickup_location="Library")
        )
        orders.seller_update_status(seller, placed.id, "delivered")

    reviews = ReviewService(db)
    for actor, rating in zip(reviewers, (5, 4, 4)):
        reviews.create_review(actor, ReviewCreate(product_id=product.id, rating=rating))

    stats = reviews.product_stats(product.id)

    assert stats["total_reviews"] == 3
    assert stats["average_rating"] == 4.33
    assert stats["rating_distribution"] == {1: 0, 2: 0, 3: 0, 4: 2, 5: 1}


def test_product_stats_of_unknown_product(db):
    with pytest.raises(ProductNotFound):
        ReviewService(db).product_stats(999)


def failing_commit():
    raise OperationalError("COMMIT", {}, Exception("database is locked"))


def test_failed_update_is_rolled_back(db, buyer, seller, product, order, monkeypatch):
    OrderService(db).seller_update_status(seller, order.id, "delivered")
    reviews = ReviewService(db)
    review = reviews.create_review(buyer, ReviewCreate(product_id=product.id, rating=2, comment="meh"))
    monkeypatch.setattr(db, "commit", failing_commit)

    with pytest.raises(TransactionFailure):
        reviews.update_review(buyer, review.id, ReviewUpdate(rating=5))

    monkeypatch.undo()
    assert reviews.get_review(review.id).rating == 2


def test_failed_delete_keeps_review(db, buyer, seller, product, order, monkeypatch):
    OrderService(db).seller_update_status(seller, order.id, "delivered")
    reviews = ReviewService(db)
    review = reviews.create_review(buyer, ReviewCreate(product_id=product.id, rating=3))
    monkeypatch.setattr(db, "commit", failing_commit)

    with pytest.raises(TransactionFailure):
        reviews.delete_review(buyer, review.id)

    monkeypatch.undo()
    assert [r.id for r in reviews.list_reviews(product_id=product.id)] == [review.id]
