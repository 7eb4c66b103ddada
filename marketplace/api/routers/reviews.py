# marketplace/api/routers/reviews.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import get_actor
from marketplace.data.database import get_db
from marketplace.domain.actor import Actor
from marketplace.domain.schemas import Envelope, ReviewCreate, ReviewOut, ReviewStats, ReviewUpdate
from marketplace.services.review_service import ReviewService
from marketplace.utils.settings import DEFAULT_PAGE_SIZE

router = APIRouter(prefix="/reviews", tags=["reviews"])


def get_service(db: Session):
    return ReviewService(db)


@router.post("", response_model=Envelope[ReviewOut], status_code=201)
def create_review(
    payload: ReviewCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    review = svc.create_review(actor, payload)
    return {"message": "Review created successfully", "data": review}


@router.get("", response_model=Envelope[List[ReviewOut]])
def list_reviews(
    product_id: int | None = None,
    user_id: int | None = None,
    min_rating: int | None = Query(None, ge=1, le=5),
    page: int = Query(1, ge=1),
    per_page: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return {"data": svc.list_reviews(product_id, user_id, min_rating, page, per_page)}


@router.get("/products/{product_id}/stats", response_model=Envelope[ReviewStats])
def product_stats(product_id: int, db: Session = Depends(get_db)):
    svc = get_service(db)
    return {"data": svc.product_stats(product_id)}


@router.get("/{review_id}", response_model=Envelope[ReviewOut])
def get_review(review_id: int, db: Session = Depends(get_db)):
    svc = get_service(db)
    return {"data": svc.get_review(review_id)}


@router.patch("/{review_id}", response_model=Envelope[ReviewOut])
def update_review(
    review_id: int,
    payload: ReviewUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    review = svc.update_review(actor, review_id, payload)
    return {"message": "Review updated successfully", "data": review}


@router.delete("/{review_id}", response_model=Envelope[None])
def delete_review(
    review_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    svc.delete_review(actor, review_id)
    return {"message": "Review deleted successfully", "data": None}
