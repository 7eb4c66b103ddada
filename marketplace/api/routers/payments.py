# marketplace/api/routers/payments.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import get_actor
from marketplace.data.database import get_db
from marketplace.domain.actor import Actor
from marketplace.domain.schemas import (
    Envelope,
    PaymentCreate,
    PaymentCreated,
    PaymentOut,
    PaymentUpdate,
)
from marketplace.domain.statuses import PaymentMethod, PaymentStatus
from marketplace.services.payment_service import PaymentService
from marketplace.utils.settings import DEFAULT_PAGE_SIZE

router = APIRouter(prefix="/payments", tags=["payments"])


def get_service(db: Session):
    return PaymentService(db)


@router.post("", response_model=PaymentCreated, status_code=201)
def create_payment(
    payload: PaymentCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    payment, redirect_url = svc.create_payment(actor, payload)
    return {
        "message": "Payment created successfully",
        "data": payment,
        "redirect_url": redirect_url,
    }


@router.get("", response_model=Envelope[List[PaymentOut]])
def list_payments(
    status: PaymentStatus | None = None,
    method: PaymentMethod | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return {"data": svc.list_payments(actor, status, method, page, per_page)}


@router.get("/{payment_id}", response_model=Envelope[PaymentOut])
def get_payment(
    payment_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return {"data": svc.get_payment(actor, payment_id)}


@router.patch("/{payment_id}", response_model=Envelope[PaymentOut])
def update_payment(
    payment_id: int,
    payload: PaymentUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    payment = svc.update_payment(actor, payment_id, payload)
    return {"message": "Payment updated successfully", "data": payment}


@router.delete("/{payment_id}", response_model=Envelope[None])
def delete_payment(
    payment_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    svc.delete_payment(actor, payment_id)
    return {"message": "Payment deleted successfully", "data": None}
