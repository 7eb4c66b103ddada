# marketplace/api/routers/orders.py
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.deps import get_actor, get_lock_service
from marketplace.data.database import get_db
from marketplace.domain.actor import Actor
from marketplace.domain.schemas import CheckoutIn, Envelope, OrderOut, StatusUpdate
from marketplace.domain.statuses import OrderStatus
from marketplace.services.checkout_service import CheckoutService
from marketplace.services.lock_service import LockService
from marketplace.services.order_service import OrderService
from marketplace.utils.settings import DEFAULT_PAGE_SIZE

router = APIRouter(prefix="/orders", tags=["orders"])
seller_router = APIRouter(prefix="/seller/orders", tags=["seller"])
admin_router = APIRouter(prefix="/admin/orders", tags=["admin"])


def get_service(db: Session):
    return OrderService(db)


@router.post("", response_model=Envelope[OrderOut], status_code=201)
def checkout(
    payload: CheckoutIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
):
    """
    Places an order from the buyer's cart.
    Stock is reserved and the cart emptied in one transaction.
    """
    svc = CheckoutService(db, lock_service=lock_service)
    order = svc.checkout(actor.user_id, payload)
    return {"message": "Order created successfully", "data": order}


@router.get("", response_model=Envelope[List[OrderOut]])
def list_orders(
    status: OrderStatus | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return {"data": svc.list_buyer_orders(actor, status, from_date, to_date, page, per_page)}


@router.get("/{order_id}", response_model=Envelope[OrderOut])
def get_order(
    order_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return {"data": svc.get_order(actor, order_id)}


@router.patch("/{order_id}/status", response_model=Envelope[OrderOut])
def update_status(
    order_id: int,
    payload: StatusUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Buyer side: only a pending order can be cancelled."""
    svc = get_service(db)
    order = svc.buyer_update_status(actor, order_id, payload.status)
    return {"message": "Order status updated successfully", "data": order}


@seller_router.get("", response_model=Envelope[List[OrderOut]])
def seller_list_orders(
    status: OrderStatus | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return {"data": svc.list_seller_orders(actor, status, from_date, to_date, page, per_page)}


@seller_router.patch("/{order_id}/status", response_model=Envelope[OrderOut])
def seller_update_status(
    order_id: int,
    payload: StatusUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    order = svc.seller_update_status(actor, order_id, payload.status)
    return {"message": "Order status updated successfully", "data": order}


@admin_router.get("", response_model=Envelope[List[OrderOut]])
def admin_list_orders(
    status: OrderStatus | None = None,
    buyer_id: int | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    return {"data": svc.list_all_orders(actor, status, buyer_id, from_date, to_date, page, per_page)}
