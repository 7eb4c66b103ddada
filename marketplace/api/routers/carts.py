# marketplace/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.api.deps import get_actor
from marketplace.data.database import get_db
from marketplace.domain.actor import Actor
from marketplace.domain.schemas import (
    CartItemIn,
    CartItemUpdate,
    CartView,
    Envelope,
)
from marketplace.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db)


@router.get("", response_model=Envelope[CartView])
def get_cart(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    svc = get_service(db)
    return {"data": svc.get_cart(actor.user_id)}


@router.post("/items", response_model=Envelope[CartView])
def add_item(
    payload: CartItemIn,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    view = svc.add_item(
        user_id=actor.user_id,
        product_id=payload.product_id,
        quantity=payload.quantity,
        variant_id=payload.variant_id,
    )
    return {"message": "Item added to cart successfully", "data": view}


@router.patch("/items/{item_id}", response_model=Envelope[CartView])
def update_item(
    item_id: int,
    payload: CartItemUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    view = svc.update_item(actor.user_id, item_id, payload.quantity)
    return {"message": "Cart item updated successfully", "data": view}


@router.delete("/items/{item_id}", response_model=Envelope[CartView])
def remove_item(
    item_id: int,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    view = svc.remove_item(actor.user_id, item_id)
    return {"message": "Item removed from cart successfully", "data": view}


@router.delete("", response_model=Envelope[CartView])
def clear_cart(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    svc = get_service(db)
    return {"message": "Cart cleared successfully", "data": svc.clear(actor.user_id)}
