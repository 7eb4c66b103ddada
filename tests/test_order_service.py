from decimal import Decimal

import pytest

from marketplace.domain.actor import Actor
from marketplace.domain.errors import (
    ForbiddenError,
    InvalidStatusTransition,
    OrderNotFound,
    ValidationError,
)
from marketplace.domain.schemas import CheckoutIn
from marketplace.domain.statuses import OrderStatus, Role
from marketplace.services.cart_service import CartService
from marketplace.services.checkout_service import CheckoutService
from marketplace.services.order_service import OrderService

PICKUP = CheckoutIn(delivery_method="pickup", pickup_location="Gym entrance")


@pytest.fixture
def place_order(db, lock_service):
    def _place(actor, *lines):
        carts = CartService(db)
        for product, qty in lines:
            carts.add_item(actor.user_id, product.id, qty)
        return CheckoutService(db, lock_service=lock_service).checkout(actor.user_id, PICKUP)

    return _place


def test_buyer_cancel_restores_stock(db, buyer, seller, make_product, place_order):
    a = make_product(seller.user_id, stock=5, name="a")
    b = make_product(seller.user_id, stock=4, name="b")
    untouched = make_product(seller.user_id, stock=7, name="untouched")
    order = place_order(buyer, (a, 2), (b, 1))
    db.refresh(a)
    db.refresh(b)
    assert (a.stock, b.stock) == (3, 3)

    cancelled = OrderService(db).buyer_update_status(buyer, order.id, "cancelled")

    assert cancelled.status == "cancelled"
    for p in (a, b, untouched):
        db.refresh(p)
    assert (a.stock, b.stock, untouched.stock) == (5, 4, 7)


def test_buyer_cannot_cancel_twice(db, buyer, seller, make_product, place_order):
    product = make_product(seller.user_id, stock=5)
    order = place_order(buyer, (product, 2))
    svc = OrderService(db)
    svc.buyer_update_status(buyer, order.id, OrderStatus.CANCELLED)

    with pytest.raises(InvalidStatusTransition):
        svc.buyer_update_status(buyer, order.id, OrderStatus.CANCELLED)

    db.refresh(product)
    assert product.stock == 5


@pytest.mark.parametrize("target", ["paid", "processing", "shipped", "delivered", "completed"])
def test_buyer_can_only_cancel(db, buyer, seller, make_product, place_order, target):
    order = place_order(buyer, (make_product(seller.user_id), 1))

    with pytest.raises(InvalidStatusTransition):
        OrderService(db).buyer_update_status(buyer, order.id, target)


def test_buyer_cannot_cancel_after_payment(db, buyer, seller, make_product, place_order):
    order = place_order(buyer, (make_product(seller.user_id), 1))
    svc = OrderService(db)
    svc.seller_update_status(seller, order.id, "paid")

    with pytest.raises(InvalidStatusTransition):
        svc.buyer_update_status(buyer, order.id, "cancelled")


def test_other_buyer_gets_not_found(db, buyer, other_buyer, seller, make_product, place_order):
    order = place_order(buyer, (make_product(seller.user_id), 1))

    with pytest.raises(OrderNotFound):
        OrderService(db).buyer_update_status(other_buyer, order.id, "cancelled")


def test_invalid_status_value(db, buyer, seller, make_product, place_order):
    product = make_product(seller.user_id, stock=5)
    order = place_order(buyer, (product, 1))

    with pytest.raises(ValidationError):
        OrderService(db).seller_update_status(seller, order.id, "refunded")

    assert OrderService(db).get_order(buyer, order.id).status == "pending"


def test_seller_moves_order_forward(db, buyer, seller, make_product, place_order):
    order = place_order(buyer, (make_product(seller.user_id), 1))
    svc = OrderService(db)

    for status in ("processing", "shipped", "delivered", "completed"):
        updated = svc.seller_update_status(seller, order.id, status)
        assert updated.status == status


def test_seller_cancel_restores_every_item(db, buyer, seller, make_user, make_product, place_order):
    make_user(11, Role.SELLER)
    other_seller = Actor(user_id=11, role=Role.SELLER)
    mine = make_product(seller.user_id, stock=5, name="mine")
    theirs = make_product(other_seller.user_id, stock=5, name="theirs")
    order = place_order(buyer, (mine, 1), (theirs, 2))

    OrderService(db).seller_update_status(seller, order.id, "cancelled")

    db.refresh(mine)
    db.refresh(theirs)
    assert (mine.stock, theirs.stock) == (5, 5)


def test_unrelated_seller_gets_not_found(db, buyer, seller, make_user, make_product, place_order):
    make_user(12, Role.SELLER)
    stranger = Actor(user_id=12, role=Role.SELLER)
    order = place_order(buyer, (make_product(seller.user_id), 1))

    with pytest.raises(OrderNotFound):
        OrderService(db).seller_update_status(stranger, order.id, "shipped")


def test_buyer_role_cannot_use_seller_transitions(db, buyer, seller, make_product, place_order):
    order = place_order(buyer, (make_product(seller.user_id), 1))

    with pytest.raises(ForbiddenError):
        OrderService(db).seller_update_status(buyer, order.id, "shipped")


@pytest.mark.parametrize("terminal", ["completed", "cancelled"])
def test_no_transition_out_of_terminal_states(db, buyer, seller, make_product, place_order, terminal):
    product = make_product(seller.user_id, stock=5)
    order = place_order(buyer, (product, 2))
    svc = OrderService(db)
    svc.seller_update_status(seller, order.id, terminal)

    with pytest.raises(InvalidStatusTransition):
        svc.seller_update_status(seller, order.id, "cancelled" if terminal == "completed" else "pending")

    db.refresh(product)
    assert product.stock == (3 if terminal == "completed" else 5)


def test_setting_same_status_is_rejected(db, buyer, seller, make_product, place_order):
    order = place_order(buyer, (make_product(seller.user_id), 1))

    with pytest.raises(InvalidStatusTransition):
        OrderService(db).seller_update_status(seller, order.id, "pending")


def test_total_never_recomputed_on_status_change(db, buyer, seller, make_product, place_order):
    product = make_product(seller.user_id, price="100.00", stock=5)
    order = place_order(buyer, (product, 2))
    product.price = Decimal("1.00")
    db.commit()

    updated = OrderService(db).seller_update_status(seller, order.id, "processing")

    assert updated.total == Decimal("200.00")


def test_listing(db, buyer, other_buyer, seller, admin, make_product, place_order):
    product = make_product(seller.user_id, stock=10)
    mine = place_order(buyer, (product, 1))
    theirs = place_order(other_buyer, (product, 1))
    svc = OrderService(db)
    svc.buyer_update_status(buyer, mine.id, "cancelled")

    assert [o.id for o in svc.list_buyer_orders(buyer)] == [mine.id]
    assert [o.id for o in svc.list_buyer_orders(buyer, status=OrderStatus.PENDING)] == []
    assert {o.id for o in svc.list_seller_orders(seller)} == {mine.id, theirs.id}
    assert [o.id for o in svc.list_all_orders(admin, buyer_id=other_buyer.user_id)] == [theirs.id]
    assert len(svc.list_all_orders(admin, per_page=1)) == 1


def test_admin_reads_any_order_but_buyer_only_own(db, buyer, other_buyer, admin, seller, make_product, place_order):
    order = place_order(buyer, (make_product(seller.user_id), 1))
    svc = OrderService(db)

    assert svc.get_order(admin, order.id).id == order.id
    with pytest.raises(OrderNotFound):
        svc.get_order(other_buyer, order.id)
    with pytest.raises(ForbiddenError):
        svc.list_all_orders(buyer)
