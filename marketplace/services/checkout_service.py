# marketplace/services/checkout_service.py
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel, OrderItemModel
from marketplace.domain.errors import (
    CartEmpty,
    CheckoutInProgress,
    InsufficientStock,
    MarketplaceError,
    TransactionFailure,
)
from marketplace.domain.schemas import CheckoutIn
from marketplace.domain.statuses import DeliveryMethod, OrderStatus
from marketplace.repos.cart_repo import CartRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.services.inventory_service import InventoryLedger
from marketplace.services.lock_service import LockService
from marketplace.services.notification_service import NotificationService
from marketplace.utils.settings import CHECKOUT_LOCK_TTL_SECONDS, DELIVERY_FEE
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class CheckoutService:
    """
    Converts the buyer's cart into an order.

    Order, order items, stock decrements and emptying the cart are one
    database transaction. The stock pre-check gives a clean early error,
    the conditional decrement in InventoryLedger.reserve is what actually
    prevents overselling.
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService,
        notification_service: NotificationService | None = None,
        delivery_fee: Decimal = DELIVERY_FEE,
    ):
        self.db = db
        self.carts = CartRepo(db)
        self.orders = OrderRepo(db)
        self.ledger = InventoryLedger(db)
        self.lock_service = lock_service
        self.notification_service = notification_service or NotificationService()
        self.delivery_fee = delivery_fee

    def checkout(self, user_id: int, payload: CheckoutIn) -> OrderModel:
        """
        Use Case: place an order from the cart.

        1. loads the cart with items and products
        2. checks stock of every line
        3. computes the total (+ flat delivery fee)
        4. creates order + items, reserves stock, empties the cart
        5. commits, or rolls everything back
        """
        cart = self.carts.get_cart_by_user(user_id)
        if not cart or not cart.items:
            raise CartEmpty("Cart is empty")

        token = self.lock_service.new_token()
        if not self.lock_service.acquire_checkout_lock(cart.id, token, CHECKOUT_LOCK_TTL_SECONDS):
            raise CheckoutInProgress("Checkout of this cart is already in progress", cart_id=cart.id)

        try:
            order = self._place_order(user_id, cart, payload)
        finally:
            self.lock_service.release_checkout_lock(cart.id, token)

        logger.info(f"Order {order.id} created from cart {cart.id}, total {order.total}")
        self.notification_service.send_order_notification(user_id, order.id, order.status)

        return self.orders.get_order(order.id)

    def _place_order(self, user_id, cart, payload: CheckoutIn) -> OrderModel:
        for item in cart.items:
            if item.product.stock < item.quantity:
                logger.warning(
                    f"Checkout of cart {cart.id} rejected, product {item.product_id} "
                    f"has {item.product.stock} < {item.quantity}"
                )
                raise InsufficientStock(
                    item.product_id,
                    item.quantity,
                    available=item.product.stock,
                    name=item.product.name,
                )

        total = sum((i.subtotal for i in cart.items), Decimal("0.00"))
        if payload.delivery_method == DeliveryMethod.DELIVERY:
            total += self.delivery_fee

        try:
            order = self.orders.create_order(
                OrderModel(
                    buyer_id=user_id,
                    cart_id=cart.id,
                    status=OrderStatus.PENDING.value,
                    total=total,
                    delivery_method=payload.delivery_method.value,
                    pickup_location=payload.pickup_location,
                    delivery_address=payload.delivery_address,
                )
            )

            for item in cart.items:
                order.items.append(
                    OrderItemModel(
                        product_id=item.product_id,
                        variant_id=item.variant_id,
                        quantity=item.quantity,
                        price_at_purchase=item.price_at_add,
                        subtotal=item.subtotal,
                    )
                )
                self.ledger.reserve(item.product_id, item.quantity)

            self.carts.clear_items(cart)
            self.db.commit()

        except MarketplaceError:
            # lost the race on reserve, nothing of this order survives
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Checkout of cart {cart.id} failed: {e}")
            raise TransactionFailure("Failed to create order") from e

        return order
