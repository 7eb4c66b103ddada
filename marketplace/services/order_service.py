# marketplace/services/order_service.py
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel
from marketplace.domain.actor import Actor
from marketplace.domain.errors import (
    ForbiddenError,
    InvalidStatusTransition,
    MarketplaceError,
    OrderNotFound,
    TransactionFailure,
    ValidationError,
)
from marketplace.domain.statuses import OrderStatus, TERMINAL_ORDER_STATUSES
from marketplace.repos.order_repo import OrderRepo
from marketplace.services.inventory_service import InventoryLedger
from marketplace.services.notification_service import NotificationService
from marketplace.utils.settings import DEFAULT_PAGE_SIZE
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

# buyer may only cancel a pending order
BUYER_TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.CANCELLED}),
}


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(
            f"Invalid order status: {value}",
            allowed=[s.value for s in OrderStatus],
        ) from None


def check_buyer_transition(current: OrderStatus, target: OrderStatus) -> None:
    if target not in BUYER_TRANSITIONS.get(current, frozenset()):
        raise InvalidStatusTransition(
            "Status update not allowed",
            current=current.value,
            target=target.value,
        )


def check_seller_transition(current: OrderStatus, target: OrderStatus) -> None:
    if current in TERMINAL_ORDER_STATUSES:
        raise InvalidStatusTransition(
            f"Order is already {current.value}",
            current=current.value,
            target=target.value,
        )
    if current == target:
        raise InvalidStatusTransition(
            f"Order is already {current.value}",
            current=current.value,
            target=target.value,
        )


class OrderService:
    """
    Order lifecycle after checkout.

    Status is a single field with actor dependent transitions.
    Cancelling returns the stock of every item in the same transaction
    as the status write.
    """

    def __init__(self, db: Session, notification_service: NotificationService | None = None):
        self.db = db
        self.repo = OrderRepo(db)
        self.ledger = InventoryLedger(db)
        self.notification_service = notification_service or NotificationService()

    # queries
    def get_order(self, actor: Actor, order_id: int) -> OrderModel:
        if actor.is_admin:
            order = self.repo.get_order(order_id)
        else:
            order = self.repo.get_buyer_order(order_id, actor.user_id)

        if not order:
            raise OrderNotFound("Order not found", order_id=order_id)
        return order

    def list_buyer_orders(
        self,
        actor: Actor,
        status: OrderStatus | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
        page: int = 1,
        per_page: int = DEFAULT_PAGE_SIZE,
    ) -> list[OrderModel]:
        return self.repo.list_orders(
            buyer_id=actor.user_id,
            status=status.value if status else None,
            from_date=from_date,
            to_date=to_date,
            limit=per_page,
            offset=(page - 1) * per_page,
        )

    def list_seller_orders(
        self,
        actor: Actor,
        status: OrderStatus | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
        page: int = 1,
        per_page: int = DEFAULT_PAGE_SIZE,
    ) -> list[OrderModel]:
        self._require_seller(actor)
        return self.repo.list_orders(
            seller_id=actor.user_id,
            status=status.value if status else None,
            from_date=from_date,
            to_date=to_date,
            limit=per_page,
            offset=(page - 1) * per_page,
        )

    def list_all_orders(
        self,
        actor: Actor,
        status: OrderStatus | None = None,
        buyer_id: int | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
        page: int = 1,
        per_page: int = DEFAULT_PAGE_SIZE,
    ) -> list[OrderModel]:
        if not actor.is_admin:
            raise ForbiddenError("Admin access required")
        return self.repo.list_orders(
            buyer_id=buyer_id,
            status=status.value if status else None,
            from_date=from_date,
            to_date=to_date,
            limit=per_page,
            offset=(page - 1) * per_page,
        )

    # commands
    def buyer_update_status(self, actor: Actor, order_id: int, status) -> OrderModel:
        target = parse_status(status)

        order = self.repo.get_buyer_order(order_id, actor.user_id)
        if not order:
            raise OrderNotFound("Order not found", order_id=order_id)

        check_buyer_transition(OrderStatus(order.status), target)
        return self._apply(order, target, actor)

    def seller_update_status(self, actor: Actor, order_id: int, status) -> OrderModel:
        target = parse_status(status)
        self._require_seller(actor)

        order = self.repo.get_seller_order(order_id, actor.user_id)
        if not order:
            raise OrderNotFound("Order not found or access denied", order_id=order_id)

        check_seller_transition(OrderStatus(order.status), target)
        return self._apply(order, target, actor)

    def _apply(self, order: OrderModel, target: OrderStatus, actor: Actor) -> OrderModel:
        previous = order.status

        try:
            order.status = target.value

            if target == OrderStatus.CANCELLED:
                # order-wide, not only the acting seller's items
                for item in order.items:
                    self.ledger.release(item.product_id, item.quantity)

            self.db.commit()

        except MarketplaceError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Status update of order {order.id} failed: {e}")
            raise TransactionFailure("Failed to update order status") from e

        logger.info(
            f"Order {order.id} status {previous} -> {target.value} "
            f"by {actor.role.value} {actor.user_id}"
        )
        self.notification_service.send_order_notification(order.buyer_id, order.id, target.value)

        return self.repo.get_order(order.id)

    @staticmethod
    def _require_seller(actor: Actor) -> None:
        if not actor.is_seller:
            raise ForbiddenError("Seller access required")
