# marketplace/services/payment_service.py
from datetime import datetime, timezone
from decimal import Decimal
from urllib.parse import urlencode

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel
from marketplace.data.models.payment import PaymentModel
from marketplace.domain.actor import Actor
from marketplace.domain.errors import (
    AmountExceedsTotal,
    DuplicatePayment,
    NotOwner,
    OrderNotFound,
    PaymentNotFound,
    PaymentNotPending,
    TransactionFailure,
)
from marketplace.domain.schemas import PaymentCreate, PaymentUpdate
from marketplace.domain.statuses import OrderStatus, PaymentMethod, PaymentStatus
from marketplace.repos.order_repo import OrderRepo
from marketplace.repos.payment_repo import PaymentRepo
from marketplace.utils.settings import DEFAULT_PAGE_SIZE, WALLET_REDIRECT_URL
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def sync_order_status(order: OrderModel, payment_status: PaymentStatus) -> bool:
    """
    Keeps the order status in step with its payment.

    completed while the order is pending -> paid,
    failed while the order is paid -> back to pending.
    Returns True when the order status changed.
    """
    if payment_status == PaymentStatus.COMPLETED and order.status == OrderStatus.PENDING.value:
        order.status = OrderStatus.PAID.value
        return True
    if payment_status == PaymentStatus.FAILED and order.status == OrderStatus.PAID.value:
        order.status = OrderStatus.PENDING.value
        return True
    return False


class PaymentService:
    def __init__(self, db: Session, redirect_base_url: str = WALLET_REDIRECT_URL):
        self.db = db
        self.repo = PaymentRepo(db)
        self.orders = OrderRepo(db)
        self.redirect_base_url = redirect_base_url

    def create_payment(self, actor: Actor, payload: PaymentCreate) -> tuple[PaymentModel, str | None]:
        order = self.orders.get_order(payload.order_id)
        if not order:
            raise OrderNotFound("Order not found", order_id=payload.order_id)

        if order.buyer_id != actor.user_id:
            raise NotOwner("This order does not belong to you", order_id=order.id)

        if self.repo.get_by_order(order.id):
            raise DuplicatePayment("This order already has a payment", order_id=order.id)

        self._check_amount(payload.amount, order)

        payment = PaymentModel(
            order_id=order.id,
            method=payload.method.value,
            amount=payload.amount,
            status=payload.status.value,
            paid_at=datetime.now(timezone.utc) if payload.status == PaymentStatus.COMPLETED else None,
        )

        try:
            self.repo.add(payment)
            changed = sync_order_status(order, payload.status)
            self.db.commit()
        except IntegrityError:
            # payments.order_id is unique, a concurrent request won
            self.db.rollback()
            raise DuplicatePayment("This order already has a payment", order_id=order.id) from None
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Saving payment for order {order.id} failed: {e}")
            raise TransactionFailure("Failed to save payment") from e

        logger.info(
            f"Payment {payment.id} ({payment.method}, {payment.status}) created for order {order.id}"
            + (f", order now {order.status}" if changed else "")
        )

        return payment, self._redirect_url(payment)

    def update_payment(self, actor: Actor, payment_id: int, payload: PaymentUpdate) -> PaymentModel:
        payment = self._own_payment(actor, payment_id)
        order = payment.order

        if payload.amount is not None:
            self._check_amount(payload.amount, order)

        try:
            if payload.amount is not None:
                payment.amount = payload.amount
            payment.status = payload.status.value
            if payload.status == PaymentStatus.COMPLETED:
                payment.paid_at = datetime.now(timezone.utc)

            changed = sync_order_status(order, payload.status)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Updating payment {payment_id} failed: {e}")
            raise TransactionFailure("Failed to update payment") from e

        logger.info(
            f"Payment {payment.id} set to {payment.status}"
            + (f", order {order.id} now {order.status}" if changed else "")
        )
        return payment

    def delete_payment(self, actor: Actor, payment_id: int) -> None:
        payment = self._own_payment(actor, payment_id)

        if payment.status != PaymentStatus.PENDING.value:
            raise PaymentNotPending("Cannot delete payment that is not pending", payment_id=payment_id)

        try:
            self.repo.delete(payment)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Deleting payment {payment_id} failed: {e}")
            raise TransactionFailure("Failed to delete payment") from e

        logger.info(f"Payment {payment_id} deleted")

    def get_payment(self, actor: Actor, payment_id: int) -> PaymentModel:
        return self._own_payment(actor, payment_id)

    def list_payments(
        self,
        actor: Actor,
        status: PaymentStatus | None = None,
        method: PaymentMethod | None = None,
        page: int = 1,
        per_page: int = DEFAULT_PAGE_SIZE,
    ) -> list[PaymentModel]:
        return self.repo.list_buyer_payments(
            actor.user_id,
            status=status.value if status else None,
            method=method.value if method else None,
            limit=per_page,
            offset=(page - 1) * per_page,
        )

    def _own_payment(self, actor: Actor, payment_id: int) -> PaymentModel:
        payment = self.repo.get_buyer_payment(payment_id, actor.user_id)
        if not payment:
            raise PaymentNotFound("Payment not found", payment_id=payment_id)
        return payment

    @staticmethod
    def _check_amount(amount: Decimal, order: OrderModel) -> None:
        if amount > order.total:
            raise AmountExceedsTotal(
                "Payment amount cannot exceed order total",
                amount=str(amount),
                total=str(order.total),
            )

    def _redirect_url(self, payment: PaymentModel) -> str | None:
        # gateway is mocked, wallet payments only get a redirect link
        if payment.method != PaymentMethod.MOBILE_WALLET.value:
            return None
        query = urlencode({"amount": str(payment.amount), "ref": payment.id})
        return f"{self.redirect_base_url}?{query}"
