# marketplace/repos/payment_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from marketplace.data.models.order import OrderModel
from marketplace.data.models.payment import PaymentModel


class PaymentRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_order(self, order_id: int) -> PaymentModel | None:
        return self.db.execute(
            select(PaymentModel).where(PaymentModel.order_id == order_id)
        ).scalar_one_or_none()

    def get_buyer_payment(self, payment_id: int, buyer_id: int) -> PaymentModel | None:
        return self.db.execute(
            select(PaymentModel)
            .join(PaymentModel.order)
            .where(PaymentModel.id == payment_id, OrderModel.buyer_id == buyer_id)
            .options(joinedload(PaymentModel.order))
        ).scalar_one_or_none()

    def list_buyer_payments(
        self,
        buyer_id: int,
        status: str | None = None,
        method: str | None = None,
        limit: int = 15,
        offset: int = 0,
    ) -> list[PaymentModel]:
        stmt = select(PaymentModel).join(PaymentModel.order).where(OrderModel.buyer_id == buyer_id)
        if status is not None:
            stmt = stmt.where(PaymentModel.status == status)
        if method is not None:
            stmt = stmt.where(PaymentModel.method == method)
        stmt = stmt.order_by(PaymentModel.created_at.desc(), PaymentModel.id.desc()).limit(limit).offset(offset)
        return list(self.db.execute(stmt).scalars().all())

    def add(self, payment: PaymentModel) -> PaymentModel:
        self.db.add(payment)
        self.db.flush()
        return payment

    def delete(self, payment: PaymentModel) -> None:
        self.db.delete(payment)
        self.db.flush()
