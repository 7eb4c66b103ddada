# marketplace/repos/order_repo.py
from datetime import date, datetime, time, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from marketplace.data.models.order import OrderModel, OrderItemModel
from marketplace.data.models.product import ProductModel


def _with_details(stmt):
    return stmt.options(
        selectinload(OrderModel.items).selectinload(OrderItemModel.product),
        selectinload(OrderModel.payments),
    )


def _filtered(stmt, status=None, buyer_id=None, from_date: date | None = None, to_date: date | None = None):
    if status is not None:
        stmt = stmt.where(OrderModel.status == status)
    if buyer_id is not None:
        stmt = stmt.where(OrderModel.buyer_id == buyer_id)
    if from_date is not None:
        stmt = stmt.where(OrderModel.created_at >= datetime.combine(from_date, time.min, tzinfo=timezone.utc))
    if to_date is not None:
        stmt = stmt.where(OrderModel.created_at <= datetime.combine(to_date, time.max, tzinfo=timezone.utc))
    return stmt


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            _with_details(select(OrderModel).where(OrderModel.id == order_id))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get_buyer_order(self, order_id: int, buyer_id: int) -> OrderModel | None:
        order = self.get_order(order_id)
        if order is None or order.buyer_id != buyer_id:
            return None
        return order

    def get_seller_order(self, order_id: int, seller_id: int) -> OrderModel | None:
        # the seller has to own at least one product in the order
        stmt = (
            select(OrderModel)
            .where(
                OrderModel.id == order_id,
                OrderModel.items.any(OrderItemModel.product.has(ProductModel.seller_id == seller_id)),
            )
            .execution_options(populate_existing=True)
        )
        return self.db.execute(_with_details(stmt)).scalar_one_or_none()

    def list_orders(
        self,
        *,
        buyer_id: int | None = None,
        seller_id: int | None = None,
        status: str | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
        limit: int = 15,
        offset: int = 0,
    ) -> list[OrderModel]:
        stmt = _filtered(select(OrderModel), status, buyer_id, from_date, to_date)
        if seller_id is not None:
            stmt = stmt.where(
                OrderModel.items.any(OrderItemModel.product.has(ProductModel.seller_id == seller_id))
            )
        stmt = stmt.order_by(OrderModel.created_at.desc(), OrderModel.id.desc()).limit(limit).offset(offset)
        return list(self.db.execute(_with_details(stmt)).scalars().all())

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
