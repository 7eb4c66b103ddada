# marketplace/services/inventory_service.py
from sqlalchemy.orm import Session

from marketplace.domain.errors import InsufficientStock, ProductNotFound, ValidationError
from marketplace.repos.product_repo import ProductRepo
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class InventoryLedger:
    """
    Stock counts per product.

    reserve = atomic conditional decrement, release = increment.
    The ledger never commits, the caller owns the transaction.
    """

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def reserve(self, product_id: int, quantity: int) -> None:
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than 0", quantity=quantity)

        # single UPDATE ... WHERE stock >= :q, the row count decides
        rowcount = self.repo.decrement_stock(product_id, quantity)

        if rowcount == 0:
            product = self.repo.get_product(product_id)
            if product is None:
                raise ProductNotFound(f"Product {product_id} not found", product_id=product_id)

            logger.warning(
                f"Reserve of {quantity} rejected for product {product_id}, available {product.stock}"
            )
            raise InsufficientStock(product_id, quantity, available=product.stock, name=product.name)

        logger.info(f"Reserved {quantity} of product {product_id}")

    def release(self, product_id: int, quantity: int) -> None:
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than 0", quantity=quantity)

        rowcount = self.repo.increment_stock(product_id, quantity)

        if rowcount == 0:
            raise ProductNotFound(f"Product {product_id} not found", product_id=product_id)

        logger.info(f"Released {quantity} of product {product_id}")
