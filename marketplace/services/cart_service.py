from contextlib import contextmanager
from decimal import Decimal
from typing import Dict, Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.domain.errors import (
    InsufficientStock,
    InvalidVariant,
    ItemNotFound,
    ProductNotFound,
    ProductUnavailable,
    TransactionFailure,
    ValidationError,
)
from marketplace.repos.cart_repo import CartRepo
from marketplace.repos.product_repo import ProductRepo
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def cart_view(cart: CartModel) -> Dict[str, Any]:
    total = sum((i.subtotal for i in cart.items), Decimal("0.00"))
    return {
        "cart": cart,
        "total": total,
        "item_count": len(cart.items),
    }


class CartService:
    """
    Use cases of the cart domain.
    commands (add, update, remove, clear) modify state,
    query (get) only reads (and lazily creates the cart).

    The cart holds no stock, only an intent to buy.
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)

    #query
    def get_or_create(self, user_id: int) -> CartModel:
        cart = self.repo.get_cart_by_user(user_id)
        if cart:
            return cart

        try:
            self.repo.create_cart(CartModel(user_id=user_id))
            self.repo.commit()
        except IntegrityError:
            # concurrent first access created the cart, carts.user_id is unique
            self.repo.rollback()
            logger.info(f"Cart for user {user_id} created concurrently, reloading")
        else:
            logger.info(f"Created new cart for user {user_id}")

        return self.repo.get_cart_by_user(user_id)

    def get_cart(self, user_id: int) -> Dict[str, Any]:
        return cart_view(self.get_or_create(user_id))

    #commands
    def add_item(
        self,
        user_id: int,
        product_id: int,
        quantity: int,
        variant_id: int | None = None,
    ) -> Dict[str, Any]:
        try:
            return self._add_item(user_id, product_id, quantity, variant_id)
        except IntegrityError:
            # a concurrent first add created the line, merge into it instead
            logger.info(f"Cart line for product {product_id} created concurrently, merging")
            return self._add_item(user_id, product_id, quantity, variant_id)

    def _add_item(self, user_id: int, product_id: int, quantity: int, variant_id: int | None) -> Dict[str, Any]:
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than 0", quantity=quantity)

        product = self.products.get_product(product_id)
        if not product:
            raise ProductNotFound(f"Product {product_id} not found", product_id=product_id)

        if not product.is_active:
            raise ProductUnavailable("Product is not available", product_id=product_id)

        price = Decimal(product.price)
        if variant_id is not None:
            variant = self.products.get_variant(variant_id, product_id)
            if not variant or not variant.is_active:
                raise InvalidVariant("Invalid product variant", variant_id=variant_id, product_id=product_id)
            price += Decimal(variant.price_adjustment or 0)

        cart = self.get_or_create(user_id)
        existing = self.repo.find_line(cart.id, product_id, variant_id)

        if existing:
            new_qty = existing.quantity + quantity
            if product.stock < new_qty:
                raise InsufficientStock(product_id, new_qty, available=product.stock, name=product.name)

            logger.info(
                f"Product {product_id} already in cart {cart.id}, quantity "
                f"{existing.quantity} -> {new_qty}"
            )
            with self._transaction("update cart line"):
                existing.quantity = new_qty
                # price_at_add stays frozen from the first add
                existing.subtotal = existing.price_at_add * new_qty
        else:
            if product.stock < quantity:
                raise InsufficientStock(product_id, quantity, available=product.stock, name=product.name)

            logger.info(f"Adding product {product_id} to cart {cart.id}")
            with self._transaction("add item to cart"):
                self.repo.add_cart_item(
                    cart,
                    CartItemModel(
                        product_id=product_id,
                        variant_id=variant_id,
                        quantity=quantity,
                        price_at_add=price,
                        subtotal=price * quantity,
                    ),
                )

        return cart_view(self.repo.get_cart_by_user(user_id))

    def update_item(self, user_id: int, item_id: int, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than 0", quantity=quantity)

        _, item = self._own_item(user_id, item_id)

        # re-check against the product's current stock, nothing is reserved
        product = self.products.get_product(item.product_id)
        if product is None or product.stock < quantity:
            raise InsufficientStock(
                item.product_id,
                quantity,
                available=product.stock if product else 0,
                name=product.name if product else None,
            )

        with self._transaction("update cart item"):
            item.quantity = quantity
            item.subtotal = item.price_at_add * quantity

        logger.info(f"Cart item {item_id} of user {user_id} set to quantity {quantity}")
        return cart_view(self.repo.get_cart_by_user(user_id))

    def remove_item(self, user_id: int, item_id: int) -> Dict[str, Any]:
        cart, item = self._own_item(user_id, item_id)

        with self._transaction("remove cart item"):
            self.repo.delete_cart_item(cart, item)

        logger.info(f"Cart item {item_id} removed for user {user_id}")
        return cart_view(self.repo.get_cart_by_user(user_id))

    def clear(self, user_id: int) -> Dict[str, Any]:
        cart = self.get_or_create(user_id)

        with self._transaction("clear cart"):
            self.repo.clear_items(cart)

        logger.info(f"Cart {cart.id} of user {user_id} cleared")
        return cart_view(self.repo.get_cart_by_user(user_id))

    def _own_item(self, user_id: int, item_id: int) -> tuple[CartModel, CartItemModel]:
        cart = self.repo.get_cart_by_user(user_id)
        item = next((i for i in cart.items if i.id == item_id), None) if cart else None
        if not item:
            raise ItemNotFound("Cart item not found", item_id=item_id)
        return cart, item

    @contextmanager
    def _transaction(self, action: str):
        try:
            yield
            self.repo.commit()
        except IntegrityError:
            self.repo.rollback()
            raise
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise TransactionFailure(f"Failed to {action}") from e
