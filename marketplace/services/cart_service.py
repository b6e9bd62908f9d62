from decimal import Decimal
from typing import Dict, Any, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.repos.cart_repo import CartRepo
from marketplace.repos.product_repo import ProductRepo
from marketplace.repos.user_repo import UserRepo
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

class CartService:
    """
    Simple use cases for the cart domain.
    commands (add, update, remove) change state
    query (get) only reads

    The cart is not a reservation, stock is checked when the order is placed.
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)
        self.users = UserRepo(db)

    #query
    def get_cart(self, user_id: int) -> Dict[str, Any]:
        cart = self.repo.get_cart_by_user(user_id)

        if not cart:
            return {"cart_id": None, "user_id": user_id, "items": [], "total": Decimal("0.00")}

        #prices are live catalog prices, an order snapshots them later
        rows = self.repo.get_cart_items_with_products(cart.id)
        items = [
            {
                "product_id": product.id,
                "product_name": product.name,
                "quantity": item.quantity,
                "price": product.price,
                "total_price": product.price * item.quantity,
            }
            for item, product in rows
        ]
        total = sum((i["total_price"] for i in items), Decimal("0.00"))

        return {
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "items": items,
            "total": total,
        }

    #commands
    def add_product(self, user_id: int, product_id: int, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            raise ValueError("Quantity must be greater than 0")

        if not self.users.get_user(user_id):
            raise ValueError("User not found")

        product = self.products.get_product(product_id)
        if not product:
            raise ValueError("Product not found")

        try:
            cart = self.repo.get_cart_by_user(user_id)
            if not cart:
                cart = self.repo.create_cart(CartModel(user_id=user_id))
                logger.info(f"Created cart {cart.id} for user {user_id}")

            existing_item = self.repo.get_cart_item(cart.id, product_id)

            if existing_item:
                logger.info(
                    f"Product {product_id} already in cart {cart.id}, quantity "
                    f"{existing_item.quantity} -> {existing_item.quantity + quantity}"
                )
                existing_item.quantity += quantity
                self.repo.add_cart_item(existing_item)
            else:
                logger.info(f"Adding product {product_id} to cart {cart.id}")
                self.repo.add_cart_item(
                    CartItemModel(
                        cart_id=cart.id,
                        product_id=product_id,
                        quantity=quantity,
                    )
                )

            self.repo.commit()

        except IntegrityError:
            #same product added twice at once, unique (cart_id, product_id) or (user_id)
            self.repo.rollback()
            logger.warning(f"Concurrent add of product {product_id} to cart of user {user_id}")
            raise RuntimeError("Cart was modified concurrently, please retry")
        except Exception as e:
            logger.error(f"Failed to add product {product_id} to cart of user {user_id}: {e}")
            self.repo.rollback()
            raise

        return self.get_cart(user_id)

    def update_quantity(self, user_id: int, product_id: int, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            raise ValueError("Quantity must be greater than 0")

        cart = self.repo.get_cart_by_user(user_id)
        item = self.repo.get_cart_item(cart.id, product_id) if cart else None

        if not item:
            raise ValueError("Product is not in the cart")

        item.quantity = quantity
        self.repo.add_cart_item(item)
        self.repo.commit()

        logger.info(f"Cart {cart.id}: product {product_id} quantity set to {quantity}")

        return self.get_cart(user_id)

    def remove_products(self, user_id: int, product_ids: List[int]) -> Dict[str, Any]:
        if not product_ids:
            raise ValueError("No products selected")

        removed = self.repo.clear_cart_items(user_id, product_ids)
        self.repo.commit()

        logger.info(f"Removed {removed} items from cart of user {user_id}")

        return self.get_cart(user_id)
