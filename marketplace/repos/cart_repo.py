# marketplace/repos/cart_repo.py
from typing import Iterable, List, Tuple

from sqlalchemy import select, delete
from sqlalchemy.orm import Session

from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.data.models.product import ProductModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart_by_user(self, user_id: int, for_update: bool = False) -> CartModel | None:
        stmt = select(CartModel).where(CartModel.user_id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.flush()
        return cart

    def get_cart_items(self, user_id: int) -> List[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel)
                .join(CartModel, CartModel.id == CartItemModel.cart_id)
                .where(CartModel.user_id == user_id)
                .order_by(CartItemModel.id)
            ).scalars()
        )

    def get_cart_items_with_products(self, cart_id: int) -> List[Tuple[CartItemModel, ProductModel]]:
        rows = self.db.execute(
            select(CartItemModel, ProductModel)
            .join(ProductModel, ProductModel.id == CartItemModel.product_id)
            .where(CartItemModel.cart_id == cart_id)
            .order_by(CartItemModel.updated_at.desc(), CartItemModel.id.desc())
        ).all()
        return [(item, product) for item, product in rows]

    def get_cart_item(self, cart_id: int, product_id: int) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id == product_id,
            )
        ).scalar_one_or_none()

    def add_cart_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def clear_cart_items(self, user_id: int, product_ids: Iterable[int]) -> int:
        """Delete the given products from the user's cart. Does not commit."""
        ids = list(set(product_ids))
        cart = self.get_cart_by_user(user_id)
        if not cart or not ids:
            return 0

        result = self.db.execute(
            delete(CartItemModel)
            .where(
                CartItemModel.cart_id == cart.id,
                CartItemModel.product_id.in_(ids),
            )
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
