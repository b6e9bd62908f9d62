# marketplace/repos/product_repo.py
from typing import Iterable, List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from marketplace.data.models.product import ProductModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_products_for_update(self, product_ids: Iterable[int]) -> List[ProductModel]:
        """
        SELECT ... ORDER BY id FOR UPDATE.

        Rows are locked in ascending id order so two orders over the same
        products always queue up in the same order. Locks are held until the
        caller commits or rolls back. Missing ids are simply absent from the
        result.
        """
        ids = sorted(set(product_ids))
        if not ids:
            return []
        stmt = (
            select(ProductModel)
            .where(ProductModel.id.in_(ids))
            .order_by(ProductModel.id)
            .with_for_update()
            #re-read the row even if the session already has it
            .execution_options(populate_existing=True)
        )
        return list(self.db.execute(stmt).scalars())

    def decrement_stock(self, product_id: int, quantity: int) -> bool:
        """
        UPDATE products SET stock = stock - q WHERE id = :id AND stock >= q

        Returns False when no row matched, i.e. the stock is no longer there.
        """
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.stock >= quantity)
            .values(stock=ProductModel.stock - quantity)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount == 1
