# marketplace/repos/order_repo.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Tuple

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel
from marketplace.data.models.order_item import OrderItemModel
from marketplace.data.models.product import ProductModel


class OrderRepo:
    """Order writes only flush, the calling service owns the transaction."""

    def __init__(self, db: Session):
        self.db = db

    def create_order(self, buyer_id: int, total_amount: Decimal, status: str) -> OrderModel:
        order = OrderModel(buyer_id=buyer_id, total_amount=total_amount, status=status)
        self.db.add(order)
        self.db.flush()
        return order

    def create_order_item(
        self,
        order_id: int,
        product_id: int,
        quantity: int,
        price: Decimal,
    ) -> OrderItemModel:
        item = OrderItemModel(
            order_id=order_id,
            product_id=product_id,
            quantity=quantity,
            price=price,
        )
        self.db.add(item)
        self.db.flush()
        return item

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_order_items(self, order_id: int) -> List[Tuple[OrderItemModel, str]]:
        """Items of an order with the product name, for display only."""
        rows = self.db.execute(
            select(OrderItemModel, ProductModel.name)
            .join(ProductModel, ProductModel.id == OrderItemModel.product_id)
            .where(OrderItemModel.order_id == order_id)
            .order_by(OrderItemModel.id)
        ).all()
        return [(item, name) for item, name in rows]

    def list_orders_by_buyer(self, buyer_id: int) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.buyer_id == buyer_id)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars()
        )

    def list_orders(self) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel).order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars()
        )

    def get_order_for_update(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def update_order_status(self, order_id: int, current: str, status: str) -> bool:
        """
        UPDATE orders SET status = :status WHERE id = :id AND status = :current

        Returns False when the order is no longer in `current`. Does not commit.
        """
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.status == current)
            .values(status=status, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount == 1
