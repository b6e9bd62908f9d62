from sqlalchemy import Column, Integer, ForeignKey, Numeric, CheckConstraint

from marketplace.data.database import Base


class OrderItemModel(Base):
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    quantity = Column(Integer, nullable=False)
    #line total (unit price * quantity) captured when the order was placed
    price = Column(Numeric(12, 2), nullable=False)
