# marketplace/services/order_service.py
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from sqlalchemy.orm import Session

from marketplace.data.database import set_lock_timeout
from marketplace.data.models.order import OrderModel
from marketplace.data.models.product import ProductModel
from marketplace.domain.exceptions import InvalidStatusTransition, OrderValidationError, StockConflictError
from marketplace.domain.order_status import PENDING, check_transition
from marketplace.repos.cart_repo import CartRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.repos.product_repo import ProductRepo
from marketplace.repos.user_repo import UserRepo
from marketplace.services.notification_service import NotificationService
from marketplace.utils.logging import get_logger
from marketplace.utils.retry import stock_conflict_retry

logger = get_logger(__name__)

ADMIN_ROLE = "admin"

# (product_id, quantity)
Line = Tuple[int, int]
# (product, quantity, line_total)
PricedLine = Tuple[ProductModel, int, Decimal]


def merge_lines(lines: Iterable[Any]) -> List[Line]:
    """
    Normalize requested lines to (product_id, quantity) pairs.

    Accepts dicts or objects with product_id/quantity. The same product
    requested twice is merged into one line, first occurrence keeps its place.
    """
    merged: Dict[int, int] = {}
    for line in lines:
        if isinstance(line, dict):
            product_id, quantity = line["product_id"], line["quantity"]
        else:
            product_id, quantity = line.product_id, line.quantity

        if quantity <= 0:
            raise ValueError(f"Quantity must be greater than 0 (product {product_id})")

        merged[product_id] = merged.get(product_id, 0) + quantity

    return list(merged.items())


class OrderService:
    """
    Order placement and order queries.

    Placement is one database transaction: lock products (ascending id),
    validate every line, create the order and its items, decrement stock,
    clear the ordered cart items, commit. Any failure rolls back all of it.
    """

    def __init__(self, db: Session, notification_service: NotificationService | None = None):
        self.db = db
        self.repo = OrderRepo(db)
        self.products = ProductRepo(db)
        self.carts = CartRepo(db)
        self.users = UserRepo(db)
        self.notification_service = notification_service or NotificationService()

    #commands
    def place_order_from_cart(
        self,
        buyer_id: int,
        product_ids: Sequence[int] | None = None,
    ) -> Dict[str, Any]:
        """
        Use Case: order the buyer's cart.

        With product_ids only those cart items are ordered (and removed),
        the rest of the cart is left alone.
        """
        self._get_user(buyer_id)
        selection = None if product_ids is None else list(product_ids)
        return self._place(buyer_id, lines=None, selection=selection)

    def place_order(self, buyer_id: int, lines: Iterable[Any]) -> Dict[str, Any]:
        """
        Use Case: order an explicit list of lines. The cart is not touched.
        """
        merged = merge_lines(lines)
        if not merged:
            raise ValueError("No products selected for the order")

        self._get_user(buyer_id)
        return self._place(buyer_id, lines=merged, selection=None)

    def update_status(self, order_id: int, status: str, admin_id: int) -> Dict[str, Any]:
        """
        Use Case: admin moves an order through its lifecycle.
        """
        admin = self.users.get_user(admin_id)
        if not admin or admin.role != ADMIN_ROLE:
            raise PermissionError("Only admins can change order status")

        try:
            set_lock_timeout(self.db)

            #fresh locked read, another admin may have moved the order already
            order = self.repo.get_order_for_update(order_id)
            if not order:
                raise ValueError("Order not found")

            previous = order.status
            check_transition(previous, status)

            if not self.repo.update_order_status(order_id, previous, status):
                raise InvalidStatusTransition(
                    f"Order {order_id} is no longer {previous}, status not changed"
                )

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        order = self.repo.get_order(order_id)
        logger.info(f"Order {order_id} status {previous} -> {status} by admin {admin_id}")

        try:
            self.notification_service.send_status_changed(order.buyer_id, order.id, order.status)
        except Exception as e:
            logger.warning(f"Failed to send status notification for order {order_id}: {e}")

        return self._serialize(order)

    #queries
    def get_order(self, order_id: int, user_id: int) -> Dict[str, Any]:
        order = self.repo.get_order(order_id)

        if not order:
            raise ValueError("Order not found")

        if order.buyer_id != user_id:
            user = self.users.get_user(user_id)
            if not user or user.role != ADMIN_ROLE:
                raise PermissionError("You do not have access to this order")

        return self._serialize(order)

    def list_orders(self, buyer_id: int) -> List[Dict[str, Any]]:
        return [self._serialize(o) for o in self.repo.list_orders_by_buyer(buyer_id)]

    def list_all_orders(self, admin_id: int) -> List[Dict[str, Any]]:
        admin = self.users.get_user(admin_id)
        if not admin or admin.role != ADMIN_ROLE:
            raise PermissionError("Only admins can list all orders")
        return [self._serialize(o) for o in self.repo.list_orders()]

    #placement internals
    def _place(
        self,
        buyer_id: int,
        lines: List[Line] | None,
        selection: List[int] | None,
    ) -> Dict[str, Any]:
        place_once = stock_conflict_retry()(self._place_once)

        try:
            result = place_once(buyer_id, lines, selection)
        except OrderValidationError as e:
            logger.warning(f"Order rejected for buyer {buyer_id}: {e.errors}")
            raise
        except StockConflictError as e:
            logger.error(f"Order for buyer {buyer_id} gave up after repeated stock conflicts: {e}")
            raise

        logger.info(
            f"Order {result['order_id']} placed by buyer {buyer_id}, "
            f"total {result['total_amount']}"
        )

        #after commit only, a rolled back order never notifies
        try:
            self.notification_service.send_order_placed(
                buyer_id, result["order_id"], result["total_amount"]
            )
        except Exception as e:
            logger.warning(f"Failed to send notification for order {result['order_id']}: {e}")

        return result

    def _place_once(
        self,
        buyer_id: int,
        lines: List[Line] | None,
        selection: List[int] | None,
    ) -> Dict[str, Any]:
        from_cart = lines is None

        try:
            set_lock_timeout(self.db)

            if from_cart:
                lines = self._lines_from_cart(buyer_id, selection)

            products = {
                p.id: p
                for p in self.products.get_products_for_update(pid for pid, _ in lines)
            }
            priced = self._validate(lines, products)

            total_amount = sum((line_total for _, _, line_total in priced), Decimal("0.00"))

            order = self.repo.create_order(buyer_id, total_amount, PENDING)

            items = []
            for product, quantity, line_total in priced:
                self.repo.create_order_item(order.id, product.id, quantity, line_total)
                items.append(
                    {
                        "product_id": product.id,
                        "product_name": product.name,
                        "quantity": quantity,
                        "price": line_total,
                    }
                )

            for product, quantity, _ in priced:
                if not self.products.decrement_stock(product.id, quantity):
                    raise StockConflictError(product.id, product.name)

            if from_cart:
                removed = self.carts.clear_cart_items(buyer_id, [p.id for p, _, _ in priced])
                logger.info(f"Removed {removed} items from cart of buyer {buyer_id}")

            result = {
                "order_id": order.id,
                "buyer_id": buyer_id,
                "status": order.status,
                "total_amount": total_amount,
                "items": items,
                "created_at": order.created_at,
            }

            self.db.commit()

        except StockConflictError as e:
            self.db.rollback()
            logger.info(f"Stock conflict on product {e.product_id}, retrying order for buyer {buyer_id}")
            raise
        except Exception:
            self.db.rollback()
            raise

        return result

    def _lines_from_cart(self, buyer_id: int, selection: List[int] | None) -> List[Line]:
        #locking the cart row serializes placements of the same buyer
        cart = self.carts.get_cart_by_user(buyer_id, for_update=True)
        items = self.carts.get_cart_items(buyer_id) if cart else []

        if selection is not None:
            in_cart = {i.product_id for i in items}
            missing = [pid for pid in dict.fromkeys(selection) if pid not in in_cart]
            if missing:
                raise ValueError(f"product not in cart: {', '.join(str(m) for m in missing)}")
            wanted = set(selection)
            items = [i for i in items if i.product_id in wanted]

        if not items:
            raise ValueError("cart is empty")

        return [(i.product_id, i.quantity) for i in items]

    @staticmethod
    def _validate(lines: List[Line], products: Dict[int, ProductModel]) -> List[PricedLine]:
        """
        Check every line, collect every failure. Raises OrderValidationError
        with all messages if any line fails.
        """
        errors: List[str] = []
        priced: List[PricedLine] = []

        for product_id, quantity in lines:
            product = products.get(product_id)
            if product is None:
                errors.append(f"product not found: {product_id}")
                continue

            if product.stock < quantity:
                errors.append(f"insufficient stock for product: {product.name}")
                continue

            priced.append((product, quantity, Decimal(product.price) * quantity))

        if errors:
            raise OrderValidationError(errors)

        return priced

    #helpers
    def _get_user(self, user_id: int):
        user = self.users.get_user(user_id)
        if not user:
            raise ValueError("User not found")
        return user

    def _serialize(self, order: OrderModel) -> Dict[str, Any]:
        return {
            "order_id": order.id,
            "buyer_id": order.buyer_id,
            "status": order.status,
            "total_amount": order.total_amount,
            "items": [
                {
                    "product_id": item.product_id,
                    "product_name": name,
                    "quantity": item.quantity,
                    "price": item.price,
                }
                for item, name in self.repo.get_order_items(order.id)
            ],
            "created_at": order.created_at,
        }
