# marketplace/services/notification_service.py
from decimal import Decimal

from marketplace.celery_worker import celery_app
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Sends order notifications through Celery.
    Only called after the order transaction has committed.
    """

    @staticmethod
    def send_order_placed(buyer_id: int, order_id: int, total_amount: Decimal):
        send_order_placed_task.delay(buyer_id, order_id, str(total_amount))

    @staticmethod
    def send_status_changed(buyer_id: int, order_id: int, status: str):
        send_order_status_task.delay(buyer_id, order_id, status)


@celery_app.task(name="marketplace.services.notification_service.send_order_placed_task")
def send_order_placed_task(buyer_id: int, order_id: int, total_amount: str):
    """
    A real deployment would send an email/push here. For now it only logs.
    """
    logger.info(f"[NOTIFICATION] Buyer {buyer_id}: order {order_id} placed, total {total_amount}")
    return {"buyer_id": buyer_id, "order_id": order_id, "status": "sent"}


@celery_app.task(name="marketplace.services.notification_service.send_order_status_task")
def send_order_status_task(buyer_id: int, order_id: int, status: str):
    logger.info(f"[NOTIFICATION] Buyer {buyer_id}: order {order_id} is now {status}")
    return {"buyer_id": buyer_id, "order_id": order_id, "status": "sent"}
