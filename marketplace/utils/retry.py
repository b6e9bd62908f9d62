# marketplace/utils/retry.py
from sqlalchemy.exc import OperationalError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from marketplace.domain.exceptions import StockConflictError
from marketplace.utils.settings import DB_CONNECT_ATTEMPTS, ORDER_PLACEMENT_ATTEMPTS


def db_connect_retry():
    #postgres in docker compose is often not ready when the api starts
    return retry(
        reraise=True,
        stop=stop_after_attempt(DB_CONNECT_ATTEMPTS),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        retry=retry_if_exception_type(OperationalError),
    )


def stock_conflict_retry():
    #restart placement from validation when a conditional decrement hit 0 rows
    return retry(
        reraise=True,
        stop=stop_after_attempt(ORDER_PLACEMENT_ATTEMPTS),
        wait=wait_exponential(multiplier=0.02, min=0.01, max=0.2),
        retry=retry_if_exception_type(StockConflictError),
    )
