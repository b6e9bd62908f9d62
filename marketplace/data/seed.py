# marketplace/data/seed.py
from decimal import Decimal

from marketplace.data.database import SessionLocal, init_db
from marketplace.data.models import UserModel, ProductModel
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

PRODUCTS = [
    {"id": 1, "name": "Keyboard", "price": Decimal("199.99"), "stock": 10},
    {"id": 2, "name": "Mouse", "price": Decimal("49.50"), "stock": 25},
    {"id": 3, "name": "Monitor", "price": Decimal("899.00"), "stock": 3},
]


def seed():
    init_db()
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(UserModel).first():
            logger.info("Database already seeded")
            return

        db.add_all([
            UserModel(id=1, name="admin", role="admin"),
            UserModel(id=2, name="buyer", role="buyer"),
        ])
        db.flush()
        db.add_all([ProductModel(seller_id=1, **p) for p in PRODUCTS])
        db.commit()
        logger.info(f"Seeded 2 users and {len(PRODUCTS)} products")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
