# marketplace/services/product_service.py
from typing import Any, Dict

from sqlalchemy.orm import Session

from marketplace.repos.product_repo import ProductRepo


class ProductService:
    """Read side of the catalog. Catalog management lives elsewhere."""

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def get_product(self, product_id: int) -> Dict[str, Any]:
        product = self.repo.get_product(product_id)
        if not product:
            raise ValueError("Product not found")

        return {
            "id": product.id,
            "name": product.name,
            "price": product.price,
            "stock": product.stock,
            "seller_id": product.seller_id,
        }
