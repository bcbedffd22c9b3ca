from models.article import Article
from models.product import Product

__all__ = ["Article", "Product"]
