"""
Product catalog tables read by the form pickers
"""
from sqlalchemy import Column, Integer, String, Boolean, Index

from mbic.database import Base


class ProductCategory(Base):
    __tablename__ = "product_categories"

    category_key = Column(String, primary_key=True)
    display_name = Column(String, nullable=True)
    sort_order = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<ProductCategory {self.category_key}>"


class CategoryCollection(Base):
    __tablename__ = "product_category_collection_map"

    category_key = Column(String, primary_key=True)
    collection_key = Column(String, primary_key=True)

    __table_args__ = (
        Index("idx_category_collection_category", "category_key"),
    )
