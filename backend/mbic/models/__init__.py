"""
Models package - Import all models so Base.metadata knows every table
"""
from mbic.database import Base

from mbic.models.sales import SalesRecord, Customer, SalesRep
from mbic.models.opportunity import FutureSaleOpportunity, LossOpportunity
from mbic.models.catalog import ProductCategory, CategoryCollection

__all__ = [
    "Base",
    "SalesRecord",
    "Customer",
    "SalesRep",
    "FutureSaleOpportunity",
    "LossOpportunity",
    "ProductCategory",
    "CategoryCollection",
]
