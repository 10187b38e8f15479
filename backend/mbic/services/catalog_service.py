"""
Catalog lookups that feed the future-sale and loss-opportunity pickers.

Reps, dealers, categories and collections are read straight from their
tables; colors come from a stored procedure (see metrics_gateway).
"""
import logging
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from mbic.models.catalog import ProductCategory, CategoryCollection
from mbic.models.sales import Customer, SalesRep
from mbic.schemas.catalog import CategoryOption, CollectionOption, DealerOption, RepOption
from mbic.utils.coercion import coerce_display_name

logger = logging.getLogger(__name__)


def get_rep_options(db: Session) -> List[RepOption]:
    reps = db.query(SalesRep.rep_id, SalesRep.rep_name).order_by(SalesRep.rep_name).all()
    return [RepOption(id=rep.rep_id, name=coerce_display_name(rep.rep_name, f"Rep {rep.rep_id}")) for rep in reps]


def get_dealers_by_rep(db: Session, rep_id: int) -> List[DealerOption]:
    """Dealers assigned to ``rep_id``, by name; empty for a non-positive id."""
    if rep_id <= 0:
        return []
    rows = (
        db.query(Customer.customer_id, Customer.dealer_name, Customer.rep_id)
        .filter(Customer.rep_id == rep_id)
        .order_by(Customer.dealer_name)
        .all()
    )
    return [
        DealerOption(
            id=row.customer_id,
            name=coerce_display_name(row.dealer_name, f"Dealer {row.customer_id}"),
            rep_id=row.rep_id,
        )
        for row in rows
    ]


def get_categories(db: Session) -> List[CategoryOption]:
    """Active categories by sort order (unordered ones last), then name."""
    rows = (
        db.query(ProductCategory)
        .filter(ProductCategory.is_active.is_(True))
        .order_by(
            ProductCategory.sort_order.is_(None),
            ProductCategory.sort_order,
            ProductCategory.display_name,
        )
        .all()
    )
    return [
        CategoryOption(
            key=row.category_key,
            name=row.display_name or row.category_key,
            sort_order=row.sort_order,
        )
        for row in rows
    ]


def get_collections_by_category(db: Session, category_key: str) -> List[CollectionOption]:
    """Collections mapped to a category, matched case-insensitively, trimmed and de-duplicated."""
    normalized = category_key.strip().lower()
    matched = (
        db.query(ProductCategory.category_key)
        .filter(func.lower(ProductCategory.category_key) == normalized)
        .first()
    )
    resolved = (matched.category_key if matched else normalized).lower()

    rows = (
        db.query(CategoryCollection.collection_key)
        .filter(func.lower(CategoryCollection.category_key) == resolved)
        .order_by(CategoryCollection.collection_key)
        .all()
    )

    seen = set()
    options: List[CollectionOption] = []
    for row in rows:
        key = (row.collection_key or "").strip()
        if not key or key in seen:
            continue
        seen.add(key)
        options.append(CollectionOption(key=key, label=key))

    logger.debug("Resolved %d collections for category %r", len(options), category_key)
    return options
