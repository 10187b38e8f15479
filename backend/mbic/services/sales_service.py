"""
Sales table queries and the locally aggregated rep view.
"""
import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from mbic.models.sales import SalesRecord, Customer, SalesRep
from mbic.schemas.sales import SalesRow, SalesRepOption, RepSalesData, DealerSnapshot
from mbic.services.aggregation import aggregate_dealers, calculate_grand_total, group_by_month

logger = logging.getLogger(__name__)

DateLike = Union[str, date]


def _as_date(value: DateLike) -> date:
    return value if isinstance(value, date) else date.fromisoformat(value)


def fetch_sales_range(
    db: Session,
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
    customer_id: Optional[int] = None,
    rep_id: Optional[int] = None,
) -> List[SalesRow]:
    """Invoice rows in [start, end), optionally scoped to one dealer and/or rep."""
    query = db.query(SalesRecord)
    if start:
        query = query.filter(SalesRecord.invoice_date >= _as_date(start))
    if end:
        query = query.filter(SalesRecord.invoice_date < _as_date(end))
    if customer_id is not None:
        query = query.filter(SalesRecord.customer_id == customer_id)
    if rep_id is not None:
        query = query.filter(SalesRecord.rep_id == rep_id)

    records = query.order_by(SalesRecord.invoice_date, SalesRecord.id).all()
    return [
        SalesRow(
            invoice_date=record.invoice_date,
            invoice_amount=record.invoice_amount,
            customer_id=record.customer_id,
            rep_id=record.rep_id,
            invoice_number=record.invoice_number,
            collection=record.collection,
        )
        for record in records
    ]


def fetch_customer_names(db: Session, customer_ids: Iterable[int]) -> Dict[int, Optional[str]]:
    ids = list(customer_ids)
    if not ids:
        return {}
    rows = db.query(Customer.customer_id, Customer.dealer_name).filter(Customer.customer_id.in_(ids)).all()
    return {int(row.customer_id): row.dealer_name for row in rows}


def fetch_sales_reps(db: Session) -> List[SalesRepOption]:
    reps = db.query(SalesRep).order_by(SalesRep.rep_name).all()
    return [SalesRepOption.model_validate(rep) for rep in reps]


def select_rep(
    reps: List[SalesRepOption],
    requested: Optional[str],
    default: Optional[str] = None,
) -> Optional[SalesRepOption]:
    """Match ``requested`` (or ``default``) by trimmed, case-insensitive name; else the first rep."""
    if not reps:
        return None
    wanted = (requested or default or "").strip().lower()
    for rep in reps:
        if rep.rep_name.strip().lower() == wanted:
            return rep
    return reps[0]


def fetch_rep_sales_data(
    db: Session,
    rep_id: int,
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
) -> RepSalesData:
    rows = fetch_sales_range(db, start=start, end=end, rep_id=rep_id)

    grand_total = calculate_grand_total(rows)
    unique_customer_ids = list(dict.fromkeys(row.customer_id for row in rows))
    name_map = fetch_customer_names(db, unique_customer_ids)

    logger.debug("Aggregated %d invoices across %d dealers for rep %s", len(rows), len(unique_customer_ids), rep_id)

    return RepSalesData(
        rep_id=rep_id,
        rows=rows,
        monthly_totals=group_by_month(rows),
        grand_total=grand_total,
        invoice_count=len(rows),
        unique_customers=len(unique_customer_ids),
        dealers=aggregate_dealers(rows, name_map, grand_total),
    )


def get_sales_rep(db: Session, rep_id: int) -> Optional[SalesRepOption]:
    rep = db.query(SalesRep).filter(SalesRep.rep_id == rep_id).first()
    return SalesRepOption.model_validate(rep) if rep else None


def fetch_dealer_snapshot(
    db: Session,
    dealer_id: int,
    collection: str,
    start: DateLike,
    end: DateLike,
) -> Optional[DealerSnapshot]:
    """Collection revenue vs. all revenue for one dealer over [start, end); None for an unknown dealer."""
    dealer = db.query(Customer).filter(Customer.customer_id == dealer_id).first()
    if dealer is None:
        return None

    rows = fetch_sales_range(db, start=start, end=end, customer_id=dealer_id)
    collection_rows = [row for row in rows if row.collection == collection]

    rep_id = rows[0].rep_id if rows else None
    rep = get_sales_rep(db, rep_id) if rep_id is not None else None

    collection_revenue = calculate_grand_total(collection_rows)
    total_revenue = calculate_grand_total(rows)
    share = collection_revenue / total_revenue * 100 if total_revenue > 0 else 0

    return DealerSnapshot(
        dealer_id=dealer.customer_id,
        dealer_name=dealer.dealer_name or f"Dealer {dealer.customer_id}",
        rep_id=rep_id,
        rep_name=rep.rep_name if rep else "Unknown",
        collection=collection,
        collection_revenue=collection_revenue,
        total_revenue=total_revenue,
        collection_share_pct=share,
        invoice_count=len(collection_rows),
        range_from=str(start),
        range_to=str(end),
    )
