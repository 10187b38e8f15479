"""
In-memory aggregation over SalesRow lists.

Everything here is pure and synchronous. Sums are accumulated in input order
with no intermediate rounding, so the same input always produces bit-identical
floats; callers that compare against recorded totals rely on that.
"""
from typing import Dict, Iterable, List, Mapping, Optional

from mbic.schemas.sales import SalesRow, MonthlyTotal, DealerAggregate, RepAggregate
from mbic.utils.coercion import coerce_number, coerce_display_name


def _amount(row: SalesRow) -> float:
    return coerce_number(row.invoice_amount, 0)


def month_key(invoice_date) -> str:
    """First seven characters of the ISO date; short or odd values are kept as-is."""
    text = invoice_date if isinstance(invoice_date, str) else str(invoice_date)
    return text[:7]


def group_by_month(rows: Iterable[SalesRow]) -> List[MonthlyTotal]:
    """Bucket rows by YYYY-MM, in first-seen order of each month."""
    buckets: Dict[str, dict] = {}
    for row in rows:
        key = month_key(row.invoice_date)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = {"total": 0, "rows": 0}
        bucket["total"] += _amount(row)
        bucket["rows"] += 1

    return [
        MonthlyTotal(month=month, total=bucket["total"], rows=bucket["rows"])
        for month, bucket in buckets.items()
    ]


def group_by_month_sorted(rows: Iterable[SalesRow]) -> List[MonthlyTotal]:
    """group_by_month, ordered chronologically (buckets are summed before sorting)."""
    return sorted(group_by_month(rows), key=lambda entry: entry.month)


def group_by_dealer_month(rows: Iterable[SalesRow], dealer_id: int) -> List[MonthlyTotal]:
    return group_by_month(row for row in rows if row.customer_id == dealer_id)


def calculate_grand_total(rows: Iterable[SalesRow]) -> float:
    total = 0
    for row in rows:
        total += _amount(row)
    return total


def _share(revenue: float, parent_total: float) -> float:
    if parent_total and parent_total > 0:
        return revenue / parent_total * 100
    return 0


def aggregate_dealers(
    rows: Iterable[SalesRow],
    name_map: Mapping[int, Optional[str]],
    parent_total: float,
) -> List[DealerAggregate]:
    """Revenue, invoice count, average and share per dealer, largest first."""
    dealers: Dict[int, dict] = {}
    for row in rows:
        info = dealers.setdefault(row.customer_id, {"revenue": 0, "invoices": 0})
        info["revenue"] += _amount(row)
        info["invoices"] += 1

    result = []
    for customer_id, info in dealers.items():
        average = info["revenue"] / info["invoices"] if info["invoices"] > 0 else 0
        result.append(DealerAggregate(
            customer_id=customer_id,
            dealer_name=coerce_display_name(name_map.get(customer_id), f"Dealer {customer_id}"),
            revenue=round(info["revenue"], 2),
            invoices=info["invoices"],
            average_invoice=round(average, 2),
            revenue_share=round(_share(info["revenue"], parent_total), 1),
        ))

    return sorted(result, key=lambda d: d.revenue, reverse=True)


def aggregate_reps(
    rows: Iterable[SalesRow],
    name_map: Mapping[int, Optional[str]],
    parent_total: float,
) -> List[RepAggregate]:
    """Per-rep rollup; rows without a rep are left out."""
    reps: Dict[int, dict] = {}
    for row in rows:
        if row.rep_id is None:
            continue
        info = reps.setdefault(row.rep_id, {"revenue": 0, "invoices": 0, "customers": set()})
        info["revenue"] += _amount(row)
        info["invoices"] += 1
        info["customers"].add(row.customer_id)

    result = []
    for rep_id, info in reps.items():
        average = info["revenue"] / info["invoices"] if info["invoices"] > 0 else 0
        result.append(RepAggregate(
            rep_id=rep_id,
            rep_name=coerce_display_name(name_map.get(rep_id), f"Rep {rep_id}"),
            revenue=round(info["revenue"], 2),
            invoices=info["invoices"],
            average_invoice=round(average, 2),
            revenue_share=round(_share(info["revenue"], parent_total), 1),
            unique_customers=len(info["customers"]),
        ))

    return sorted(result, key=lambda r: r.revenue, reverse=True)
