"""
Snapshot reconciliation for a single dealer account.

A recorded expectation (grand total plus per-month totals and row counts) is
compared against freshly aggregated invoice rows. The default wiring checks
Linda Flooring (dealer 1) whenever Juan Pedro Boscan is the selected rep; the
comparison itself works for any account fixture.

Totals are compared exactly after rounding both sides to cents.
"""
import enum
import json
import logging
from decimal import Decimal, ROUND_HALF_UP
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel

from mbic.schemas.sales import SalesRow, MonthlyTotal
from mbic.services.aggregation import calculate_grand_total, group_by_month

logger = logging.getLogger(__name__)

DEFAULT_FIXTURE = Path(__file__).resolve().parent.parent / "fixtures" / "linda_flooring.json"


class Severity(str, enum.Enum):
    FATAL = "fatal"
    WARN = "warn"


class MonthExpectation(BaseModel):
    total: float
    rows: int


class AccountExpectation(BaseModel):
    account_name: str
    dealer_id: int
    rep_name: str
    grand_total: float
    months: Dict[str, MonthExpectation]


class ReconciliationResult(BaseModel):
    grand: float
    monthly: List[MonthlyTotal]
    issues: List[str]

    @property
    def ok(self) -> bool:
        return not self.issues


class ReconciliationError(Exception):
    """Raised in fatal mode when a snapshot no longer matches."""

    def __init__(self, account_name: str, issues: List[str]):
        self.account_name = account_name
        self.issues = list(issues)
        super().__init__(f"{account_name} reconciliation failed: " + "; ".join(self.issues))


def resolve_severity(settings) -> Severity:
    """Explicit RECONCILIATION_SEVERITY wins; otherwise warn in production, fail elsewhere."""
    configured = (settings.RECONCILIATION_SEVERITY or "").strip().lower()
    if configured:
        return Severity(configured)
    return Severity.WARN if settings.is_production else Severity.FATAL


def load_expectation(path: Optional[Union[str, Path]] = None) -> AccountExpectation:
    fixture = Path(path) if path else DEFAULT_FIXTURE
    with fixture.open(encoding="utf-8") as fh:
        payload = json.load(fh)
    return AccountExpectation.model_validate(payload)


def _cents(value: float) -> float:
    """Round half away from zero on the decimal text, so 0.125 becomes 0.13."""
    return float(Decimal(repr(float(value))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def snapshot_window(expectation: AccountExpectation) -> Tuple[str, str]:
    """[first day of the earliest month, first day after the latest month) as ISO dates."""
    months = sorted(expectation.months)
    if not months:
        raise ValueError(f"{expectation.account_name} expectation has no months")
    year, month = (int(part) for part in months[-1].split("-")[:2])
    year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return f"{months[0]}-01", f"{year:04d}-{month:02d}-01"


def compare_snapshot(
    grand: float,
    monthly: Iterable[MonthlyTotal],
    expectation: AccountExpectation,
) -> List[str]:
    """List every difference between the actual aggregates and the expectation."""
    issues: List[str] = []

    actual_grand = _cents(grand)
    if actual_grand != expectation.grand_total:
        issues.append(
            f"Grand total mismatch for {expectation.account_name}: "
            f"expected {expectation.grand_total}, received {actual_grand}"
        )

    by_month = {entry.month: entry for entry in monthly}
    for month, expected in expectation.months.items():
        actual = by_month.get(month)
        if actual is None:
            issues.append(f"Missing monthly data for {month}")
            continue
        actual_total = _cents(actual.total)
        if actual_total != expected.total:
            issues.append(f"Total mismatch for {month}: expected {expected.total}, received {actual_total}")
        if actual.rows != expected.rows:
            issues.append(f"Row count mismatch for {month}: expected {expected.rows}, received {actual.rows}")

    return issues


def validate_account(
    rows: List[SalesRow],
    expectation: AccountExpectation,
    severity: Severity = Severity.FATAL,
) -> ReconciliationResult:
    """Aggregate ``rows`` and check them against ``expectation``.

    On mismatch, FATAL raises ReconciliationError; WARN logs and returns the
    issues to the caller.
    """
    grand = calculate_grand_total(rows)
    monthly = group_by_month(rows)
    issues = compare_snapshot(grand, monthly, expectation)

    if issues:
        if severity is Severity.FATAL:
            raise ReconciliationError(expectation.account_name, issues)
        logger.warning("Sales reconciliation warning for %s: %s", expectation.account_name, "; ".join(issues))

    return ReconciliationResult(grand=grand, monthly=monthly, issues=issues)


def should_reconcile(rep_name: Optional[str], dealer_id: Optional[int], expectation: AccountExpectation) -> bool:
    """True only for the rep/dealer pair the expectation was recorded for."""
    if not rep_name or dealer_id is None:
        return False
    return (
        rep_name.strip().lower() == expectation.rep_name.strip().lower()
        and dealer_id == expectation.dealer_id
    )
