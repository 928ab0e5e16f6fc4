"""
Module: tenancy_engines.tax
Responsibility:
    Rent-a-room allowance summary for one UK tax year (6 April to 5 April):
    total confirmed rental income against a single tax-free allowance.
    No other tax computation is in scope.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from tenancy_kernel.domain.money import ZERO, round_money

RENT_A_ROOM_ALLOWANCE = Decimal("7500.00")


@dataclass(frozen=True)
class TaxYearSummary:
    tax_year: str
    start_date: date
    end_date: date
    total_income: Decimal
    allowance: Decimal
    taxable_income: Decimal
    remaining_allowance: Decimal


def tax_year_bounds(start_year: int) -> tuple[date, date]:
    return date(start_year, 4, 6), date(start_year + 1, 4, 5)


def tax_year_containing(day: date) -> int:
    """Calendar year in which the tax year containing ``day`` starts."""
    return day.year if day >= date(day.year, 4, 6) else day.year - 1


def summarize_tax_year(
    receipts: Iterable[tuple[date, Decimal]],
    start_year: int,
    allowance: Decimal = RENT_A_ROOM_ALLOWANCE,
) -> TaxYearSummary:
    """Sum the receipts dated inside the tax year starting in ``start_year``."""
    start, end = tax_year_bounds(start_year)
    total = sum(
        (Decimal(amount) for received_on, amount in receipts if start <= received_on <= end),
        ZERO,
    )
    total = round_money(total)
    allowance = round_money(allowance)
    return TaxYearSummary(
        tax_year=f"{start_year}/{str(start_year + 1)[-2:]}",
        start_date=start,
        end_date=end,
        total_income=total,
        allowance=allowance,
        taxable_income=max(ZERO, total - allowance),
        remaining_allowance=max(ZERO, allowance - total),
    )
