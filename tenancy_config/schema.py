"""
Tenancy policy schema (``tenancy_config.schema``).

Frozen dataclass holding every tunable business constant of the tenancy
lifecycle.  Validated in ``__post_init__``; an invalid value raises
``ValueError`` at load time rather than surfacing mid-operation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from tenancy_kernel.logging_config import get_logger

logger = get_logger("config.schema")

_DEFAULT_FREQUENCIES = {
    "weekly": 7,
    "bi-weekly": 14,
    "monthly": 30,
    "4-weekly": 28,
}


@dataclass(frozen=True)
class TenancyPolicy:
    """Business constants for schedules, notices, deductions and the daily sweep."""

    default_cycle_days: int = 28
    payment_frequencies: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType(dict(_DEFAULT_FREQUENCIES))
    )
    initial_schedule_periods: int = 24
    extension_periods: int = 13
    extension_horizon_months: int = 6
    remedy_period_days: int = 7
    termination_period_days: int = 7
    max_annual_rent_increase: Decimal = Decimal("0.05")
    expiry_window_days: int = 30
    expiry_reminder_cooldown_days: int = 35
    daily_sweep_hour: int = 9
    rent_a_room_allowance: Decimal = Decimal("7500.00")

    def __post_init__(self):
        object.__setattr__(
            self, "payment_frequencies", MappingProxyType(dict(self.payment_frequencies))
        )
        object.__setattr__(
            self, "max_annual_rent_increase", Decimal(str(self.max_annual_rent_increase))
        )
        object.__setattr__(
            self, "rent_a_room_allowance", Decimal(str(self.rent_a_room_allowance))
        )

        positive = (
            "default_cycle_days",
            "initial_schedule_periods",
            "extension_periods",
            "extension_horizon_months",
            "remedy_period_days",
            "termination_period_days",
            "expiry_window_days",
            "expiry_reminder_cooldown_days",
        )
        for name in positive:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if not self.payment_frequencies:
            raise ValueError("payment_frequencies cannot be empty")
        for label, days in self.payment_frequencies.items():
            if not isinstance(days, int) or days < 1:
                raise ValueError(f"payment frequency {label!r} must map to positive days")
        if not Decimal("0") <= self.max_annual_rent_increase < Decimal("1"):
            raise ValueError("max_annual_rent_increase must be between 0 and 1")
        if self.rent_a_room_allowance < 0:
            raise ValueError("rent_a_room_allowance cannot be negative")
        if not 0 <= self.daily_sweep_hour <= 23:
            raise ValueError("daily_sweep_hour must be between 0 and 23")

        logger.info("tenancy_policy_initialized", extra={
            "initial_schedule_periods": self.initial_schedule_periods,
            "extension_periods": self.extension_periods,
            "max_annual_rent_increase": str(self.max_annual_rent_increase),
        })

    @classmethod
    def with_defaults(cls) -> TenancyPolicy:
        return cls()
