"""
Property-based tests for the pure ledger engines.

Properties checked:
- Generated schedules: advance on period 1, strictly increasing due dates,
  consistent running balance.
- Any sequence of confirmations keeps the running balance consistent and
  never touches periods before the edited one.
- Accepted deductions never overdraw either pool and always split exactly.
- Final settlement: amount is the magnitude of the signed amount and the
  kind and note label follow its sign.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from tenancy_kernel.domain.types import PaymentType, SettlementKind
from tenancy_kernel.exceptions import AllocationMismatchError, InsufficientFundsError
from tenancy_engines.balance import is_consistent, recompute
from tenancy_engines.deductions import allocate_deduction, available_funds
from tenancy_engines.due_dates import SchedulePolicy
from tenancy_engines.schedule import generate_schedule
from tenancy_engines.settlement import (
    PAYMENT_DUE_LABEL,
    REFUND_DUE_LABEL,
    compute_final_settlement,
)

FUZZ_SETTINGS = settings(
    max_examples=75,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)

money = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("5000.00"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
start_dates = st.dates(min_value=date(2020, 1, 1), max_value=date(2030, 12, 31))
cycle_policies = st.sampled_from([7, 14, 28, 30]).map(SchedulePolicy.cycle)
calendar_policies = st.integers(min_value=1, max_value=31).map(SchedulePolicy.calendar)
policies = st.one_of(cycle_policies, calendar_policies)


class TestScheduleProperties:

    @FUZZ_SETTINGS
    @given(start=start_dates, rent=money, count=st.integers(min_value=1, max_value=40), policy=policies)
    def test_generated_schedule_is_well_formed(self, start, rent, count, policy):
        periods = generate_schedule(start_date=start, monthly_rent=rent, count=count, policy=policy)

        assert len(periods) == count
        assert periods[0].due_date == start
        assert periods[0].rent_due == rent * 2
        assert all(p.rent_due == rent for p in periods[1:])
        assert all(a.due_date < b.due_date for a, b in zip(periods, periods[1:]))
        assert is_consistent(periods)
        assert periods[-1].balance == -sum((p.rent_due for p in periods), Decimal("0"))

    @FUZZ_SETTINGS
    @given(start=start_dates, day=st.integers(min_value=1, max_value=31))
    def test_calendar_due_days_clamp_to_month_end(self, start, day):
        policy = SchedulePolicy.calendar(day)
        periods = generate_schedule(start_date=start, monthly_rent=Decimal("500"), count=14, policy=policy)

        assert policy.payment_type is PaymentType.CALENDAR
        for period in periods[1:]:
            next_month = (period.due_date.replace(day=28) + timedelta(days=4)).replace(day=1)
            month_length = (next_month - timedelta(days=1)).day
            assert period.due_date.day == min(day, month_length)


class TestBalanceProperties:

    @FUZZ_SETTINGS
    @given(
        rent=money,
        confirmations=st.lists(
            st.tuples(st.integers(min_value=1, max_value=12), money),
            min_size=1,
            max_size=15,
        ),
    )
    def test_confirmations_keep_balance_consistent(self, rent, confirmations):
        periods = generate_schedule(
            start_date=date(2024, 1, 1), monthly_rent=rent, count=12, policy=SchedulePolicy.cycle(28),
        )
        paid: dict[int, Decimal] = {}
        for number, amount in confirmations:
            before = periods
            periods = recompute(periods, payment_number=number, amount_paid=amount)
            paid[number] = amount

            assert is_consistent(periods)
            assert periods[: number - 1] == before[: number - 1]

        total_due = sum((p.rent_due for p in periods), Decimal("0"))
        assert periods[-1].balance == sum(paid.values(), Decimal("0")) - total_due


class TestDeductionProperties:

    @FUZZ_SETTINGS
    @given(
        deposit=money,
        advance=money,
        requests=st.lists(st.tuples(money, money), min_size=1, max_size=10),
    )
    def test_accepted_deductions_never_overdraw(self, deposit, advance, requests):
        taken_deposit = taken_advance = Decimal("0")
        for from_deposit, from_advance in requests:
            funds = available_funds(
                deposit_amount=deposit,
                initial_payment=advance,
                deducted_from_deposit=taken_deposit,
                deducted_from_advance=taken_advance,
            )
            try:
                allocation = allocate_deduction(
                    amount=from_deposit + from_advance,
                    amount_from_deposit=from_deposit,
                    amount_from_advance=from_advance,
                    funds=funds,
                )
            except InsufficientFundsError:
                assert from_deposit > funds.available_deposit or from_advance > funds.available_advance
                continue
            assert allocation.amount == allocation.amount_from_deposit + allocation.amount_from_advance
            taken_deposit += allocation.amount_from_deposit
            taken_advance += allocation.amount_from_advance

        assert taken_deposit <= deposit
        assert taken_advance <= advance

    @FUZZ_SETTINGS
    @given(from_deposit=money, from_advance=money, drift=money)
    def test_split_must_match_total(self, from_deposit, from_advance, drift):
        funds = available_funds(deposit_amount=Decimal("10000"), initial_payment=Decimal("10000"))

        with pytest.raises(AllocationMismatchError) as exc_info:
            allocate_deduction(
                amount=from_deposit + from_advance + drift,
                amount_from_deposit=from_deposit,
                amount_from_advance=from_advance,
                funds=funds,
            )

        assert exc_info.value.allocated == from_deposit + from_advance


class TestSettlementProperties:

    @FUZZ_SETTINGS
    @given(
        last_due=st.dates(min_value=date(2023, 1, 1), max_value=date(2026, 12, 31)),
        offset=st.integers(min_value=-60, max_value=400),
        rent=money,
        cycle_days=st.sampled_from([7, 14, 28, 30]),
    )
    def test_kind_and_label_follow_sign(self, last_due, offset, rent, cycle_days):
        result = compute_final_settlement(
            last_due_date=last_due,
            effective_date=last_due + timedelta(days=offset),
            monthly_rent=rent,
            cycle_days=cycle_days,
        )

        assert result.amount == abs(result.signed_amount)
        assert result.days >= 0
        if result.signed_amount > 0:
            assert result.kind is SettlementKind.CHARGE
            assert result.note.endswith(PAYMENT_DUE_LABEL)
        else:
            assert result.kind is SettlementKind.REFUND
            assert result.note.endswith(REFUND_DUE_LABEL)

    @FUZZ_SETTINGS
    @given(
        last_due=st.dates(min_value=date(2023, 1, 1), max_value=date(2026, 12, 31)),
        within=st.integers(min_value=0, max_value=28),
        rent=money,
    )
    def test_ending_inside_paid_cover_is_a_refund(self, last_due, within, rent):
        result = compute_final_settlement(
            last_due_date=last_due,
            effective_date=last_due + timedelta(days=within),
            monthly_rent=rent,
            cycle_days=28,
        )

        assert result.kind is SettlementKind.REFUND
        assert result.amount >= rent
