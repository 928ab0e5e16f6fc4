"""
Typed Exception Hierarchy for the Tenancy Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (an HTTP layer, a CLI, a scheduler) need to tell a bad request from a
business-rule rejection from a missing record without parsing messages:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA, including the computed boundary the
     caller needs to correct its input (max allowed rent, available funds)

Example:
    try:
        orchestrator.offer_extension(tenancy_id, landlord_id, months=6,
                                     proposed_rent=Decimal("1060.00"))
    except RentCapExceededError as e:
        api_response(code=e.code, max_allowed_rent=e.max_allowed_rent)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    TenancyKernelError (base)
    |
    +-- ValidationError                 bad input shape/range, nothing mutated
    |   +-- InvalidPaymentTypeError
    |   +-- PaymentDayOutOfRangeError
    |   +-- InvalidPaymentFrequencyError
    |   +-- InvalidAmountError
    |   +-- InvalidNoticePeriodError
    |   +-- InvalidExtensionTermError
    |   +-- InvalidExtensionResponseError
    |
    +-- NotFoundError                   unknown id or no relationship to it
    |   +-- TenancyNotFoundError
    |   +-- PaymentNotFoundError
    |   +-- NoticeNotFoundError
    |   +-- DeductionNotFoundError
    |
    +-- PreconditionError               business rule rejected the request
        +-- TenancyStateError
        +-- TenancySignedError
        +-- AgreementNotSignedError
        +-- NoticeStageError
        +-- PrematureEscalationError
        +-- ExtensionOfferPendingError
        +-- RentCapExceededError
        +-- NotNoticeRecipientError
        +-- InsufficientFundsError
        +-- AllocationMismatchError
        +-- PaymentAlreadySettledError
        +-- ScheduleExistsError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                         | When Raised
----------------|------------------------------|------------------------------------------
Validation      | INVALID_PAYMENT_TYPE         | payment type not cycle/calendar
                | PAYMENT_DAY_OUT_OF_RANGE     | calendar day-of-month outside 1-31
                | INVALID_PAYMENT_FREQUENCY    | unknown frequency label
                | INVALID_AMOUNT               | negative / zero / non-numeric money
                | INVALID_NOTICE_PERIOD        | negative notice period
                | INVALID_EXTENSION_TERM       | extension months < 1
                | INVALID_EXTENSION_RESPONSE   | response not accepted/rejected
----------------|------------------------------|------------------------------------------
Not found       | TENANCY_NOT_FOUND            | tenancy id unknown / caller unrelated
                | PAYMENT_NOT_FOUND            | payment period id unknown
                | NOTICE_NOT_FOUND             | notice id unknown
                | DEDUCTION_NOT_FOUND          | deduction id unknown
----------------|------------------------------|------------------------------------------
Precondition    | TENANCY_STATE                | operation illegal in tenancy status
                | TENANCY_SIGNED               | cancelling an offer already signed
                | AGREEMENT_NOT_SIGNED         | approving before the lodger signed
                | NOTICE_STAGE                 | wrong notice kind/stage/status
                | PREMATURE_ESCALATION         | escalating before remedy deadline
                | EXTENSION_OFFER_PENDING      | second concurrent extension offer
                | RENT_CAP_EXCEEDED            | proposed rent above the annual cap
                | NOT_NOTICE_RECIPIENT         | responder is not the notice recipient
                | INSUFFICIENT_FUNDS           | deduction exceeds remaining pool
                | ALLOCATION_MISMATCH          | deposit + advance != amount
                | PAYMENT_ALREADY_SETTLED      | reminder/waive on a settled period
                | SCHEDULE_EXISTS              | generating over an existing schedule

===============================================================================
HANDLING PATTERNS
===============================================================================

1. CATCH BY CATEGORY at the transport boundary:

    except ValidationError as e:      -> 400 with e.code
    except NotFoundError as e:        -> 404 with e.code
    except PreconditionError as e:    -> 409/422 with e.code and e's fields

2. USE STRUCTURED DATA (not message parsing):

    except InsufficientFundsError as e:
        return {"error": e.code, "pool": e.pool,
                "available": e.available, "requested": e.requested}

3. STORAGE FAILURES are NOT wrapped.  SQLAlchemyError propagates after the
   owning service has rolled back; nothing partial is ever committed.
===============================================================================
"""

from decimal import Decimal
from typing import Any


class TenancyKernelError(Exception):
    """
    Base exception for all tenancy kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "TENANCY_KERNEL_ERROR"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationError(TenancyKernelError):
    """Input failed shape or range validation; no state was touched."""

    code: str = "VALIDATION_ERROR"


class InvalidPaymentTypeError(ValidationError):
    code: str = "INVALID_PAYMENT_TYPE"

    def __init__(self, payment_type: Any):
        self.payment_type = payment_type
        super().__init__(
            f"Invalid payment type {payment_type!r}: must be 'cycle' or 'calendar'"
        )


class PaymentDayOutOfRangeError(ValidationError):
    code: str = "PAYMENT_DAY_OUT_OF_RANGE"

    def __init__(self, payment_day: Any):
        self.payment_day = payment_day
        super().__init__(
            f"Payment day of month must be between 1 and 31 for calendar "
            f"payments, got {payment_day!r}"
        )


class InvalidPaymentFrequencyError(ValidationError):
    code: str = "INVALID_PAYMENT_FREQUENCY"

    def __init__(self, frequency: Any, allowed: tuple[str, ...]):
        self.frequency = frequency
        self.allowed = allowed
        super().__init__(
            f"Invalid payment frequency {frequency!r}: must be one of "
            f"{', '.join(allowed)}"
        )


class InvalidAmountError(ValidationError):
    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")


class InvalidNoticePeriodError(ValidationError):
    code: str = "INVALID_NOTICE_PERIOD"

    def __init__(self, notice_period_days: Any):
        self.notice_period_days = notice_period_days
        super().__init__(
            f"Notice period must be a non-negative number of days, "
            f"got {notice_period_days!r}"
        )


class InvalidExtensionTermError(ValidationError):
    code: str = "INVALID_EXTENSION_TERM"

    def __init__(self, months: Any):
        self.months = months
        super().__init__(f"Extension must be at least one month, got {months!r}")


class InvalidExtensionResponseError(ValidationError):
    code: str = "INVALID_EXTENSION_RESPONSE"

    def __init__(self, response: Any):
        self.response = response
        super().__init__(
            f"Extension response must be 'accepted' or 'rejected', got {response!r}"
        )


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class NotFoundError(TenancyKernelError):
    """Entity does not exist, or the caller has no relationship to it."""

    code: str = "NOT_FOUND"
    entity: str = "entity"

    def __init__(self, entity_id: Any):
        self.entity_id = entity_id
        super().__init__(f"{self.entity.capitalize()} not found: {entity_id}")


class TenancyNotFoundError(NotFoundError):
    code: str = "TENANCY_NOT_FOUND"
    entity: str = "tenancy"


class PaymentNotFoundError(NotFoundError):
    code: str = "PAYMENT_NOT_FOUND"
    entity: str = "payment"


class NoticeNotFoundError(NotFoundError):
    code: str = "NOTICE_NOT_FOUND"
    entity: str = "notice"


class DeductionNotFoundError(NotFoundError):
    code: str = "DEDUCTION_NOT_FOUND"
    entity: str = "deduction"


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------


class PreconditionError(TenancyKernelError):
    """A business rule rejected the request; no partial mutation occurred."""

    code: str = "PRECONDITION_FAILED"


class TenancyStateError(PreconditionError):
    code: str = "TENANCY_STATE"

    def __init__(self, tenancy_id: Any, status: str, operation: str):
        self.tenancy_id = tenancy_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} tenancy {tenancy_id} in status '{status}'"
        )


class TenancySignedError(PreconditionError):
    """Signed agreements cannot be cancelled; a notice must be given instead."""

    code: str = "TENANCY_SIGNED"

    def __init__(self, tenancy_id: Any):
        self.tenancy_id = tenancy_id
        super().__init__(
            f"Tenancy {tenancy_id} has been signed by the lodger and cannot be "
            f"cancelled; give notice instead"
        )


class AgreementNotSignedError(PreconditionError):
    code: str = "AGREEMENT_NOT_SIGNED"

    def __init__(self, tenancy_id: Any):
        self.tenancy_id = tenancy_id
        super().__init__(
            f"Tenancy {tenancy_id} must be signed by the lodger before approval"
        )


class NoticeStageError(PreconditionError):
    code: str = "NOTICE_STAGE"

    def __init__(self, notice_id: Any, current: str, required: str, operation: str):
        self.notice_id = notice_id
        self.current = current
        self.required = required
        self.operation = operation
        super().__init__(
            f"Cannot {operation} notice {notice_id}: it is '{current}', "
            f"requires '{required}'"
        )


class PrematureEscalationError(PreconditionError):
    code: str = "PREMATURE_ESCALATION"

    def __init__(self, notice_id: Any, remedy_deadline: Any, today: Any):
        self.notice_id = notice_id
        self.remedy_deadline = remedy_deadline
        self.today = today
        super().__init__(
            f"Cannot escalate breach notice {notice_id} before the remedy "
            f"deadline {remedy_deadline} (today is {today})"
        )


class ExtensionOfferPendingError(PreconditionError):
    code: str = "EXTENSION_OFFER_PENDING"

    def __init__(self, tenancy_id: Any, pending_notice_id: Any):
        self.tenancy_id = tenancy_id
        self.pending_notice_id = pending_notice_id
        super().__init__(
            f"Tenancy {tenancy_id} already has a pending extension offer "
            f"({pending_notice_id})"
        )


class RentCapExceededError(PreconditionError):
    """Proposed rent exceeds the annual rent-review cap."""

    code: str = "RENT_CAP_EXCEEDED"

    def __init__(
        self,
        current_rent: Decimal,
        proposed_rent: Decimal,
        max_allowed_rent: Decimal,
        increase_percent: Decimal,
        max_increase_percent: Decimal,
    ):
        self.current_rent = current_rent
        self.proposed_rent = proposed_rent
        self.max_allowed_rent = max_allowed_rent
        self.increase_percent = increase_percent
        self.max_increase_percent = max_increase_percent
        super().__init__(
            f"Rent increase of {increase_percent}% exceeds the maximum of "
            f"{max_increase_percent}% per year; maximum allowed rent is "
            f"{max_allowed_rent}"
        )


class NotNoticeRecipientError(PreconditionError):
    code: str = "NOT_NOTICE_RECIPIENT"

    def __init__(self, notice_id: Any, actor_id: Any):
        self.notice_id = notice_id
        self.actor_id = actor_id
        super().__init__(
            f"Only the recipient of notice {notice_id} may respond to it"
        )


class InsufficientFundsError(PreconditionError):
    """Deduction allocation exceeds what remains in a fund pool."""

    code: str = "INSUFFICIENT_FUNDS"

    def __init__(self, pool: str, available: Decimal, requested: Decimal):
        self.pool = pool
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient {pool.replace('_', ' ')} funds: "
            f"{available} available, {requested} requested"
        )


class AllocationMismatchError(PreconditionError):
    code: str = "ALLOCATION_MISMATCH"

    def __init__(self, amount: Decimal, allocated: Decimal):
        self.amount = amount
        self.allocated = allocated
        super().__init__(
            f"Deduction split must equal the total: deposit + advance = "
            f"{allocated}, amount = {amount}"
        )


class PaymentAlreadySettledError(PreconditionError):
    code: str = "PAYMENT_ALREADY_SETTLED"

    def __init__(self, payment_id: Any, status: str, operation: str):
        self.payment_id = payment_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} payment {payment_id}: it is already {status}"
        )


class ScheduleExistsError(PreconditionError):
    code: str = "SCHEDULE_EXISTS"

    def __init__(self, tenancy_id: Any, period_count: int):
        self.tenancy_id = tenancy_id
        self.period_count = period_count
        super().__init__(
            f"Tenancy {tenancy_id} already has {period_count} scheduled payment "
            f"periods; extend the schedule instead"
        )
