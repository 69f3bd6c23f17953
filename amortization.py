"""Fixed-rate loan amortization.

Everything here works on plain floats and never rounds; rounding to cents is
left to whoever presents the numbers.
"""
import logging
import math
from typing import List, Tuple

from models import AmortizationRow, LoanTerms

logger = logging.getLogger(__name__)

# A schedule may run at most this many times the nominal number of payments.
SAFETY_FACTOR = 10

# Relative slack for the closing test, absorbs accumulated float error on the
# last regular payment.
CLOSING_TOLERANCE = 1e-9


class AmortizationError(ValueError):
    """Raised when a schedule does not pay the loan off within the safety cap."""


def compute_monthly_payment(
    principal: float, annual_rate_percent: float, term_years: float
) -> float:
    if principal <= 0 or term_years <= 0:
        return 0.0

    monthly_rate = annual_rate_percent / 12 / 100
    number_of_payments = term_years * 12

    if monthly_rate == 0:
        return principal / number_of_payments

    # r / (1 - (1 + r) ** -n), without overflow for long terms or
    # cancellation for tiny rates
    discount = -math.expm1(-number_of_payments * math.log1p(monthly_rate))
    return principal * monthly_rate / discount


def balance_after(
    month: int,
    principal: float,
    monthly_rate: float,
    number_of_payments: float,
    extra_monthly_payment: float = 0.0,
) -> float:
    """Balance left once ``month`` level payments plus extras have been made.

    Closed form of repeatedly applying ``balance * (1 + r) - payment - extra``.
    The level payment is expressed through the share of the loan it retires,
    ``expm1(k * log1p(r)) / expm1(n * log1p(r))``, which stays representable
    when the payment is within a rounding error of the interest.
    """
    if monthly_rate == 0:
        return (
            principal
            - principal * month / number_of_payments
            - extra_monthly_payment * month
        )

    log_growth = math.log1p(monthly_rate)
    try:
        retired = (
            math.exp((month - number_of_payments) * log_growth)
            * math.expm1(-month * log_growth)
            / math.expm1(-number_of_payments * log_growth)
        )
        prepaid = 0.0
        if extra_monthly_payment:
            prepaid = extra_monthly_payment / monthly_rate * math.expm1(month * log_growth)
    except OverflowError as exc:
        raise AmortizationError(f"Balance out of range after {month} months") from exc

    return principal * (1 - retired) - prepaid


def generate_amortization_schedule(
    principal: float,
    annual_rate_percent: float,
    term_years: float,
    extra_monthly_payment: float = 0.0,
) -> Tuple[List[AmortizationRow], float]:
    """Simulate the loan month by month until the balance is paid off.

    Returns the schedule together with the level monthly payment. Invalid base
    terms (non-positive principal or term) give ``([], 0.0)``.
    """
    monthly_payment = compute_monthly_payment(principal, annual_rate_percent, term_years)
    if monthly_payment <= 0:
        logger.debug(
            "No schedule for principal=%s term_years=%s", principal, term_years
        )
        return [], 0.0

    monthly_rate = annual_rate_percent / 12 / 100
    number_of_payments = term_years * 12
    max_months = SAFETY_FACTOR * math.ceil(number_of_payments)
    closing_tolerance = principal * CLOSING_TOLERANCE

    schedule = []
    balance = principal
    month = 1

    while True:
        if month > max_months:
            raise AmortizationError(
                f"Loan not paid off within {max_months} months "
                f"(balance {balance:.2f} remaining)"
            )

        interest = balance * monthly_rate
        next_balance = balance_after(
            month, principal, monthly_rate, number_of_payments, extra_monthly_payment
        )

        if next_balance < closing_tolerance:
            scheduled_principal = monthly_payment - interest
            applied_extra = max(0.0, min(extra_monthly_payment, balance - scheduled_principal))
            schedule.append(
                AmortizationRow(
                    month=month,
                    interest_portion=interest,
                    principal_portion=balance,
                    extra_payment=applied_extra,
                    total_payment=balance + interest,
                    remaining_balance=0.0,
                )
            )
            break

        schedule.append(
            AmortizationRow(
                month=month,
                interest_portion=interest,
                principal_portion=balance - next_balance,
                extra_payment=extra_monthly_payment,
                total_payment=monthly_payment + extra_monthly_payment,
                remaining_balance=next_balance,
            )
        )
        balance = next_balance
        month += 1

    logger.debug(
        "Generated %d month schedule, monthly payment %.4f", len(schedule), monthly_payment
    )
    return schedule, monthly_payment


def amortize(terms: LoanTerms) -> Tuple[List[AmortizationRow], float]:
    return generate_amortization_schedule(
        terms.principal,
        terms.annual_rate_percent,
        terms.term_years,
        terms.extra_monthly_payment,
    )
