import calendar
import logging
import math
from dataclasses import replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from amortization import AmortizationError, amortize, compute_monthly_payment
from config import Settings, get_settings
from models import AmortizationRow, LoanTerms
from schemas import (LoanCalculation, LoanCalculationRequest, LoanComparison,
                     LoanComparisonRequest, LoanRecord, LoanSchedule,
                     LoanSummary, MonthlyPayment, MortgageCalculation,
                     MortgageRecord, YearlyBreakdown)

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_title)


def to_cents(value: float) -> float:
    return float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def loan_terms(loan: LoanRecord) -> LoanTerms:
    return LoanTerms(
        principal=loan.amount,
        annual_rate_percent=loan.annual_interest_rate,
        term_years=loan.loan_term,
        extra_monthly_payment=loan.extra_payment,
    )


def add_months(start: date, months: int) -> date:
    year = start.year + (start.month - 1 + months) // 12
    month = (start.month - 1 + months) % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def format_duration(months: int) -> str:
    years, remaining_months = divmod(months, 12)
    return f"{years} year(s) and {remaining_months} month(s)"


@app.exception_handler(AmortizationError)
async def amortization_error_handler(request: Request, exc: AmortizationError):
    logger.warning("Amortization failed for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.get("/health")
async def health(current_settings: Settings = Depends(get_settings)):
    return {"status": "ok", "title": current_settings.app_title}


@app.post("/loan/payment", response_model=MonthlyPayment)
async def get_monthly_payment(loan: LoanRecord):
    monthly_payment = compute_monthly_payment(
        loan.amount, loan.annual_interest_rate, loan.loan_term
    )
    return MonthlyPayment(monthly_payment=to_cents(monthly_payment))


def calculate_loan_schedule(terms: LoanTerms) -> List[LoanSchedule]:
    schedule, _ = amortize(terms)
    return [
        LoanSchedule(
            month=row.month,
            interest=to_cents(row.interest_portion),
            principal=to_cents(row.principal_portion),
            extra_payment=to_cents(row.extra_payment),
            total_payment=to_cents(row.total_payment),
            remaining_balance=to_cents(row.remaining_balance),
        )
        for row in schedule
    ]


@app.post("/loan/schedule", response_model=List[LoanSchedule])
async def get_loan_schedule(loan: LoanRecord):
    return calculate_loan_schedule(loan_terms(loan))


def calculate_loan_summary(
    amount: float, month_number: int, schedule: List[AmortizationRow]
) -> LoanSummary:
    current_principal_balance = schedule[month_number - 1].remaining_balance
    total_paid = sum(row.total_payment for row in schedule[:month_number])

    principal_paid = amount - current_principal_balance
    interest_paid = total_paid - principal_paid

    return LoanSummary(
        current_principal_balance=to_cents(current_principal_balance),
        aggregate_principal_paid=to_cents(principal_paid),
        aggregate_interest_paid=to_cents(interest_paid),
    )


@app.post("/loan/summary", response_model=LoanSummary)
async def get_loan_summary(loan: LoanRecord, month_number: int = Query(ge=1)):
    schedule, _ = amortize(loan_terms(loan))

    if month_number > len(schedule):
        logger.warning(
            "Summary requested for month %d of a %d month schedule",
            month_number,
            len(schedule),
        )
        raise HTTPException(
            status_code=422,
            detail=f"Loan is paid off after {len(schedule)} months",
        )

    return calculate_loan_summary(loan.amount, month_number, schedule)


def calculate_yearly_breakdown(schedule: List[AmortizationRow]) -> List[YearlyBreakdown]:
    totals: Dict[int, List[float]] = {}
    for row in schedule:
        year = math.ceil(row.month / 12)
        year_totals = totals.setdefault(year, [0.0, 0.0])
        year_totals[0] += row.principal_portion
        year_totals[1] += row.interest_portion

    return [
        YearlyBreakdown(year=year, principal=to_cents(principal), interest=to_cents(interest))
        for year, (principal, interest) in totals.items()
    ]


def calculate_loan_totals(
    terms: LoanTerms, start_date: Optional[date] = None
) -> LoanCalculation:
    """Headline figures for one loan.

    With an extra monthly payment the loan is also run without it, so the
    result can report the interest and time the extra payment saves.
    """
    start_date = start_date or date.today()
    schedule, monthly_payment = amortize(terms)
    total_interest = sum(row.interest_portion for row in schedule)

    calculation = LoanCalculation(
        monthly_payment=to_cents(monthly_payment),
        total_monthly_payment=to_cents(monthly_payment + terms.extra_monthly_payment),
        total_interest=to_cents(total_interest),
        total_payment=to_cents(terms.principal + total_interest),
        number_of_payments=len(schedule),
        payoff_date=add_months(start_date, len(schedule)).strftime("%B %Y"),
        yearly_breakdown=calculate_yearly_breakdown(schedule),
    )

    if terms.extra_monthly_payment > 0:
        original_schedule, _ = amortize(replace(terms, extra_monthly_payment=0.0))
        original_total_interest = sum(row.interest_portion for row in original_schedule)
        calculation.original_total_interest = to_cents(original_total_interest)
        calculation.interest_saved = to_cents(original_total_interest - total_interest)
        calculation.payoff_time_saved = format_duration(
            len(original_schedule) - len(schedule)
        )

    return calculation


@app.post("/loan/calculate", response_model=LoanCalculation)
async def calculate_loan(loan: LoanCalculationRequest):
    return calculate_loan_totals(loan_terms(loan), loan.start_date)


def calculate_mortgage(
    terms: LoanTerms,
    property_tax: float = 0,
    home_insurance: float = 0,
    hoa_dues: float = 0,
    start_date: Optional[date] = None,
) -> MortgageCalculation:
    calculation = calculate_loan_totals(terms, start_date)
    monthly_tax = property_tax / 12
    monthly_insurance = home_insurance / 12
    total_monthly_payment = (
        compute_monthly_payment(terms.principal, terms.annual_rate_percent, terms.term_years)
        + monthly_tax
        + monthly_insurance
        + hoa_dues
    )

    # principal and interest plus escrow, the extra payment is not included
    fields = calculation.model_dump()
    fields["total_monthly_payment"] = to_cents(total_monthly_payment)
    return MortgageCalculation(
        **fields,
        principal_and_interest=calculation.monthly_payment,
        property_tax=to_cents(monthly_tax),
        home_insurance=to_cents(monthly_insurance),
        hoa_dues=to_cents(hoa_dues),
    )


@app.post("/mortgage", response_model=MortgageCalculation)
async def get_mortgage(mortgage: MortgageRecord):
    return calculate_mortgage(
        loan_terms(mortgage),
        property_tax=mortgage.property_tax,
        home_insurance=mortgage.home_insurance,
        hoa_dues=mortgage.hoa_dues,
        start_date=mortgage.start_date,
    )


def compare_loans(
    loan_a: LoanTerms, loan_b: LoanTerms, start_date: Optional[date] = None
) -> LoanComparison:
    result_a = calculate_loan_totals(loan_a, start_date)
    result_b = calculate_loan_totals(loan_b, start_date)

    lower_total_cost = None
    if result_a.total_payment < result_b.total_payment:
        lower_total_cost = "loan_a"
    elif result_b.total_payment < result_a.total_payment:
        lower_total_cost = "loan_b"

    return LoanComparison(
        loan_a=result_a,
        loan_b=result_b,
        monthly_payment_difference=to_cents(result_b.monthly_payment - result_a.monthly_payment),
        total_interest_difference=to_cents(result_b.total_interest - result_a.total_interest),
        lower_total_cost=lower_total_cost,
    )


@app.post("/loan/compare", response_model=LoanComparison)
async def get_loan_comparison(comparison: LoanComparisonRequest):
    return compare_loans(
        loan_terms(comparison.loan_a),
        loan_terms(comparison.loan_b),
        comparison.start_date,
    )
