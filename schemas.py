from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class LoanRecord(BaseModel):
    amount: float = Field(ge=1, description="Loan amount (positive)")
    annual_interest_rate: float = Field(ge=0, description="Annual interest rate in percent")
    loan_term: int = Field(ge=1, description="Loan term in years")
    extra_payment: float = Field(default=0, ge=0, description="Extra principal paid every month")


class LoanCalculationRequest(LoanRecord):
    start_date: Optional[date] = None


class MortgageRecord(LoanCalculationRequest):
    property_tax: float = Field(default=0, ge=0, description="Annual property tax")
    home_insurance: float = Field(default=0, ge=0, description="Annual home insurance")
    hoa_dues: float = Field(default=0, ge=0, description="Monthly HOA dues")


class LoanComparisonRequest(BaseModel):
    loan_a: LoanRecord
    loan_b: LoanRecord
    start_date: Optional[date] = None


class MonthlyPayment(BaseModel):
    monthly_payment: float


class LoanSchedule(BaseModel):
    month: int
    interest: float
    principal: float
    extra_payment: float
    total_payment: float
    remaining_balance: float


class LoanSummary(BaseModel):
    current_principal_balance: float
    aggregate_principal_paid: float
    aggregate_interest_paid: float


class YearlyBreakdown(BaseModel):
    year: int
    principal: float
    interest: float


class LoanCalculation(BaseModel):
    monthly_payment: float
    total_monthly_payment: float
    total_interest: float
    total_payment: float
    number_of_payments: int
    payoff_date: str
    yearly_breakdown: List[YearlyBreakdown]
    original_total_interest: Optional[float] = None
    interest_saved: Optional[float] = None
    payoff_time_saved: Optional[str] = None


class MortgageCalculation(LoanCalculation):
    principal_and_interest: float
    property_tax: float
    home_insurance: float
    hoa_dues: float


class LoanComparison(BaseModel):
    loan_a: LoanCalculation
    loan_b: LoanCalculation
    monthly_payment_difference: float
    total_interest_difference: float
    lower_total_cost: Optional[Literal["loan_a", "loan_b"]] = None
