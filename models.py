from dataclasses import dataclass


@dataclass(frozen=True)
class LoanTerms:
    principal: float
    annual_rate_percent: float
    term_years: float
    extra_monthly_payment: float = 0.0


@dataclass(frozen=True)
class AmortizationRow:
    month: int
    interest_portion: float
    principal_portion: float
    extra_payment: float
    total_payment: float
    remaining_balance: float
