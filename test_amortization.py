import pytest

from amortization import (AmortizationError, amortize, balance_after,
                          compute_monthly_payment,
                          generate_amortization_schedule)
from models import LoanTerms

LOANS = [
    (100000, 6, 30),
    (250000, 3.75, 15),
    (5000, 0, 3),
    (10000, 5.5, 1),
    (1000, 24, 1),
]


def test_compute_monthly_payment():
    assert compute_monthly_payment(10000, 5.5, 1) == pytest.approx(858.37, abs=0.005)
    assert compute_monthly_payment(10000, 3, 1) == pytest.approx(846.94, abs=0.005)
    assert compute_monthly_payment(100000, 6, 30) == pytest.approx(599.55, abs=0.005)


def test_compute_monthly_payment_zero_interest():
    assert compute_monthly_payment(12000, 0, 1) == 1000
    assert compute_monthly_payment(5000, 0, 3) == 5000 / 36


@pytest.mark.parametrize(
    "principal, term_years", [(0, 30), (100000, 0), (-500, 5), (100000, -1)]
)
def test_invalid_terms_degrade_to_zero(principal, term_years):
    assert compute_monthly_payment(principal, 6, term_years) == 0

    schedule, monthly_payment = generate_amortization_schedule(principal, 6, term_years, 100)
    assert schedule == []
    assert monthly_payment == 0


def test_schedule_concrete_scenario():
    schedule, monthly_payment = generate_amortization_schedule(100000, 6, 30)

    assert monthly_payment == pytest.approx(599.55, abs=0.005)
    assert len(schedule) == 360

    first = schedule[0]
    assert first.month == 1
    assert first.interest_portion == pytest.approx(500.00)
    assert first.principal_portion == pytest.approx(99.55, abs=0.005)
    assert first.extra_payment == 0
    assert first.total_payment == monthly_payment
    assert first.remaining_balance == pytest.approx(99900.45, abs=0.005)

    assert schedule[-1].month == 360
    assert schedule[-1].remaining_balance == 0


@pytest.mark.parametrize("principal, annual_rate, term_years", LOANS)
def test_schedule_runs_full_term_without_extra(principal, annual_rate, term_years):
    schedule, _ = generate_amortization_schedule(principal, annual_rate, term_years)

    assert len(schedule) == term_years * 12
    assert [row.month for row in schedule] == list(range(1, term_years * 12 + 1))
    assert schedule[-1].remaining_balance == 0


@pytest.mark.parametrize("extra", [0, 50, 200, 5000])
@pytest.mark.parametrize("principal, annual_rate, term_years", LOANS)
def test_principal_is_conserved(principal, annual_rate, term_years, extra):
    schedule, _ = generate_amortization_schedule(principal, annual_rate, term_years, extra)

    total_principal = sum(row.principal_portion for row in schedule)
    assert total_principal == pytest.approx(principal, rel=1e-9)


@pytest.mark.parametrize("extra", [0, 200])
@pytest.mark.parametrize("principal, annual_rate, term_years", LOANS)
def test_balance_strictly_decreases(principal, annual_rate, term_years, extra):
    schedule, _ = generate_amortization_schedule(principal, annual_rate, term_years, extra)

    balances = [principal] + [row.remaining_balance for row in schedule]
    assert all(before > after for before, after in zip(balances, balances[1:]))
    assert all(row.interest_portion >= 0 for row in schedule)


def test_extra_payment_shortens_schedule():
    lengths = [
        len(generate_amortization_schedule(100000, 6, 30, extra)[0])
        for extra in [0, 100, 500, 2000]
    ]

    assert lengths[0] == 360
    assert lengths == sorted(lengths, reverse=True)
    assert len(set(lengths)) == len(lengths)


def test_extra_payment_final_row_clears_balance():
    schedule, monthly_payment = generate_amortization_schedule(100000, 6, 30, 200)

    assert len(schedule) == 197

    first = schedule[0]
    assert first.extra_payment == 200
    assert first.principal_portion == pytest.approx(299.55, abs=0.005)
    assert first.total_payment == monthly_payment + 200

    last, previous = schedule[-1], schedule[-2]
    assert last.remaining_balance == 0
    assert 0 < last.extra_payment < 200
    assert last.extra_payment == pytest.approx(
        last.principal_portion - (monthly_payment - last.interest_portion)
    )
    assert last.principal_portion == previous.remaining_balance
    assert last.total_payment == previous.remaining_balance + last.interest_portion
    assert last.total_payment < monthly_payment + 200


def test_zero_interest_schedule():
    schedule, monthly_payment = generate_amortization_schedule(12000, 0, 2)

    assert monthly_payment == 500
    assert len(schedule) == 24
    assert all(row.interest_portion == 0 for row in schedule)
    assert all(row.principal_portion == pytest.approx(500) for row in schedule)
    assert schedule[11].remaining_balance == pytest.approx(6000)


def test_schedule_is_deterministic():
    terms = LoanTerms(principal=250000, annual_rate_percent=4.25, term_years=20,
                      extra_monthly_payment=150)

    assert amortize(terms) == amortize(terms)
    assert amortize(terms) == generate_amortization_schedule(250000, 4.25, 20, 150)


def test_non_amortizing_payment_hits_safety_cap():
    # a negative extra payment outweighs the fixed payment, so the balance grows
    with pytest.raises(AmortizationError, match="120 months"):
        generate_amortization_schedule(1000, 6, 1, extra_monthly_payment=-1000)


def test_extra_payments_add_up_to_prepaid_principal():
    schedule, monthly_payment = generate_amortization_schedule(100000, 6, 30, 200)

    scheduled_principal = sum(monthly_payment - row.interest_portion for row in schedule[:-1])
    assert scheduled_principal + sum(row.extra_payment for row in schedule[:-1]) == pytest.approx(
        100000 - schedule[-1].principal_portion
    )
    assert schedule[-1].extra_payment == pytest.approx(75.37, abs=0.01)


def test_final_row_without_extra_records_no_extra_payment():
    schedule, _ = generate_amortization_schedule(100000, 6, 30)

    assert all(row.extra_payment == 0 for row in schedule)


def test_long_high_rate_loan():
    monthly_payment = compute_monthly_payment(100000, 100, 1000)
    assert monthly_payment == pytest.approx(100000 * 100 / 1200)

    schedule, monthly_payment = generate_amortization_schedule(100000, 100, 1000)

    assert len(schedule) == 12000
    assert schedule[0].interest_portion == pytest.approx(monthly_payment)
    assert schedule[-1].remaining_balance == 0
    balances = [100000] + [row.remaining_balance for row in schedule]
    assert all(before >= after for before, after in zip(balances, balances[1:]))
    assert all(row.principal_portion >= 0 for row in schedule)
    assert sum(row.principal_portion for row in schedule) == pytest.approx(100000, rel=1e-9)


def test_long_high_rate_loan_with_extra_payment():
    schedule, _ = generate_amortization_schedule(100000, 100, 1000, 50)

    assert 1 < len(schedule) < 12000
    assert schedule[-1].remaining_balance == 0
    assert sum(row.principal_portion for row in schedule) == pytest.approx(100000, rel=1e-9)


@pytest.mark.parametrize("annual_rate", [1e-15, 1e-9])
def test_tiny_rate_runs_full_term(annual_rate):
    assert compute_monthly_payment(100000, annual_rate, 30) == pytest.approx(100000 / 360)

    schedule, _ = generate_amortization_schedule(100000, annual_rate, 30)

    assert len(schedule) == 360
    assert schedule[-1].remaining_balance == 0
    assert sum(row.principal_portion for row in schedule) == pytest.approx(100000, rel=1e-9)


def test_balance_after_matches_month_by_month_balance():
    monthly_payment = compute_monthly_payment(250000, 4.25, 20)
    monthly_rate = 4.25 / 12 / 100

    balance = 250000.0
    for month in range(1, 61):
        balance = balance * (1 + monthly_rate) - monthly_payment - 150
        assert balance_after(month, 250000, monthly_rate, 240, 150) == pytest.approx(balance)
