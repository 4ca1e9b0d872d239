"""Core mortgage calculation functions.

All amounts are plain floats in dollars; rates are annual percentages
(6.125 means 6.125%). Every function here is pure: the calculation mode is
an explicit argument, never stored state.

Rounding: monthly property tax is rounded to whole dollars, half away from
zero. Nothing else is rounded; formatting is left to format_currency().
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext

from .config import (
    MAX_RATE_BUYDOWN,
    MAX_SEARCH_ITERATIONS,
    PAYMENT_TOLERANCE,
    POINTS_PER_PERCENT_15_YEAR,
    POINTS_PER_PERCENT_OTHER,
    CalcMethod,
)

_WHOLE = Decimal("1")
# Enough digits to quantize any finite float (max ~1.8e308) to a whole number.
_ROUNDING_PRECISION = 400


@dataclass(frozen=True)
class MortgageInput:
    """Validated calculator input.

    ``price`` is the desired monthly payment in ``payment`` mode and the
    purchase price in ``price`` mode.
    """
    price: float
    term: int
    rate: float
    tax: float                 # annual, per $1000 of value
    insurance: float           # monthly
    hoa_fee: float             # monthly
    principal_buydown: float = 0.0


@dataclass(frozen=True)
class FormattedResult:
    monthly_payment: str
    purchase_price: str
    principal_interest: str
    taxes: str
    insurance: str
    hoa_fee: str


@dataclass(frozen=True)
class RawResult:
    monthly_payment: float
    purchase_price: float
    principal_interest: float
    taxes: float
    insurance: float
    hoa_fee: float

    def formatted(self, decimals: int = 2) -> FormattedResult:
        return FormattedResult(
            monthly_payment=format_currency(self.monthly_payment, decimals),
            purchase_price=format_currency(self.purchase_price, decimals),
            principal_interest=format_currency(self.principal_interest, decimals),
            taxes=format_currency(self.taxes, decimals),
            insurance=format_currency(self.insurance, decimals),
            hoa_fee=format_currency(self.hoa_fee, decimals),
        )


def format_currency(value: float, decimals: int = 2) -> str:
    """Render *value* as ``$1,234.56``; empty string for NaN or infinity."""
    if not math.isfinite(value):
        return ""
    return f"${value:,.{decimals}f}"


def base_monthly_payment(principal: float, rate: float, term: int) -> float:
    """Return the principal + interest payment of an amortizing loan.

        payment = P * r * (1 + r)^n / ((1 + r)^n - 1)

    with r = rate / 100 / 12 and n = term * 12. A zero rate is not
    special-cased and raises ZeroDivisionError, as does any rate so small
    (1e-20, say) that (1 + r)^n rounds to exactly 1.
    """
    monthly_rate = rate / 100 / 12
    n = term * 12
    factor = (1 + monthly_rate) ** n
    return principal * monthly_rate * factor / (factor - 1)


def monthly_tax(price: float, tax_rate: float) -> float:
    """Monthly property tax for a yearly *tax_rate* per $1000 of *price*."""
    monthly = price * (tax_rate / 1000) / 12
    if not math.isfinite(monthly):
        return monthly
    with localcontext() as ctx:
        ctx.prec = _ROUNDING_PRECISION
        return float(Decimal(monthly).quantize(_WHOLE, rounding=ROUND_HALF_UP))


def total_monthly_payment(
    purchase_price: float,
    rate: float,
    term: int,
    tax_rate: float,
    insurance: float,
    hoa_fee: float,
    principal_buydown: float = 0.0,
) -> float:
    loan_amount = max(purchase_price - principal_buydown, 0.0)
    return (
        base_monthly_payment(loan_amount, rate, term)
        + monthly_tax(purchase_price, tax_rate)
        + insurance
        + hoa_fee
    )


def max_purchase_price(
    desired_monthly_payment: float,
    rate: float,
    term: int,
    tax_rate: float,
    insurance: float,
    hoa_fee: float,
    principal_buydown: float = 0.0,
) -> float:
    """Return the purchase price whose total monthly payment matches the desired one.

    Bisection over [0, 2 * desired * term * 12]. The total payment grows
    with the price, so the interval halves towards the answer until the
    payment is within PAYMENT_TOLERANCE or MAX_SEARCH_ITERATIONS is reached.
    The last midpoint is returned either way.
    """
    low = 0.0
    high = desired_monthly_payment * term * 12 * 2
    guess = 0.0
    total = 0.0
    iterations = 0

    while iterations < MAX_SEARCH_ITERATIONS and abs(total - desired_monthly_payment) > PAYMENT_TOLERANCE:
        guess = (low + high) / 2
        total = total_monthly_payment(
            guess, rate, term, tax_rate, insurance, hoa_fee, principal_buydown
        )
        if total > desired_monthly_payment:
            high = guess
        else:
            low = guess
        iterations += 1

    return guess


def _is_finite(value) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


def interest_rate_buydown(
    principal: float,
    rate: float,
    desired_rate: float,
    term: int,
) -> float:
    """Cost of buying the rate down from *rate* to *desired_rate* with points.

    One point costs 1% of the principal and buys 1/4% on a 15-year term,
    1/6% otherwise. The reduction is capped at MAX_RATE_BUYDOWN points of
    rate. Invalid input yields 0 rather than an error.
    """
    if not all(_is_finite(v) for v in (principal, rate, desired_rate, term)):
        return 0.0
    if principal <= 0 or term <= 0:
        return 0.0

    effective_desired_rate = max(desired_rate, rate - MAX_RATE_BUYDOWN)
    rate_difference = rate - effective_desired_rate
    if rate_difference <= 0:
        return 0.0

    if term == 15:
        points_multiplier = POINTS_PER_PERCENT_15_YEAR
    else:
        points_multiplier = POINTS_PER_PERCENT_OTHER

    points_needed = rate_difference * points_multiplier
    return points_needed * principal / 100


def calculate_raw(inputs: MortgageInput, method: CalcMethod) -> RawResult:
    """Compute the payment breakdown for *inputs* under *method*.

    ``payment``: solve for the purchase price the desired payment affords;
    the desired payment is echoed back as monthly_payment.
    ``price``: monthly_payment is the sum of the components.

    Property tax is always assessed on the full purchase price.
    """
    if method == "payment":
        purchase_price = max_purchase_price(
            inputs.price,
            inputs.rate,
            inputs.term,
            inputs.tax,
            inputs.insurance,
            inputs.hoa_fee,
            inputs.principal_buydown,
        )
    elif method == "price":
        purchase_price = inputs.price
    else:
        raise ValueError(f"Unknown calculation method '{method}'. Valid values: payment, price")

    principal = purchase_price - inputs.principal_buydown
    principal_interest = base_monthly_payment(max(principal, 0.0), inputs.rate, inputs.term)
    taxes = monthly_tax(purchase_price, inputs.tax)

    if method == "payment":
        payment = inputs.price
    else:
        payment = principal_interest + taxes + inputs.insurance + inputs.hoa_fee

    return RawResult(
        monthly_payment=payment,
        purchase_price=purchase_price,
        principal_interest=principal_interest,
        taxes=taxes,
        insurance=inputs.insurance,
        hoa_fee=inputs.hoa_fee,
    )


def calculate(inputs: MortgageInput, method: CalcMethod) -> FormattedResult:
    """Same as calculate_raw() with every amount rendered as currency."""
    return calculate_raw(inputs, method).formatted()
