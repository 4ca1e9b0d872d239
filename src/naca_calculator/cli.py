"""Command-line front end — click commands rendering results with rich.

Plays the part of the calculator form: values are handed to the mortgage
service as raw strings, exactly as a form would collect them, so the CLI
gets the same validation messages a form would show.
"""
from __future__ import annotations

import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich import box

from .calculator import RawResult
from .config import (
    CALC_METHODS,
    DEFAULT_CALC_METHOD,
    DEFAULT_HOA_FEE,
    DEFAULT_INSURANCE,
    DEFAULT_TAX_RATE,
    DEFAULT_TERM,
    MAX_RATE_BUYDOWN,
    VALID_TERMS,
)
from .rates import RateOptions, RateStore, fetch_rates, scrape_naca_rates
from .service import calculate_interest_rate_buydown, calculate_mortgage, format_currency
from .validator import ValidationError

console = Console()
err_console = Console(stderr=True, style="bold red")

_FIELD_LABELS = {
    "price": "Price/Payment",
    "term": "Loan Term",
    "rate": "Interest Rate",
    "tax": "Property Tax",
    "insurance": "Insurance",
    "hoa_fee": "HOA/Condo Fee",
    "principal_buydown": "Principal Buydown",
}

# ──────────────────────────────────────────────────────────────────────────────
# Display
# ──────────────────────────────────────────────────────────────────────────────

def display_errors(errors: tuple[ValidationError, ...]) -> None:
    t = Table(title="Invalid input", box=box.SIMPLE, show_header=True, padding=(0, 2))
    t.add_column("Field", style="cyan")
    t.add_column("Problem", style="red")
    for error in errors:
        t.add_row(_FIELD_LABELS.get(error.field, error.field), error.message)
    console.print(t)


def display_result(result: RawResult, method: str) -> None:
    headline = (
        "Affordable purchase price" if method == "payment" else "Monthly payment"
    )
    console.print()
    console.print(Panel(f"[bold green]{headline}[/bold green] — {method} mode", expand=False))

    t = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    t.add_column("Field", style="cyan")
    t.add_column("Value", justify="right")

    t.add_row("Monthly payment", format_currency(result.monthly_payment))
    t.add_row("Purchase price", format_currency(result.purchase_price))
    t.add_row("  └ Principal & interest", format_currency(result.principal_interest))
    t.add_row("  └ Taxes", format_currency(result.taxes))
    t.add_row("  └ Insurance", format_currency(result.insurance))
    t.add_row("  └ HOA/Condo fee", format_currency(result.hoa_fee))
    console.print(t)


def display_buydown(principal: float, rate: float, desired_rate: float, term: int) -> None:
    cost = calculate_interest_rate_buydown(principal, rate, desired_rate, term)
    min_rate = max(0.0, rate - MAX_RATE_BUYDOWN)
    label = f"{max(desired_rate, min_rate):.3f}%"
    if desired_rate < min_rate:
        label += f" ({MAX_RATE_BUYDOWN}% cap reached)"
    console.print(f"Rate buydown {rate}% → {label}: [bold]{format_currency(cost)}[/bold]")


def display_rates(options: RateOptions, fallback: bool) -> None:
    title = "NACA Rates (defaults, fetch failed)" if fallback else "NACA Rates"
    t = Table(title=title, box=box.SIMPLE, show_header=True, padding=(0, 2))
    t.add_column("Term", style="cyan")
    t.add_column("Rate options", justify="right")
    for term in sorted(options):
        t.add_row(f"{term} years", " / ".join(f"{r:g}%" for r in options[term]))
    console.print(t)


# ──────────────────────────────────────────────────────────────────────────────
# Click entry points
# ──────────────────────────────────────────────────────────────────────────────

@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
def main(verbose: bool) -> None:
    """NACA mortgage payment / affordability calculator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _default_rate(options: RateOptions, term: str) -> Optional[str]:
    """The form default: the higher of the two options offered for *term*."""
    try:
        term_value = int(term)
    except ValueError:
        return None
    offered = options.get(term_value)
    if not offered:
        return None
    return f"{offered[-1]:g}"


@main.command()
@click.option("--mode", type=click.Choice(sorted(CALC_METHODS)), default=DEFAULT_CALC_METHOD,
              show_default=True, help="payment: solve for price; price: solve for payment")
@click.option("--price", type=str, prompt="Desired monthly payment or purchase price",
              help="Desired monthly payment (payment mode) or purchase price (price mode)")
@click.option("--term", type=str, default=str(DEFAULT_TERM), show_default=True,
              help=f"Loan term in years ({', '.join(str(t) for t in VALID_TERMS)})")
@click.option("--rate", type=str, default=None,
              help="Annual interest rate in percent. Prompted for when omitted, "
                   "defaulting to the current NACA rate.")
@click.option("--tax", type=str, default=DEFAULT_TAX_RATE, show_default=True,
              help="Property tax per $1000 of value, annually")
@click.option("--insurance", type=str, default=DEFAULT_INSURANCE, show_default=True,
              help="Monthly insurance")
@click.option("--hoa-fee", type=str, default=DEFAULT_HOA_FEE, show_default=True,
              help="Monthly HOA/condo fee")
@click.option("--buydown", type=str, default=None, help="Principal buydown amount")
@click.option("--desired-rate", type=float, default=None,
              help="Also price an interest-rate buydown to this rate")
@click.option("--check-rates/--no-check-rates", default=False, show_default=True,
              help="Only accept the rates NACA currently offers")
def calculate(
    mode: str,
    price: str,
    term: str,
    rate: Optional[str],
    tax: str,
    insurance: str,
    hoa_fee: str,
    buydown: Optional[str],
    desired_rate: Optional[float],
    check_rates: bool,
) -> None:
    """Calculate a purchase price or a monthly payment breakdown."""
    options: Optional[RateOptions] = None
    if rate is None or check_rates:
        store = RateStore()
        options = store.get()
        if store.last_fetch_failed:
            err_console.print("Could not fetch current rates; using defaults.")

    if rate is None:
        rate = click.prompt(
            f"Annual interest rate for a {term}-year term (%)",
            default=_default_rate(options, term),
            type=str,
        )

    raw = {
        "price": price,
        "term": term,
        "rate": rate,
        "tax": tax,
        "insurance": insurance,
        "hoa_fee": hoa_fee,
        "principal_buydown": buydown,
    }
    allowable = options if check_rates else None
    outcome = calculate_mortgage(raw, mode, allowable)  # type: ignore[arg-type]
    if not outcome.ok:
        display_errors(outcome.errors)
        sys.exit(1)

    result = outcome.data
    display_result(result, mode)

    if desired_rate is not None:
        display_buydown(result.purchase_price, float(rate), desired_rate, int(term))


@main.command()
@click.argument("principal", type=float)
@click.argument("rate", type=float)
@click.argument("desired_rate", type=float)
@click.argument("term", type=int)
def buydown(principal: float, rate: float, desired_rate: float, term: int) -> None:
    """Cost of buying RATE down to DESIRED_RATE on PRINCIPAL with points."""
    display_buydown(principal, rate, desired_rate, term)


_RATE_SOURCES = {
    "api": fetch_rates,
    "naca": scrape_naca_rates,
}


@main.command()
@click.option("--source", type=click.Choice(sorted(_RATE_SOURCES)), default="api", show_default=True,
              help="api: the stored rates service; naca: scrape the NACA calculator page")
def rates(source: str) -> None:
    """Show the rates NACA currently offers."""
    store = RateStore(_RATE_SOURCES[source])
    options = store.get()
    if store.last_fetch_failed:
        err_console.print("Could not fetch current rates; showing defaults.")
    display_rates(options, store.last_fetch_failed)
