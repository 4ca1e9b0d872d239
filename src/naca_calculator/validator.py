"""Form input validation.

Turns the raw strings collected by a form (or the command line) into a
MortgageInput. Every field is checked, and every failure is reported in
field order rather than stopping at the first one:

1. price          > 0
2. term           integer, one of 15 / 20 / 30
3. rate           > 0, and one of the offered rates when a rate table is given
4. tax            >= 0
5. insurance      >= 0
6. hoa_fee        >= 0
7. principal_buydown  >= 0, optional (defaults to 0)
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from .calculator import MortgageInput
from .config import VALID_TERMS

_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_INTEGER_RE = re.compile(r"[+-]?\d+")

REQUIRED = "Required"


@dataclass(frozen=True)
class ValidationError:
    field: str
    message: str


@dataclass(frozen=True)
class ValidationResult:
    data: Optional[MortgageInput] = None
    errors: tuple[ValidationError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors


def _clean(value: Optional[str]) -> Optional[str]:
    """Return the stripped string, or None when the value is absent or blank."""
    if value is None:
        return None
    stripped = str(value).strip()
    return stripped or None


def parse_number(value: Optional[str]) -> Optional[float]:
    """Parse a plain decimal number; None if absent, ValueError if malformed."""
    text = _clean(value)
    if text is None:
        return None
    if not _NUMBER_RE.fullmatch(text):
        raise ValueError(f"not a number: {text!r}")
    number = float(text)
    if not math.isfinite(number):
        raise ValueError(f"not a finite number: {text!r}")
    return number


def _term_message() -> str:
    *head, last = (str(t) for t in VALID_TERMS)
    return f"Invalid term. Must be {', '.join(head)}, or {last}"


class _Collector:
    """Accumulates parsed values and field errors across all checks."""

    def __init__(self, raw: Mapping[str, Optional[str]]) -> None:
        self.raw = raw
        self.values: dict[str, float] = {}
        self.errors: list[ValidationError] = []

    def fail(self, field: str, message: str) -> None:
        self.errors.append(ValidationError(field, message))

    def number(
        self,
        field: str,
        *,
        positive: bool,
        nan_message: str = "Must be a number",
        sign_message: Optional[str] = None,
        default: Optional[float] = None,
    ) -> None:
        try:
            value = parse_number(self.raw.get(field))
        except ValueError:
            self.fail(field, nan_message)
            return
        if value is None:
            if default is None:
                self.fail(field, REQUIRED)
            else:
                self.values[field] = default
            return
        if positive and value <= 0:
            self.fail(field, sign_message or "Must be greater than 0")
        elif not positive and value < 0:
            self.fail(field, sign_message or "Must be non-negative")
        else:
            self.values[field] = value

    def term(self, field: str = "term") -> None:
        text = _clean(self.raw.get(field))
        if text is None:
            self.fail(field, REQUIRED)
            return
        if not _INTEGER_RE.fullmatch(text) or int(text) not in VALID_TERMS:
            self.fail(field, _term_message())
            return
        self.values[field] = int(text)


def validate(
    raw: Mapping[str, Optional[str]],
    allowable_rates: Optional[Mapping[int, Sequence[float]]] = None,
) -> ValidationResult:
    """Validate raw form values and return a ValidationResult.

    *allowable_rates* maps each term to the rates offered for it (see
    rates.rate_options()). When given, the rate must be one of them.
    """
    c = _Collector(raw)

    c.number("price", positive=True)
    c.term()
    c.number(
        "rate",
        positive=True,
        nan_message="Rate must be a number",
        sign_message="Rate must be greater than 0",
    )
    if allowable_rates is not None and "term" in c.values and "rate" in c.values:
        term = int(c.values["term"])
        offered = allowable_rates.get(term, ())
        if not any(math.isclose(c.values["rate"], r, abs_tol=1e-9) for r in offered):
            c.fail("rate", f"Invalid rate for {term}-year term")
            del c.values["rate"]
    c.number("tax", positive=False)
    c.number("insurance", positive=False)
    c.number("hoa_fee", positive=False)
    c.number("principal_buydown", positive=False, default=0.0)

    if c.errors:
        return ValidationResult(errors=tuple(c.errors))

    v = c.values
    return ValidationResult(
        data=MortgageInput(
            price=v["price"],
            term=int(v["term"]),
            rate=v["rate"],
            tax=v["tax"],
            insurance=v["insurance"],
            hoa_fee=v["hoa_fee"],
            principal_buydown=v["principal_buydown"],
        )
    )
