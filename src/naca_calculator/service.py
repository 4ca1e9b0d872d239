"""Mortgage service: the single entry point callers use.

Validation and calculation stay independent; they only meet here.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from .calculator import (
    MortgageInput,
    RawResult,
    calculate_raw,
    format_currency,
    interest_rate_buydown,
)
from .config import CalcMethod
from .validator import ValidationError, ValidationResult, validate

__all__ = [
    "CalculationResult",
    "calculate_interest_rate_buydown",
    "calculate_mortgage",
    "format_currency",
    "recalculate_mortgage",
    "validate",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalculationResult:
    data: Optional[RawResult] = None
    errors: tuple[ValidationError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors


def calculate_mortgage(
    raw: Mapping[str, Optional[str]],
    method: CalcMethod,
    allowable_rates: Optional[Mapping[int, Sequence[float]]] = None,
) -> CalculationResult:
    """Validate raw form values, then calculate.

    Validation errors come back unchanged in the result; nothing is raised
    for bad input.
    """
    validation: ValidationResult = validate(raw, allowable_rates)
    if not validation.ok:
        logger.debug(
            "Validation failed for %s",
            ", ".join(e.field for e in validation.errors),
        )
        return CalculationResult(errors=validation.errors)

    result = calculate_raw(validation.data, method)
    logger.debug("Calculated %s mode: %s", method, result)
    return CalculationResult(data=result)


def recalculate_mortgage(inputs: MortgageInput, method: CalcMethod) -> RawResult:
    """Recalculate already-validated inputs, e.g. after a slider moves."""
    return calculate_raw(inputs, method)


def calculate_interest_rate_buydown(
    principal: float,
    rate: float,
    desired_rate: float,
    term: int,
) -> float:
    return interest_rate_buydown(principal, rate, desired_rate, term)
