"""Application-wide constants and configuration defaults.

All tuneable defaults live here so there is a single place to adjust them.
"""
from __future__ import annotations

import os
from typing import Literal

# ── Type aliases ──────────────────────────────────────────────────────────────

CalcMethod = Literal["payment", "price"]

CALC_METHODS: frozenset[str] = frozenset({"payment", "price"})
DEFAULT_CALC_METHOD: CalcMethod = "payment"

# ── Loan program ──────────────────────────────────────────────────────────────

VALID_TERMS: tuple[int, ...] = (15, 20, 30)
DEFAULT_TERM: int = 30

# ── Affordability search (bisection) ─────────────────────────────────────────

PAYMENT_TOLERANCE: float = 0.01
MAX_SEARCH_ITERATIONS: int = 1000

# ── Interest-rate buydown ─────────────────────────────────────────────────────

MAX_RATE_BUYDOWN: float = 1.5           # percentage points
POINTS_PER_PERCENT_15_YEAR: int = 4     # 1 point buys 1/4%
POINTS_PER_PERCENT_OTHER: int = 6       # 1 point buys 1/6%

# ── Form defaults ─────────────────────────────────────────────────────────────

DEFAULT_TAX_RATE: str = "15"      # per $1000 of value, annually
DEFAULT_INSURANCE: str = "50"     # monthly
DEFAULT_HOA_FEE: str = "0"        # monthly

# ── Published rates ───────────────────────────────────────────────────────────

RATES_API_URL: str = os.environ.get(
    "NACA_RATES_API_URL",
    "https://naca-mortgage-calc-extension-production.up.railway.app",
)
NACA_CALCULATOR_URL: str = os.environ.get(
    "NACA_CALCULATOR_URL",
    "https://www.naca.com/mortgage-calculator/",
)
HTTP_TIMEOUT: int = 10  # seconds

RATE_CACHE_EXPIRY_SECONDS: int = 24 * 60 * 60

# Offered when the published rates cannot be fetched: term -> (low, high)
DEFAULT_RATE_OPTIONS: dict[int, tuple[float, float]] = {
    15: (5.0, 6.0),
    20: (5.5, 6.5),
    30: (6.0, 7.0),
}
