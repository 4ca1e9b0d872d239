"""Published NACA rate fetcher and session cache.

Two sources:
- the rates JSON API (latest stored row: thirty/twenty/fifteen year rates);
- the NACA calculator page itself, whose fillRate() script embeds the rates.

All fetches are user-triggered; RateStore keeps the result for 24 hours.
"""
from __future__ import annotations

import logging
import math
import re
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

import requests

from .config import (
    DEFAULT_RATE_OPTIONS,
    HTTP_TIMEOUT,
    NACA_CALCULATOR_URL,
    RATE_CACHE_EXPIRY_SECONDS,
    RATES_API_URL,
)

logger = logging.getLogger(__name__)

# fillRate() { var thirtyYearRate = "6.125%"; var twentyYearRate = "..."; var fifteenYearRate = "..."; }
_FILL_RATE_RE = re.compile(
    r'function\s+fillRate\s*\(\)\s*\{\s*'
    r'var\s+thirtyYearRate\s*=\s*"([^"]+)";\s*'
    r'var\s+twentyYearRate\s*=\s*"([^"]+)";\s*'
    r'var\s+fifteenYearRate\s*=\s*"([^"]+)";'
)

_RATE_FIELDS = ("thirty_year_rate", "twenty_year_rate", "fifteen_year_rate")

RateOptions = dict[int, tuple[float, float]]


class FetchError(Exception):
    """Raised when an online rate fetch fails for any reason."""


class RateDecodeError(FetchError):
    """Raised when a rate payload is missing a field or holds a non-number."""


@dataclass(frozen=True)
class MortgageRates:
    thirty_year_rate: float
    twenty_year_rate: float
    fifteen_year_rate: float
    created_at: Optional[datetime] = None

    def for_term(self, term: int) -> float:
        return {
            30: self.thirty_year_rate,
            20: self.twenty_year_rate,
            15: self.fifteen_year_rate,
        }[term]


def _decode_rate(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise RateDecodeError(f"{name} must be a number, got {value!r}")
    if isinstance(value, (int, float)):
        rate = float(value)
    elif isinstance(value, str):
        try:
            rate = float(value.strip().rstrip("%"))
        except ValueError as exc:
            raise RateDecodeError(f"{name} is not numeric: {value!r}") from exc
    else:
        raise RateDecodeError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(rate):
        raise RateDecodeError(f"{name} is not finite: {value!r}")
    return rate


def decode_rates(payload: Mapping[str, Any]) -> MortgageRates:
    """Decode a rates row; rate values may be numbers or numeric strings."""
    try:
        values = {name: _decode_rate(name, payload[name]) for name in _RATE_FIELDS}
    except KeyError as exc:
        raise RateDecodeError(f"Missing rate field {exc.args[0]!r}") from exc
    except TypeError as exc:
        raise RateDecodeError(f"Rate payload is not a mapping: {payload!r}") from exc

    created_at = payload.get("created_at")
    if created_at is not None and not isinstance(created_at, datetime):
        try:
            created_at = datetime.fromisoformat(str(created_at).replace("Z", "+00:00"))
        except ValueError as exc:
            raise RateDecodeError(f"Invalid created_at: {created_at!r}") from exc

    return MortgageRates(created_at=created_at, **values)


def parse_naca_page(html: str) -> MortgageRates:
    """Extract the rates embedded in the NACA calculator page."""
    match = _FILL_RATE_RE.search(html)
    if match is None:
        raise FetchError("Could not parse rates from NACA page.")
    thirty, twenty, fifteen = match.groups()
    return decode_rates({
        "thirty_year_rate": thirty,
        "twenty_year_rate": twenty,
        "fifteen_year_rate": fifteen,
    })


def fetch_rates(api_url: Optional[str] = None) -> MortgageRates:
    """Fetch the latest stored rates from the rates API.

    Raises FetchError on any error (network, HTTP status, parsing).
    """
    url = f"{(api_url or RATES_API_URL).rstrip('/')}/api/rates"
    logger.info("Fetching mortgage rates from %s", url)
    try:
        resp = requests.get(url, headers={"Content-Type": "application/json"}, timeout=HTTP_TIMEOUT)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise FetchError(f"Rates API request failed: {exc}") from exc

    try:
        data = resp.json()
    except ValueError as exc:
        raise RateDecodeError(f"Rates API returned invalid JSON: {exc}") from exc
    if not data:
        raise FetchError("Rates API returned no data.")
    return decode_rates(data)


def scrape_naca_rates(url: Optional[str] = None) -> MortgageRates:
    """Scrape the current rates from the NACA calculator page."""
    page_url = url or NACA_CALCULATOR_URL
    logger.info("Scraping rates from %s", page_url)
    try:
        resp = requests.get(page_url, timeout=HTTP_TIMEOUT)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise FetchError(f"Failed to fetch NACA page: {exc}") from exc

    rates = parse_naca_page(resp.text)
    logger.info("Scraped rates: %s", rates)
    return rates


def rate_options(rates: MortgageRates) -> RateOptions:
    """Rates offered per term: the published rate and the published rate + 1.

    The second, higher option is the form's default.
    """
    return {
        term: (rates.for_term(term), rates.for_term(term) + 1)
        for term in (15, 20, 30)
    }


class RateStore:
    """Session cache of rate options, refreshed at most once a day.

    A failed fetch is logged and answered with DEFAULT_RATE_OPTIONS, which
    are never cached so the next call retries.
    """

    def __init__(
        self,
        fetcher: Callable[[], MortgageRates] = fetch_rates,
        expiry_seconds: float = RATE_CACHE_EXPIRY_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._fetcher = fetcher
        self._expiry = expiry_seconds
        self._clock = clock
        self._options: Optional[RateOptions] = None
        self._timestamp: float = 0.0
        self.last_fetch_failed = False

    def is_fresh(self) -> bool:
        return self._options is not None and self._clock() - self._timestamp < self._expiry

    def get(self) -> RateOptions:
        if self.is_fresh():
            logger.debug("Using cached mortgage rates")
            return dict(self._options)

        try:
            rates = self._fetcher()
        except FetchError as exc:
            logger.warning("Failed to fetch mortgage rates, using defaults: %s", exc)
            self.last_fetch_failed = True
            return dict(DEFAULT_RATE_OPTIONS)

        self.last_fetch_failed = False
        self._options = rate_options(rates)
        self._timestamp = self._clock()
        return dict(self._options)

    def clear(self) -> None:
        self._options = None
        self._timestamp = 0.0
