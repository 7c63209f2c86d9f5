"""
Exchange rates for displaying projections in other currencies.

Rates are kept as one process-owned snapshot of "units of currency per one
base unit" (base is ILS). A snapshot is fresh for a configurable TTL; the
next access after that triggers a single refresh. A refresh that fails or
times out installs the static fallback table instead of raising.
The projection math never depends on this module; it only needs the
synchronous `ExchangeRateSnapshot.get_rate` port.
"""

import asyncio
import enum
import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Optional

import httpx
from babel.core import Locale, UnknownLocaleError
from babel.numbers import format_decimal

from config import CURRENCY
from errors import RateFetchError, ValidationError

logger = logging.getLogger(__name__)

CRYPTO = ("BTC", "ETH")

RateFetcher = Callable[[], Awaitable[Dict[str, float]]]


class CacheState(enum.Enum):
    EMPTY = "empty"
    VALID = "valid"
    STALE = "stale"


@dataclass(frozen=True)
class ExchangeRateSnapshot:
    rates: Dict[str, float]
    last_updated: datetime
    is_fallback: bool = False
    base: str = CURRENCY["base"]

    def rate_for(self, currency: str) -> float:
        rate = self.rates.get(currency)
        if not rate or rate <= 0 or not math.isfinite(rate):
            raise ValidationError(f"No usable exchange rate for {currency}")
        return rate

    def get_rate(self, from_currency: str, to_currency: str) -> float:
        """Multiplier converting an amount in `from_currency` into `to_currency`."""
        if from_currency == to_currency:
            return 1.0
        if from_currency == self.base:
            return self.rate_for(to_currency)
        if to_currency == self.base:
            return 1 / self.rate_for(from_currency)
        return self.rate_for(to_currency) / self.rate_for(from_currency)


@dataclass
class Conversion:
    original_amount: float
    converted_amount: float
    from_currency: str
    to_currency: str
    rate: float
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _within_bounds(currency: str, rate: float, boundaries: Dict[str, tuple]) -> bool:
    if not rate or rate <= 0 or not math.isfinite(rate):
        return False
    bounds = boundaries.get(currency)
    if bounds is None:
        return True
    price = 1 / rate
    return bounds[0] <= price <= bounds[1]


def _parse_fiat(data: dict) -> Dict[str, float]:
    rates = data["rates"]
    return {c: float(rates[c]) for c in ("USD", "EUR", "GBP") if c in rates}


def _parse_crypto(data: dict) -> Dict[str, float]:
    out = {}
    for currency, coin in (("BTC", "bitcoin"), ("ETH", "ethereum")):
        price = float(data[coin]["ils"])
        if price > 0:
            out[currency] = 1 / price
    return out


class HttpRateFetcher:
    """Fetches live rates from the configured JSON endpoints with httpx."""

    PARSERS = {"fiat": _parse_fiat, "crypto": _parse_crypto}

    def __init__(self, endpoints: Optional[Dict[str, str]] = None,
                 timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 boundaries: Optional[Dict[str, tuple]] = None) -> None:
        self.endpoints = endpoints or CURRENCY["endpoints"]
        self.timeout = CURRENCY["timeout_seconds"] if timeout is None else timeout
        self.transport = transport
        self.boundaries = CURRENCY["price_boundaries"] if boundaries is None else boundaries

    async def __call__(self) -> Dict[str, float]:
        rates: Dict[str, float] = {}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport,
                                     headers={"Accept": "application/json"}) as client:
            for name, url in self.endpoints.items():
                try:
                    resp = await client.get(url)
                    resp.raise_for_status()
                    parsed = self.PARSERS[name](resp.json())
                except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
                    logger.warning("Rate endpoint %s failed: %s", name, e)
                    continue
                for currency, rate in parsed.items():
                    if _within_bounds(currency, rate, self.boundaries):
                        rates[currency] = rate
                    else:
                        logger.warning("Discarding out-of-range %s rate %s from %s", currency, rate, name)
                logger.debug("Fetched %s from %s", sorted(parsed), name)

        if not rates:
            raise RateFetchError("No endpoint returned usable rates")
        return rates


class CurrencyConversionCache:
    """
    Owns the single live exchange-rate snapshot.

    Refreshes are single-flight: concurrent callers that find the snapshot
    empty or stale wait on one refresh instead of starting their own.
    """

    def __init__(self, fetcher: Optional[RateFetcher] = None,
                 ttl_seconds: Optional[float] = None,
                 timeout: Optional[float] = None,
                 fallback_rates: Optional[Dict[str, float]] = None,
                 live: Optional[bool] = None,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self.base = CURRENCY["base"]
        self.supported = set(CURRENCY["supported"])
        self.ttl = CURRENCY["ttl_seconds"] if ttl_seconds is None else ttl_seconds
        self.timeout = CURRENCY["timeout_seconds"] if timeout is None else timeout
        self.fallback_rates = dict(fallback_rates or CURRENCY["fallback_rates"])
        live = CURRENCY["live_rates"] if live is None else live
        if fetcher is None and live:
            fetcher = HttpRateFetcher(timeout=self.timeout)
        self._fetcher = fetcher if live else None
        self._clock = clock
        self._snapshot: Optional[ExchangeRateSnapshot] = None
        self._fetched_at: Optional[float] = None
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None
        self.refresh_count = 0
        self.last_error: Optional[str] = None

    @property
    def snapshot(self) -> Optional[ExchangeRateSnapshot]:
        return self._snapshot

    @property
    def state(self) -> CacheState:
        if self._snapshot is None:
            return CacheState.EMPTY
        if self._clock() - self._fetched_at < self.ttl:
            return CacheState.VALID
        return CacheState.STALE

    def _refresh_lock(self) -> asyncio.Lock:
        # asyncio locks belong to one event loop; a cache shared across
        # asyncio.run calls needs a fresh lock per loop
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    def _fallback_snapshot(self) -> ExchangeRateSnapshot:
        return ExchangeRateSnapshot(dict(self.fallback_rates), datetime.now(timezone.utc),
                                    is_fallback=True, base=self.base)

    async def _refresh(self) -> None:
        self.refresh_count += 1
        if self._fetcher is None:
            snapshot = self._fallback_snapshot()
        else:
            try:
                live = await asyncio.wait_for(self._fetcher(), timeout=self.timeout)
            except Exception as e:
                self.last_error = str(e) or e.__class__.__name__
                logger.warning("Exchange rate refresh failed, using fallback rates: %s", self.last_error)
                snapshot = self._fallback_snapshot()
            else:
                self.last_error = None
                rates = dict(self.fallback_rates)
                rates.update(live)
                snapshot = ExchangeRateSnapshot(rates, datetime.now(timezone.utc),
                                                is_fallback=False, base=self.base)
        self._snapshot = snapshot
        self._fetched_at = self._clock()
        logger.info("Exchange rates refreshed (fallback=%s)", snapshot.is_fallback)

    async def current_snapshot(self) -> ExchangeRateSnapshot:
        if self.state is not CacheState.VALID:
            async with self._refresh_lock():
                if self.state is not CacheState.VALID:
                    await self._refresh()
        return self._snapshot

    async def fetch_exchange_rates(self) -> Dict[str, float]:
        snapshot = await self.current_snapshot()
        return dict(snapshot.rates)

    async def force_refresh(self) -> Dict[str, float]:
        async with self._refresh_lock():
            await self._refresh()
        return dict(self._snapshot.rates)

    def _check_currency(self, currency: str) -> str:
        code = (currency or "").upper()
        if code not in self.supported:
            raise ValidationError(f"Unsupported currency: {currency!r}")
        return code

    async def get_rate(self, from_currency: str, to_currency: str = "ILS") -> float:
        from_code = self._check_currency(from_currency)
        to_code = self._check_currency(to_currency)
        if from_code == to_code:
            return 1.0
        snapshot = await self.current_snapshot()
        return snapshot.get_rate(from_code, to_code)

    async def convert_amount(self, amount: float, from_currency: str,
                             to_currency: str = "ILS") -> Conversion:
        if amount is None or not math.isfinite(amount) or amount < 0:
            raise ValidationError(f"Amount must be a non-negative number, got {amount!r}")
        rate = await self.get_rate(from_currency, to_currency)
        snapshot = self._snapshot
        return Conversion(
            original_amount=amount,
            converted_amount=amount * rate,
            from_currency=from_currency.upper(),
            to_currency=to_currency.upper(),
            rate=rate,
            timestamp=snapshot.last_updated if snapshot else datetime.now(timezone.utc),
        )

    def cache_status(self) -> dict:
        remaining = 0.0
        if self._snapshot is not None:
            remaining = max(0.0, self.ttl - (self._clock() - self._fetched_at))
        return {
            "state": self.state.value,
            "is_valid": self.state is CacheState.VALID,
            "is_fallback": bool(self._snapshot and self._snapshot.is_fallback),
            "last_updated": self._snapshot.last_updated if self._snapshot else None,
            "time_to_expiry": remaining,
            "last_error": self.last_error,
        }


def format_currency(amount: float, currency: str = "ILS", locale: str = "he-IL") -> str:
    """
    Crypto amounts get six decimals; everything else is rounded half-up to a
    whole unit and grouped according to `locale`.
    """
    symbol = CURRENCY["symbols"].get(currency, currency)
    if currency in CRYPTO:
        return f"{symbol}{amount:.6f}"

    whole = int(math.floor(amount + 0.5)) if math.isfinite(amount) else 0
    try:
        loc = Locale.parse(locale, sep="-") if "-" in locale else Locale.parse(locale)
        text = format_decimal(whole, format="#,##0", locale=loc)
    except (UnknownLocaleError, ValueError, TypeError):
        text = f"{whole:,}"
    return f"{symbol}{text}"
