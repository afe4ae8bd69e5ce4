"""Currency conversion into the configured base currency"""

from __future__ import annotations

import httpx
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict

from cashwise_engine.config import settings
from cashwise_engine.domain.exceptions import CurrencyConversionError
from cashwise_engine.infrastructure.observability.metrics import fx_failures_counter


@dataclass(frozen=True)
class FxQuote:
    provider: str
    base: str
    quote: str
    rate: Decimal  # quote per 1 base
    rate_date: date
    fetched_at: datetime


class FxRateClient:
    """
    Converts amounts with the latest Frankfurter rates.

    Rates are cached for the lifetime of the instance, so one request scope
    converts every amount of a currency at the same rate.
    """

    def __init__(
        self,
        base_currency: str | None = None,
        api_base: str | None = None,
        timeout: float | None = None,
        markup_bps: int | None = None,
    ) -> None:
        self.base_currency = (base_currency or settings.base_currency).upper()
        self.api_base = api_base or settings.fx_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.markup_bps = settings.fx_markup_bps if markup_bps is None else markup_bps
        self._quotes: Dict[str, FxQuote] = {}

    async def convert(self, amount: Decimal, from_currency: str) -> Decimal:
        source = (from_currency or self.base_currency).upper()
        if source == self.base_currency:
            return Decimal(amount)
        quote = await self.quote_for(source)
        return Decimal(amount) * quote.rate

    async def quote_for(self, source: str) -> FxQuote:
        if source not in self._quotes:
            quote = await self._fetch_quote(source)
            if self.markup_bps:
                factor = Decimal("1") - (Decimal(self.markup_bps) / Decimal("10000"))
                quote = FxQuote(
                    provider=quote.provider,
                    base=quote.base,
                    quote=quote.quote,
                    rate=quote.rate * factor,
                    rate_date=quote.rate_date,
                    fetched_at=quote.fetched_at,
                )
            self._quotes[source] = quote
        return self._quotes[source]

    async def _fetch_quote(self, source: str) -> FxQuote:
        fetched_at = datetime.now(timezone.utc)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.get(
                    f"{self.api_base}/latest",
                    params={"from": source, "to": self.base_currency},
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
                payload = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                fx_failures_counter.inc()
                raise CurrencyConversionError(
                    f"Failed to fetch {source}->{self.base_currency} rate"
                ) from exc

        try:
            rate_value = payload["rates"][self.base_currency]
            effective_date = date.fromisoformat(payload["date"])
        except (KeyError, TypeError, ValueError) as exc:
            fx_failures_counter.inc()
            raise CurrencyConversionError("Unexpected FX provider response") from exc

        return FxQuote(
            provider="frankfurter",
            base=source,
            quote=self.base_currency,
            rate=Decimal(str(rate_value)),
            rate_date=effective_date,
            fetched_at=fetched_at,
        )
