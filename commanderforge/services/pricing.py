"""
Price lookups against the Scryfall API.

All requests of one generation run go through a single RateLimitedQueue:
requests are serialized with a fixed gap between them, and throttling
responses (429/503) back off exponentially before the request is retried.

Lookups are dispatched concurrently in bounded task groups; the queue, not the
batch size, decides how fast requests actually leave.
"""

import asyncio
import logging
import time
from collections.abc import Iterable

import httpx

from commanderforge.config import settings
from commanderforge.models.card import Card
from commanderforge.models.collaborators import PriceQuote
from commanderforge.models.failure import PriceLookupError
from commanderforge.services.card_database import parse_price

logger = logging.getLogger(__name__)

THROTTLE_STATUS_CODES = frozenset({429, 503})


def _retry_after(response: httpx.Response) -> float | None:
    """Seconds from a Retry-After header, if it holds a number."""
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


class RateLimitedQueue:
    """
    Serializes outbound requests with a minimum delay between them.

    One instance per generation run; every stage that talks to the price
    source shares it.
    """

    def __init__(
        self,
        delay: float = 0.1,
        max_retries: int = 5,
        backoff_base: float = 0.5,
    ):
        self.delay = delay
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self._lock = asyncio.Lock()
        self._last_request: float | None = None
        self.request_count = 0

    async def _wait_turn(self) -> None:
        if self._last_request is None:
            return
        elapsed = time.monotonic() - self._last_request
        if elapsed < self.delay:
            await asyncio.sleep(self.delay - elapsed)

    async def get(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: dict[str, str],
        card_name: str,
    ) -> httpx.Response:
        """
        Send a GET through the queue, retrying throttled responses.

        Network failures (connect errors, timeouts) count as throttled
        attempts and are retried the same way.

        Raises:
            PriceLookupError: If the source is still throttling after max_retries
        """
        response: httpx.Response | None = None
        error: str | None = None
        for attempt in range(self.max_retries + 1):
            async with self._lock:
                await self._wait_turn()
                try:
                    response = await client.get(url, params=params)
                    error = None
                except httpx.TransportError as exc:
                    response = None
                    error = type(exc).__name__
                finally:
                    self._last_request = time.monotonic()
                    self.request_count += 1

            if response is not None and response.status_code not in THROTTLE_STATUS_CODES:
                return response

            if attempt == self.max_retries:
                break

            backoff = _retry_after(response) if response is not None else None
            if backoff is None:
                backoff = self.backoff_base * 2**attempt
            logger.warning(
                "price_request_throttled",
                extra={
                    "card": card_name,
                    "status": response.status_code if response is not None else error,
                    "attempt": attempt + 1,
                    "backoff": backoff,
                },
            )
            await asyncio.sleep(backoff)

        if response is not None:
            detail = f"last status: {response.status_code}"
        else:
            detail = f"last error: {error}"
        raise PriceLookupError(
            card_name=card_name,
            attempts=self.max_retries + 1,
            detail=detail,
        )

    @classmethod
    def from_settings(cls) -> "RateLimitedQueue":
        return cls(
            delay=settings.price_request_delay,
            max_retries=settings.price_max_retries,
            backoff_base=settings.price_backoff_base,
        )


class ScryfallPriceService:
    """
    Live card prices from Scryfall, cached for one generation run.

    prefetch() does all network work up front; price_of() then answers
    from the cache without awaiting, so the budget stage stays synchronous.
    """

    def __init__(
        self,
        queue: RateLimitedQueue | None = None,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        batch_size: int | None = None,
        prefer_cheapest: bool | None = None,
        basic_land_price: float | None = None,
    ):
        self.queue = queue or RateLimitedQueue.from_settings()
        self._client = client
        self.base_url = (base_url or settings.scryfall_api_url).rstrip("/")
        self.batch_size = batch_size or settings.price_batch_size
        self.prefer_cheapest = (
            settings.prefer_cheapest_price if prefer_cheapest is None else prefer_cheapest
        )
        self.basic_land_price = (
            settings.basic_land_price if basic_land_price is None else basic_land_price
        )
        self._cache: dict[str, PriceQuote] = {}

    def _needs_lookup(self, card: Card) -> bool:
        return (
            not card.is_basic_land
            and card.price_estimate is None
            and card.name not in self._cache
        )

    async def _fetch(self, client: httpx.AsyncClient, card: Card) -> None:
        response = await self.queue.get(
            client,
            f"{self.base_url}/cards/named",
            params={"exact": card.name},
            card_name=card.name,
        )
        if response.status_code == 404:
            logger.info("price_not_found", extra={"card": card.name})
            return
        if response.status_code != 200:
            raise PriceLookupError(
                card_name=card.name,
                attempts=1,
                detail=f"status: {response.status_code}",
            )

        amount = parse_price(response.json().get("prices"), self.prefer_cheapest)
        if amount is not None:
            self._cache[card.name] = PriceQuote(amount=amount, source="scryfall")

    async def _fetch_all(self, client: httpx.AsyncClient, cards: list[Card]) -> None:
        for start in range(0, len(cards), self.batch_size):
            batch = cards[start : start + self.batch_size]
            # A failed lookup cancels the rest of its batch before the client closes
            try:
                async with asyncio.TaskGroup() as group:
                    for card in batch:
                        group.create_task(self._fetch(client, card))
            except* PriceLookupError as failures:
                raise failures.exceptions[0] from None

    async def prefetch(self, cards: Iterable[Card]) -> int:
        """
        Look up prices for every card that lacks one.

        Returns:
            Number of cards sent to the network

        Raises:
            PriceLookupError: If a lookup fails after retries
        """
        pending: list[Card] = []
        seen: set[str] = set()
        for card in cards:
            if card.name in seen or not self._needs_lookup(card):
                continue
            seen.add(card.name)
            pending.append(card)

        if not pending:
            return 0

        if self._client is not None:
            await self._fetch_all(self._client, pending)
        else:
            async with httpx.AsyncClient(timeout=30.0) as client:
                await self._fetch_all(client, pending)

        logger.info(
            "prices_prefetched",
            extra={"requested": len(pending), "cached": len(self._cache)},
        )
        return len(pending)

    def price_of(self, card: Card) -> PriceQuote:
        """Cached live price, then local estimate, then 0.0 marked unknown."""
        if card.is_basic_land:
            return PriceQuote(amount=self.basic_land_price, source="basic")
        cached = self._cache.get(card.name)
        if cached is not None:
            return cached
        if card.price_estimate is not None:
            return PriceQuote(amount=card.price_estimate, source="estimate")
        return PriceQuote(amount=0.0, source="unknown")
