"""
Tests for live price lookups.

These tests verify:
- Prices are fetched once per card name and cached
- Throttled responses back off and retry through the shared queue
- Exhausted retries and network errors surface as PriceLookupError
- A failed lookup cancels the rest of its batch
- Basics and cards with local prices never hit the network
"""

import asyncio
import logging
import time

import httpx
import pytest
import respx

from commanderforge.models.card import Color, make_basic_land
from commanderforge.models.failure import FailureKind, PriceLookupError
from commanderforge.services.pricing import RateLimitedQueue, ScryfallPriceService
from factories import build_card

BASE_URL = "https://api.scryfall.com"
NAMED_URL = f"{BASE_URL}/cards/named"

PRICES = {
    "Sol Ring": {"usd": "1.50", "usd_foil": "4.00"},
    "Craterhoof Behemoth": {"usd": "80.00", "usd_foil": "60.00"},
    "Foil Only": {"usd": None, "usd_foil": "12.00"},
}


def _scryfall_named(request: httpx.Request) -> httpx.Response:
    name = request.url.params["exact"]
    if name not in PRICES:
        return httpx.Response(404, json={"object": "error", "status": 404})
    return httpx.Response(200, json={"name": name, "prices": PRICES[name]})


def _service(**kwargs: object) -> ScryfallPriceService:
    queue = RateLimitedQueue(delay=0.0, max_retries=2, backoff_base=0.0)
    options: dict[str, object] = {"queue": queue, "base_url": BASE_URL, "batch_size": 10}
    options.update(kwargs)
    return ScryfallPriceService(**options)  # type: ignore[arg-type]


class TestPrefetch:
    """Tests for fetching and caching prices."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_fetches_and_caches(self) -> None:
        route = respx.get(NAMED_URL).mock(side_effect=_scryfall_named)
        service = _service()
        cards = [build_card("Sol Ring", type_line="Artifact"), build_card("Foil Only")]

        requested = await service.prefetch(cards)
        again = await service.prefetch(cards)

        assert requested == 2
        assert again == 0
        assert route.call_count == 2
        quote = service.price_of(cards[0])
        assert quote.amount == 1.50
        assert quote.source == "scryfall"
        assert service.price_of(cards[1]).amount == 12.00

    @respx.mock
    @pytest.mark.asyncio
    async def test_prefer_cheapest_takes_lower_price(self) -> None:
        respx.get(NAMED_URL).mock(side_effect=_scryfall_named)
        service = _service(prefer_cheapest=True)
        card = build_card("Craterhoof Behemoth")

        await service.prefetch([card])

        assert service.price_of(card).amount == 60.00

    @respx.mock
    @pytest.mark.asyncio
    async def test_duplicate_names_fetched_once(self) -> None:
        route = respx.get(NAMED_URL).mock(side_effect=_scryfall_named)
        service = _service()

        await service.prefetch([build_card("Sol Ring"), build_card("Sol Ring")])

        assert route.call_count == 1

    @respx.mock
    @pytest.mark.asyncio
    async def test_basics_and_estimates_skip_network(self) -> None:
        route = respx.get(NAMED_URL).mock(side_effect=_scryfall_named)
        service = _service(basic_land_price=0.10)
        forest = make_basic_land(Color.GREEN)
        estimated = build_card("Sol Ring", price=2.0)

        requested = await service.prefetch([forest, estimated])

        assert requested == 0
        assert not route.called
        assert service.price_of(forest).amount == 0.10
        assert service.price_of(forest).source == "basic"
        assert service.price_of(estimated).source == "estimate"

    @respx.mock
    @pytest.mark.asyncio
    async def test_unknown_card_falls_back_to_zero(self) -> None:
        respx.get(NAMED_URL).mock(side_effect=_scryfall_named)
        service = _service()
        card = build_card("Not A Real Card")

        await service.prefetch([card])

        quote = service.price_of(card)
        assert quote.amount == 0.0
        assert quote.source == "unknown"

    @respx.mock
    @pytest.mark.asyncio
    async def test_server_error_raises(self) -> None:
        respx.get(NAMED_URL).mock(return_value=httpx.Response(500))
        service = _service()

        with pytest.raises(PriceLookupError) as exc_info:
            await service.prefetch([build_card("Sol Ring")])

        assert exc_info.value.kind == FailureKind.EXTERNAL_API_ERROR
        assert exc_info.value.status_code == 502

    @respx.mock
    @pytest.mark.asyncio
    async def test_batches_cover_every_card(self) -> None:
        route = respx.get(NAMED_URL).mock(side_effect=_scryfall_named)
        service = _service(batch_size=2)
        cards = [build_card(f"Card {i}") for i in range(5)]

        requested = await service.prefetch(cards)

        assert requested == 5
        assert route.call_count == 5
        assert service.queue.request_count == 5

    @respx.mock
    @pytest.mark.asyncio
    async def test_uses_injected_client(self) -> None:
        respx.get(NAMED_URL).mock(side_effect=_scryfall_named)

        async with httpx.AsyncClient() as client:
            service = _service(client=client)
            card = build_card("Sol Ring")
            await service.prefetch([card])

        assert service.price_of(card).amount == 1.50

    @respx.mock
    @pytest.mark.asyncio
    async def test_failed_lookup_stops_its_batch(self) -> None:
        """Lookups left in a failed batch are cancelled, not sent on a closed client."""

        def named(request: httpx.Request) -> httpx.Response:
            if request.url.params["exact"] == "Bad Card":
                return httpx.Response(500)
            return _scryfall_named(request)

        route = respx.get(NAMED_URL).mock(side_effect=named)
        queue = RateLimitedQueue(delay=0.0, max_retries=0, backoff_base=0.0)
        service = _service(queue=queue)
        cards = [build_card("Bad Card"), *(build_card(f"Card {i}") for i in range(5))]

        with pytest.raises(PriceLookupError) as exc_info:
            await service.prefetch(cards)
        sent = queue.request_count
        await asyncio.sleep(0.05)

        assert exc_info.value.card_name == "Bad Card"
        assert queue.request_count == sent
        assert route.call_count < len(cards)


class TestRateLimitedQueue:
    """Tests for throttling and backoff."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_retries_after_throttle(self, caplog: pytest.LogCaptureFixture) -> None:
        route = respx.get(NAMED_URL).mock(
            side_effect=[
                httpx.Response(429, headers={"Retry-After": "0"}),
                httpx.Response(200, json={"prices": {"usd": "1.50"}}),
            ]
        )
        queue = RateLimitedQueue(delay=0.0, max_retries=3, backoff_base=10.0)

        with caplog.at_level(logging.WARNING, logger="commanderforge.services.pricing"):
            async with httpx.AsyncClient() as client:
                response = await queue.get(client, NAMED_URL, {"exact": "Sol Ring"}, "Sol Ring")

        assert response.status_code == 200
        assert route.call_count == 2
        record = next(r for r in caplog.records if r.getMessage() == "price_request_throttled")
        assert record.status == 429
        assert record.backoff == 0.0

    @respx.mock
    @pytest.mark.asyncio
    async def test_persistent_throttling_raises_after_retries(self) -> None:
        route = respx.get(NAMED_URL).mock(return_value=httpx.Response(503))
        queue = RateLimitedQueue(delay=0.0, max_retries=2, backoff_base=0.0)

        async with httpx.AsyncClient() as client:
            with pytest.raises(PriceLookupError) as exc_info:
                await queue.get(client, NAMED_URL, {"exact": "Sol Ring"}, "Sol Ring")

        assert route.call_count == 3
        assert exc_info.value.attempts == 3
        assert exc_info.value.card_name == "Sol Ring"

    @respx.mock
    @pytest.mark.asyncio
    async def test_network_error_is_retried(self) -> None:
        route = respx.get(NAMED_URL).mock(
            side_effect=[
                httpx.ConnectError("connection refused"),
                httpx.Response(200, json={"prices": {"usd": "1.50"}}),
            ]
        )
        queue = RateLimitedQueue(delay=0.0, max_retries=2, backoff_base=0.0)

        async with httpx.AsyncClient() as client:
            response = await queue.get(client, NAMED_URL, {"exact": "Sol Ring"}, "Sol Ring")

        assert response.status_code == 200
        assert route.call_count == 2

    @respx.mock
    @pytest.mark.asyncio
    async def test_persistent_network_error_raises_lookup_error(self) -> None:
        route = respx.get(NAMED_URL).mock(side_effect=httpx.ConnectTimeout("timed out"))
        queue = RateLimitedQueue(delay=0.0, max_retries=2, backoff_base=0.0)

        async with httpx.AsyncClient() as client:
            with pytest.raises(PriceLookupError) as exc_info:
                await queue.get(client, NAMED_URL, {"exact": "Sol Ring"}, "Sol Ring")

        assert route.call_count == 3
        assert exc_info.value.attempts == 3
        assert exc_info.value.detail == "last error: ConnectTimeout"
        assert exc_info.value.status_code == 502

    @respx.mock
    @pytest.mark.asyncio
    async def test_requests_are_spaced_by_delay(self) -> None:
        respx.get(NAMED_URL).mock(return_value=httpx.Response(200, json={"prices": {}}))
        queue = RateLimitedQueue(delay=0.05)

        start = time.monotonic()
        async with httpx.AsyncClient() as client:
            for name in ("A", "B", "C"):
                await queue.get(client, NAMED_URL, {"exact": name}, name)
        elapsed = time.monotonic() - start

        assert elapsed >= 0.09
        assert queue.request_count == 3

    def test_from_settings(self) -> None:
        queue = RateLimitedQueue.from_settings()

        assert queue.delay == 0.1
        assert queue.max_retries == 5
