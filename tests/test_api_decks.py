"""Tests for deck API endpoints."""

import asyncio
from collections.abc import AsyncIterator
from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

from commanderforge.api.decks import (
    get_cancel_token,
    get_price_service,
    get_repository,
    get_scorer,
)
from commanderforge.main import app
from commanderforge.models.card import Card, Category, Commander
from commanderforge.models.collaborators import SynergyResult
from factories import InMemoryRepository, StaticScorer, build_pool

GENERATE_URL = "/decks/generate"


class ExplodingScorer:
    def score(self, card: Card, commander: Commander) -> SynergyResult:
        raise RuntimeError("scorer crashed")


@pytest.fixture
def repository(green_commander: Commander) -> InMemoryRepository:
    cards = build_pool(
        {
            Category.CREATURE: 40,
            Category.ARTIFACT: 15,
            Category.ENCHANTMENT: 15,
            Category.INSTANT: 15,
            Category.SORCERY: 15,
            Category.LAND: 10,
        }
    )
    return InMemoryRepository([green_commander.card, *cards])


@pytest.fixture
async def client(repository: InMemoryRepository) -> AsyncIterator[AsyncClient]:
    """Async test client with an in-memory repository and no live pricing."""
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_scorer] = lambda: StaticScorer()
    app.dependency_overrides[get_price_service] = lambda: None
    app.dependency_overrides[get_cancel_token] = lambda: None

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


class TestGenerateDeck:
    """Tests for POST /decks/generate."""

    @pytest.mark.asyncio
    async def test_generates_deck(self, client: AsyncClient) -> None:
        response = await client.post(
            GENERATE_URL,
            json={
                "commander": "Marwyn, the Nurturer",
                "weights": {"planeswalkers": 0},
                "power_level": 6,
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["outcome"] == "success"
        assert body["failure"] is None
        deck = body["data"]
        assert deck["commander"] == "Marwyn, the Nurturer"
        assert deck["card_count"] == 99
        assert len(deck["non_land_cards"]) + sum(deck["lands"].values()) == 99
        assert deck["stages_completed"][-1] == "assembled"
        assert deck["notes"][0].startswith("archetype: ")

    @pytest.mark.asyncio
    async def test_unknown_commander_is_404(self, client: AsyncClient) -> None:
        response = await client.post(GENERATE_URL, json={"commander": "Nobody"})

        assert response.status_code == 404
        body = response.json()
        assert body["outcome"] == "known_failure"
        assert body["failure"]["kind"] == "not_found"

    @pytest.mark.asyncio
    async def test_insufficient_pool_is_422(
        self, client: AsyncClient, green_commander: Commander
    ) -> None:
        small = InMemoryRepository(
            [green_commander.card, *build_pool({Category.CREATURE: 10})]
        )
        app.dependency_overrides[get_repository] = lambda: small

        response = await client.post(GENERATE_URL, json={"commander": "Marwyn, the Nurturer"})

        assert response.status_code == 422
        assert response.json()["failure"]["kind"] == "insufficient_pool"

    @pytest.mark.asyncio
    async def test_all_zero_weights_is_400(self, client: AsyncClient) -> None:
        zero = {
            "creatures": 0,
            "artifacts": 0,
            "enchantments": 0,
            "instants": 0,
            "sorceries": 0,
            "planeswalkers": 0,
        }

        response = await client.post(
            GENERATE_URL, json={"commander": "Marwyn, the Nurturer", "weights": zero}
        )

        assert response.status_code == 400
        assert response.json()["failure"]["kind"] == "invalid_input"

    @pytest.mark.asyncio
    async def test_cancelled_is_409(self, client: AsyncClient) -> None:
        cancel = asyncio.Event()
        cancel.set()
        app.dependency_overrides[get_cancel_token] = lambda: cancel

        response = await client.post(GENERATE_URL, json={"commander": "Marwyn, the Nurturer"})

        assert response.status_code == 409
        failure = response.json()["failure"]
        assert failure["kind"] == "cancelled"
        assert failure["detail"] == "cancelled after stages: filter"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_unknown_failure(self, client: AsyncClient) -> None:
        app.dependency_overrides[get_scorer] = lambda: ExplodingScorer()

        response = await client.post(GENERATE_URL, json={"commander": "Marwyn, the Nurturer"})

        assert response.status_code == 500
        body = response.json()
        assert body["outcome"] == "unknown_failure"
        assert body["failure"]["detail"] == "RuntimeError"

    @pytest.mark.asyncio
    async def test_invalid_weight_rejected_by_validation(self, client: AsyncClient) -> None:
        response = await client.post(
            GENERATE_URL,
            json={"commander": "Marwyn, the Nurturer", "weights": {"creatures": 11}},
        )

        assert response.status_code == 422
        assert "detail" in response.json()

    @pytest.mark.asyncio
    async def test_missing_card_database_is_503(self) -> None:
        transport = ASGITransport(app=app)
        with patch(
            "commanderforge.api.decks.get_card_repository",
            side_effect=FileNotFoundError("missing"),
        ):
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                response = await client.post(
                    GENERATE_URL, json={"commander": "Marwyn, the Nurturer"}
                )

        assert response.status_code == 503
