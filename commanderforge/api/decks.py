"""
Deck generation endpoints.

Every response is wrapped in the ApiResponse envelope. Known failures keep
their own status codes; anything else becomes an unknown failure.
"""

import asyncio
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from commanderforge.models.deck import GeneratedDeck, GenerationResult
from commanderforge.models.failure import (
    ApiResponse,
    FailureKind,
    KnownError,
    create_known_failure,
    create_success,
    create_unknown_failure,
)
from commanderforge.services.card_database import ScryfallCardRepository, get_card_repository
from commanderforge.services.deck_generator import GenerationRequest, generate_deck
from commanderforge.services.pricing import ScryfallPriceService
from commanderforge.services.synergy import KeywordSynergyScorer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/decks", tags=["decks"])

CANCELLED_STATUS_CODE = status.HTTP_409_CONFLICT


class DeckCardEntry(BaseModel):
    """One non-land card in a generated deck."""

    name: str
    category: str
    cmc: float
    score: float
    tags: list[str] = Field(default_factory=list)


class DeckResponse(BaseModel):
    """Response model for a generated deck."""

    commander: str
    card_count: int
    non_land_cards: list[DeckCardEntry]
    lands: dict[str, int]
    total_price: float
    warnings: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)
    stages_completed: list[str] = Field(default_factory=list)


def get_repository() -> ScryfallCardRepository:
    """Card repository dependency."""
    try:
        return get_card_repository()
    except FileNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Card database not available. Please try again later.",
        ) from e


def get_scorer() -> KeywordSynergyScorer:
    return KeywordSynergyScorer()


def get_price_service() -> ScryfallPriceService | None:
    """A fresh price service per request, so each run gets its own queue."""
    return ScryfallPriceService()


def get_cancel_token() -> asyncio.Event | None:
    return None


def deck_to_response(deck: GeneratedDeck, result: GenerationResult) -> DeckResponse:
    return DeckResponse(
        commander=deck.commander.name,
        card_count=deck.card_count,
        non_land_cards=[
            DeckCardEntry(
                name=sc.name,
                category=sc.category.value,
                cmc=sc.card.cmc,
                score=round(sc.total_score, 2),
                tags=sorted(sc.tags),
            )
            for sc in deck.non_land_cards
        ],
        lands=deck.land_breakdown(),
        total_price=deck.total_price,
        warnings=list(deck.warnings),
        notes=list(deck.notes),
        stages_completed=list(result.stages_completed),
    )


def _json(response: ApiResponse[Any], status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=response.model_dump(mode="json"))


@router.post("/generate", response_model=ApiResponse[DeckResponse])
async def generate(
    request: GenerationRequest,
    repository: Annotated[ScryfallCardRepository, Depends(get_repository)],
    scorer: Annotated[KeywordSynergyScorer, Depends(get_scorer)],
    price_service: Annotated[ScryfallPriceService | None, Depends(get_price_service)],
    cancel: Annotated[asyncio.Event | None, Depends(get_cancel_token)],
) -> JSONResponse:
    """
    Generate a Commander deck.

    Returns the deck with warnings for any degraded outcome (short pool,
    over budget). Fails only when generation cannot produce a deck at all.
    """
    try:
        result = await generate_deck(
            request,
            repository,
            scorer,
            price_service=price_service,
            cancel=cancel,
        )
    except KnownError as e:
        logger.info(
            "generation_failed",
            extra={"kind": e.kind.value, "commander": request.commander},
        )
        return _json(e.to_response(), e.status_code)
    except Exception as e:
        logger.exception("generation_crashed", extra={"commander": request.commander})
        return _json(create_unknown_failure(e), status.HTTP_500_INTERNAL_SERVER_ERROR)

    if not result.completed or result.deck is None:
        stages = ", ".join(result.stages_completed) or "none"
        return _json(
            create_known_failure(FailureKind.CANCELLED, f"cancelled after stages: {stages}"),
            CANCELLED_STATUS_CODE,
        )

    return _json(create_success(deck_to_response(result.deck, result)), status.HTTP_200_OK)
