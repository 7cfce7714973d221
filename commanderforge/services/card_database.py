"""
Card database service.

Loads Scryfall oracle card data and serves it as the engine's card repository.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import httpx

from commanderforge.config import settings
from commanderforge.models.card import Card, Color, parse_colors
from commanderforge.models.collaborators import PriceQuote

logger = logging.getLogger(__name__)

SCRYFALL_BULK_API = "https://api.scryfall.com/bulk-data"
BULK_DATA_TYPE = "oracle_cards"


async def download_card_database(output_path: Path | None = None) -> Path:
    """
    Download latest Scryfall oracle-cards bulk data.

    Args:
        output_path: Where to save the file. Defaults to settings.card_data_path

    Returns:
        Path to downloaded file.

    Raises:
        ValueError: If bulk data URL not found
        httpx.HTTPError: If download fails
    """
    if output_path is None:
        output_path = settings.card_data_path

    output_path.parent.mkdir(parents=True, exist_ok=True)

    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.get(SCRYFALL_BULK_API)
        response.raise_for_status()
        data = response.json()

        download_url = None
        for item in data["data"]:
            if item["type"] == BULK_DATA_TYPE:
                download_url = item["download_uri"]
                break

        if not download_url:
            raise ValueError(f"Could not find {BULK_DATA_TYPE} bulk data URL")

        # Stream download (file is ~150MB)
        async with client.stream("GET", download_url, timeout=300.0) as response:
            response.raise_for_status()
            with open(output_path, "wb") as f:
                async for chunk in response.aiter_bytes(8192):
                    f.write(chunk)

    return output_path


def parse_price(prices: dict[str, Any] | None, prefer_cheapest: bool = False) -> float | None:
    """
    Read a USD price from a Scryfall prices block.

    Uses the non-foil price, falling back to foil. With prefer_cheapest,
    the lower of the two wins.
    """
    if not prices:
        return None

    found: list[float] = []
    for key in ("usd", "usd_foil"):
        raw = prices.get(key)
        if raw in (None, ""):
            continue
        try:
            found.append(float(raw))
        except (TypeError, ValueError):
            continue

    if not found:
        return None
    return min(found) if prefer_cheapest else found[0]


def _face_field(data: dict[str, Any], key: str, joiner: str) -> str:
    """Read a text field, joining card faces for multi-faced cards."""
    value = data.get(key)
    if value:
        return str(value)
    faces = data.get("card_faces") or []
    return joiner.join(str(face.get(key, "")) for face in faces if face.get(key))


def card_from_scryfall(data: dict[str, Any], prefer_cheapest: bool = False) -> Card:
    """
    Convert one Scryfall card object to a Card.

    Args:
        data: Scryfall card JSON
        prefer_cheapest: Take the lower of normal and foil prices

    Returns:
        Card with category derived from the type line
    """
    return Card.create(
        id=str(data.get("oracle_id") or data.get("id") or data["name"]),
        name=data["name"],
        mana_cost=_face_field(data, "mana_cost", " // "),
        cmc=float(data.get("cmc") or 0.0),
        type_line=_face_field(data, "type_line", " // "),
        color_identity=data.get("color_identity", []),
        price_estimate=parse_price(data.get("prices"), prefer_cheapest),
        legalities=dict(data.get("legalities") or {}),
        oracle_text=_face_field(data, "oracle_text", "\n"),
        popularity_rank=data.get("edhrec_rank"),
    )


def load_card_database(path: Path | None = None) -> list[dict[str, Any]]:
    """
    Load raw card data from file.

    Args:
        path: Path to JSON file. Defaults to settings.card_data_path

    Returns:
        List of Scryfall card objects.

    Raises:
        FileNotFoundError: If database file doesn't exist
    """
    if path is None:
        path = settings.card_data_path

    if not path.exists():
        raise FileNotFoundError(
            f"Card database not found at {path}. "
            "Run `python -m commanderforge.jobs.download_cards` first."
        )

    with open(path, encoding="utf-8") as f:
        cards: list[dict[str, Any]] = json.load(f)
    return cards


class ScryfallCardRepository:
    """
    In-memory card repository built from Scryfall data.

    Cards are deduplicated by name (first occurrence wins). Read-only after
    construction, so one instance can serve concurrent generation runs.
    """

    def __init__(self, cards: list[Card], basic_land_price: float = 0.25):
        self._cards: list[Card] = []
        self._by_name: dict[str, Card] = {}
        self._by_id: dict[str, Card] = {}
        self._basic_land_price = basic_land_price

        for card in cards:
            key = card.name.lower()
            if key in self._by_name:
                continue
            self._cards.append(card)
            self._by_name[key] = card
            self._by_id[card.id] = card
            if "//" in card.name:
                front = card.name.split("//")[0].strip().lower()
                self._by_name.setdefault(front, card)

    @classmethod
    def from_scryfall(
        cls,
        raw_cards: list[dict[str, Any]],
        prefer_cheapest: bool = False,
        basic_land_price: float = 0.25,
    ) -> "ScryfallCardRepository":
        cards = [
            card_from_scryfall(data, prefer_cheapest) for data in raw_cards if data.get("name")
        ]
        return cls(cards, basic_land_price=basic_land_price)

    @classmethod
    def from_file(cls, path: Path | None = None) -> "ScryfallCardRepository":
        """Load the repository from the bulk data file."""
        repository = cls.from_scryfall(
            load_card_database(path),
            prefer_cheapest=settings.prefer_cheapest_price,
            basic_land_price=settings.basic_land_price,
        )
        logger.info("card_repository_loaded", extra={"cards": len(repository)})
        return repository

    def __len__(self) -> int:
        return len(self._cards)

    def find_card(self, name_or_id: str) -> Card | None:
        """Look up a card by Scryfall id or (case-insensitive) name."""
        card = self._by_id.get(name_or_id)
        if card is not None:
            return card
        return self._by_name.get(name_or_id.strip().lower())

    def legal_candidates(self, color_identity: frozenset[Color]) -> list[Card]:
        """Commander-legal cards within a color identity."""
        allowed = parse_colors(color_identity)
        return [
            card
            for card in self._cards
            if card.is_legal_in("commander") and card.color_identity <= allowed
        ]

    def price_of(self, card: Card) -> PriceQuote:
        """Local price from bulk data; basics at the fixed basic price."""
        if card.is_basic_land:
            return PriceQuote(amount=self._basic_land_price, source="basic")
        if card.price_estimate is not None:
            return PriceQuote(amount=card.price_estimate, source="estimate")
        return PriceQuote(amount=0.0, source="unknown")


@lru_cache(maxsize=1)
def get_card_repository() -> ScryfallCardRepository:
    """
    Get the cached card repository.

    Raises:
        FileNotFoundError: If database file doesn't exist
    """
    return ScryfallCardRepository.from_file()
